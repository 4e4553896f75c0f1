import hashlib
import hmac
from unittest.mock import Mock

import pytest
import requests

from edureach.config import settings
from edureach.exceptions import PaymentGatewayError, PaymentSignatureError
from edureach.services import payment_service
from edureach.services.payment_service import create_order, payment_signature, verify_signature


@pytest.fixture
def razorpay(monkeypatch):
    monkeypatch.setattr(settings, "RAZORPAY_KEY_ID", "rzp_test_key")
    monkeypatch.setattr(settings, "RAZORPAY_KEY_SECRET", "rzp_test_secret")


def response(status_code, payload=None):
    resp = Mock(status_code=status_code, text="body")
    resp.json.return_value = payload or {}
    return resp


class TestSignature:

    def test_matches_hmac_sha256_of_order_and_payment(self):
        expected = hmac.new(b"secret", b"order_1|pay_1", hashlib.sha256).hexdigest()
        assert payment_signature("order_1", "pay_1", "secret") == expected

    def test_valid_signature_passes(self):
        verify_signature("order_1", "pay_1", payment_signature("order_1", "pay_1", "secret"), secret="secret")

    @pytest.mark.parametrize("signature", ["", "deadbeef", None])
    def test_invalid_signature_raises(self, signature):
        with pytest.raises(PaymentSignatureError):
            verify_signature("order_1", "pay_1", signature, secret="secret")

    def test_swapped_ids_do_not_verify(self):
        signature = payment_signature("order_1", "pay_1", "secret")
        with pytest.raises(PaymentSignatureError):
            verify_signature("pay_1", "order_1", signature, secret="secret")

    def test_uses_configured_secret(self, razorpay):
        verify_signature("order_1", "pay_1", payment_signature("order_1", "pay_1", "rzp_test_secret"))

    def test_unconfigured_secret(self, monkeypatch):
        monkeypatch.setattr(settings, "RAZORPAY_KEY_SECRET", None)
        with pytest.raises(PaymentGatewayError):
            verify_signature("order_1", "pay_1", "abc")


class TestCreateOrder:

    def test_posts_order_with_basic_auth(self, razorpay, monkeypatch):
        post = Mock(return_value=response(200, {
            "id": "order_1",
            "currency": "INR",
            "amount": 49900,
            "receipt": "rcpt_1",
            "status": "created",
            "created_at": 1760000000,
            "entity": "order",
        }))
        monkeypatch.setattr(payment_service.requests, "post", post)

        order = create_order(49900, "INR", receipt="rcpt_1", notes={"lead": "x"})

        assert order == {
            "id": "order_1",
            "currency": "INR",
            "amount": 49900,
            "receipt": "rcpt_1",
            "status": "created",
            "created_at": 1760000000,
        }
        args, kwargs = post.call_args
        assert args[0] == "https://api.razorpay.com/v1/orders"
        assert kwargs["auth"] == ("rzp_test_key", "rzp_test_secret")
        assert kwargs["json"]["payment_capture"] == 1
        assert kwargs["json"]["notes"] == {"lead": "x"}

    def test_gateway_error_status(self, razorpay, monkeypatch):
        monkeypatch.setattr(payment_service.requests, "post", Mock(return_value=response(401)))
        with pytest.raises(PaymentGatewayError, match="Failed to create order"):
            create_order(100)

    def test_network_failure(self, razorpay, monkeypatch):
        monkeypatch.setattr(payment_service.requests, "post", Mock(side_effect=requests.ConnectionError("down")))
        with pytest.raises(PaymentGatewayError):
            create_order(100)

    def test_not_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "RAZORPAY_KEY_ID", None)
        post = Mock()
        monkeypatch.setattr(payment_service.requests, "post", post)

        with pytest.raises(PaymentGatewayError, match="not configured"):
            create_order(100)
        post.assert_not_called()
