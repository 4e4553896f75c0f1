"""
Razorpay checkout helpers: order creation and payment signature checks.
"""

import hashlib
import hmac
from typing import Any, Dict, Optional

import requests
from loguru import logger

from ..config import settings
from ..exceptions import PaymentGatewayError, PaymentSignatureError


def create_order(
    amount: int,
    currency: str = "INR",
    receipt: Optional[str] = None,
    notes: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Create a Razorpay order

    Args:
        amount: Amount in the smallest currency unit (paise for INR)
        currency: ISO currency code
        receipt: Merchant receipt reference
        notes: Free-form key/value notes attached to the order

    Returns:
        dict: id, currency, amount, receipt, status, created_at
    """
    if not settings.RAZORPAY_KEY_ID or not settings.RAZORPAY_KEY_SECRET:
        raise PaymentGatewayError("Razorpay is not configured")

    payload = {
        "amount": amount,
        "currency": currency,
        "receipt": receipt,
        "notes": notes or {},
        "payment_capture": 1,
    }

    try:
        response = requests.post(
            f"{settings.RAZORPAY_API_URL}/orders",
            json=payload,
            auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET),
            timeout=10,
        )
    except requests.RequestException as e:
        logger.error("Error creating Razorpay order: {}", e)
        raise PaymentGatewayError("Failed to create order") from e

    if response.status_code >= 400:
        logger.error("Razorpay returned {}: {}", response.status_code, response.text)
        raise PaymentGatewayError("Failed to create order")

    order = response.json()
    return {
        "id": order.get("id"),
        "currency": order.get("currency"),
        "amount": order.get("amount"),
        "receipt": order.get("receipt"),
        "status": order.get("status"),
        "created_at": order.get("created_at"),
    }


def payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(order_id: str, payment_id: str, signature: str, secret: Optional[str] = None) -> None:
    """
    Check a checkout signature (HMAC-SHA256 of "order_id|payment_id")

    Raises:
        PaymentSignatureError: signature does not match
    """
    secret = secret or settings.RAZORPAY_KEY_SECRET
    if not secret:
        raise PaymentGatewayError("Razorpay is not configured")

    expected = payment_signature(order_id, payment_id, secret)
    if not hmac.compare_digest(expected, signature or ""):
        logger.warning("Invalid payment signature for order {}", order_id)
        raise PaymentSignatureError()
