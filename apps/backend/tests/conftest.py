# tests/conftest.py

import os

# Keep the app engine in memory and SMTP in dev mode before anything imports settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ["SMTP_USERNAME"] = ""
os.environ["SMTP_PASSWORD"] = ""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from edureach.models import create_all
from edureach.schemas import ChatMessage, ConversationRecord, InteractionRecord, LeadRecord
from edureach.services.lead_service import LeadService
from edureach.services.store import SqlEngagementStore
from edureach.services.tasks import TaskDispatcher


class FakeNotifier:
    """Records notifications instead of sending email"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.admin = []
        self.welcome = []
        self.payments = []

    async def notify_new_or_updated_lead(self, lead):
        if self.fail:
            raise RuntimeError("smtp down")
        self.admin.append(lead)

    async def notify_welcome(self, email, name):
        if self.fail:
            raise RuntimeError("smtp down")
        self.welcome.append((email, name))

    async def notify_payment_confirmation(self, lead):
        if self.fail:
            raise RuntimeError("smtp down")
        self.payments.append(lead)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db_session):
    return SqlEngagementStore(db_session)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def dispatcher():
    return TaskDispatcher()


@pytest.fixture
def service(store, notifier, dispatcher):
    return LeadService(store, notifier, dispatcher)


@pytest.fixture
def now():
    return datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_lead():
    """Build a LeadRecord snapshot with sensible defaults"""

    def _make(**overrides):
        data = {
            "id": uuid4(),
            "name": "Asha Rao",
            "email": "asha@example.com",
            "interests": [],
            "status": "new",
        }
        data.update(overrides)
        return LeadRecord(**data)

    return _make


@pytest.fixture
def make_interaction():
    def _make(created_at, type="email_sent"):
        return InteractionRecord(type=type, created_at=created_at)

    return _make


@pytest.fixture
def make_conversation():
    def _make(message_count=2):
        messages = [
            ChatMessage(role="user" if i % 2 == 0 else "assistant", content=f"message {i}")
            for i in range(message_count)
        ]
        return ConversationRecord(messages=messages)

    return _make


@pytest.fixture
def full_lead(make_lead):
    """Lead carrying every profile and payment signal"""
    return make_lead(
        phone="+91 98765 43210",
        role="Teacher",
        experience="5-10 years",
        goals="Become a department head",
        interests=["edtech", "leadership"],
        learning_style="visual",
        budget="10k-20k",
        international="yes",
        plan_interest="premium",
        quiz_answers={"q1": "b"},
        payment_id="pay_123",
        payment_status="completed",
    )


@pytest.fixture
def old(now):
    return now - timedelta(days=30)
