from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from edureach.exceptions import LeadConflictError, LeadNotFoundError
from edureach.models.db import utcnow
from edureach.models.interaction import Interaction
from edureach.schemas import ChatMessage, LeadStatus


def msg(role, content):
    return ChatMessage(role=role, content=content)


@pytest.fixture
def lead(store):
    return store.create_lead({"name": "Asha Rao", "email": "asha@example.com"})


class TestLeads:

    def test_create_applies_column_defaults(self, lead):
        assert lead.status == LeadStatus.NEW
        assert lead.source == "website"
        assert lead.currency == "INR"
        assert lead.interests == []
        assert lead.created_at is not None

    def test_duplicate_email_raises_conflict(self, store, lead):
        with pytest.raises(LeadConflictError) as exc:
            store.create_lead({"name": "Other", "email": "asha@example.com"})
        assert exc.value.status_code == 409
        # session is usable after the rollback
        assert store.find_lead_by_email("asha@example.com").id == lead.id

    def test_get_lead_accepts_strings_and_garbage(self, store, lead):
        assert store.get_lead(str(lead.id)).id == lead.id
        assert store.get_lead("not-a-uuid") is None
        assert store.get_lead(uuid4()) is None

    def test_update_bumps_updated_at(self, store, lead):
        updated = store.update_lead(lead.id, {"phone": "123"})
        assert updated.phone == "123"
        assert updated.updated_at >= lead.updated_at

    def test_update_unknown_lead(self, store):
        with pytest.raises(LeadNotFoundError):
            store.update_lead(uuid4(), {"phone": "123"})

    def test_failed_write_leaves_session_usable(self, store, db_session, lead):
        db_session.execute(text(
            "CREATE TRIGGER reject_updates BEFORE UPDATE ON leads "
            "BEGIN SELECT abs(-9223372036854775807 - 1); END"
        ))
        db_session.commit()

        with pytest.raises(OperationalError):
            store.update_lead(lead.id, {"phone": "123"})

        assert store.get_lead(lead.id).phone is None
        other = store.create_lead({"name": "Ravi Kumar", "email": "ravi@example.com"})
        store.add_interaction(other.id, "email_sent")
        assert len(store.find_interactions(other.id)) == 1


class TestListLeads:

    @pytest.fixture(autouse=True)
    def seed(self, store):
        store.create_lead({"name": "Asha Rao", "email": "asha@example.com", "role": "Teacher"})
        store.create_lead({"name": "Ravi Kumar", "email": "ravi@example.com", "phone": "98765", "status": "contacted"})
        store.create_lead({"name": "Meera Iyer", "email": "meera@school.org", "role": "Principal"})

    def test_all_leads_with_total(self, store):
        leads, total = store.list_leads()
        assert total == 3
        assert len(leads) == 3

    def test_filter_by_status(self, store):
        leads, total = store.list_leads(status="contacted")
        assert total == 1
        assert leads[0].email == "ravi@example.com"

    @pytest.mark.parametrize(
        "search,expected",
        [
            ("ravi", {"ravi@example.com"}),
            ("SCHOOL", {"meera@school.org"}),
            ("987", {"ravi@example.com"}),
            ("teach", {"asha@example.com"}),
            ("example", {"asha@example.com", "ravi@example.com"}),
        ],
    )
    def test_search(self, store, search, expected):
        leads, total = store.list_leads(search=search)
        assert {lead.email for lead in leads} == expected
        assert total == len(expected)

    def test_pagination_keeps_full_total(self, store):
        leads, total = store.list_leads(limit=2, offset=2)
        assert total == 3
        assert len(leads) == 1


class TestInteractions:

    def test_newest_first_and_limited(self, store, db_session, lead):
        base = utcnow()
        for days in range(12):
            db_session.add(Interaction(lead_id=lead.id, type=f"touch-{days}", created_at=base - timedelta(days=days)))
        db_session.commit()

        interactions = store.find_interactions(lead.id, limit=10)

        assert len(interactions) == 10
        assert [i.type for i in interactions[:3]] == ["touch-0", "touch-1", "touch-2"]

    def test_metadata_round_trips_through_json_column(self, store, lead):
        interaction = store.add_interaction(lead.id, "email_sent", content="hi", metadata={"template": "welcome"})
        assert interaction.metadata == {"template": "welcome"}
        assert store.find_interactions(lead.id)[0].metadata == {"template": "welcome"}

    def test_interaction_for_unknown_lead(self, store):
        with pytest.raises(LeadNotFoundError):
            store.add_interaction(uuid4(), "email_sent")


class TestConversations:

    def test_messages_keep_their_order(self, store, lead):
        conversation = store.create_conversation(lead.id, [msg("user", "hi"), msg("assistant", "hello")])
        conversation = store.append_messages(conversation.id, [msg("user", "plans?"), msg("assistant", "three")])

        assert [m.content for m in conversation.messages] == ["hi", "hello", "plans?", "three"]

    def test_append_moves_conversation_to_front(self, store, lead):
        first = store.create_conversation(lead.id, [msg("user", "one")])
        second = store.create_conversation(lead.id, [msg("user", "two")])
        assert [c.id for c in store.find_conversations(lead.id)] == [second.id, first.id]

        appended = store.append_messages(first.id, [msg("user", "again")])

        assert appended.updated_at >= second.updated_at
        assert store.find_conversations(lead.id)[0].id == first.id

    def test_append_to_unknown_conversation(self, store):
        with pytest.raises(LeadNotFoundError, match="Conversation not found"):
            store.append_messages(uuid4(), [msg("user", "hi")])

    def test_latest_conversation_for_email(self, store, lead):
        assert store.latest_conversation_for_email("asha@example.com") is None

        store.create_conversation(lead.id, [msg("user", "older")])
        store.create_conversation(lead.id, [msg("user", "newer")])

        latest = store.latest_conversation_for_email("asha@example.com")
        assert latest.messages[0].content == "newer"
        assert store.latest_conversation_for_email("nobody@example.com") is None
