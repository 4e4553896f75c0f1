"""
Lead orchestration: form upsert, score recompute, batch rescoring and
payment recording.

The service owns no state. The store, the notification sender and the task
dispatcher are handed in by the caller (API dependency, CLI, tests).
"""

import re
from typing import Any, Dict, Optional, Protocol, Tuple
from uuid import UUID

from loguru import logger
from starlette.concurrency import run_in_threadpool

from ..config import Settings, settings as default_settings
from ..exceptions import LeadNotFoundError, LeadValidationError
from ..schemas import LeadForm, LeadRecord, LeadStatus
from .scoring_service import calculate_lead_score, next_status
from .store import EngagementStore
from .tasks import TaskDispatcher

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Form fields merged onto an existing lead when supplied
MERGE_FIELDS = (
    "phone",
    "role",
    "experience",
    "goals",
    "interests",
    "learning_style",
    "budget",
    "international",
    "preferred_contact",
    "hear_about_us",
    "plan_interest",
    "quiz_answers",
    "payment_status",
    "payment_id",
    "order_id",
    "amount",
    "currency",
)


class Notifier(Protocol):
    async def notify_new_or_updated_lead(self, lead: LeadRecord) -> Any: ...

    async def notify_welcome(self, email: str, name: str) -> Any: ...

    async def notify_payment_confirmation(self, lead: LeadRecord) -> Any: ...


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _cleared(value):
    # Explicit falsy values clear the field; empty lists stay lists
    if isinstance(value, list):
        return value
    if value is None or value == "" or value == {}:
        return None
    return value


class LeadService:
    def __init__(
        self,
        store: EngagementStore,
        notifier: Notifier,
        dispatcher: TaskDispatcher,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.dispatcher = dispatcher
        self.settings = settings or default_settings

    # ------------------------------------------------------------------
    # Form upsert
    # ------------------------------------------------------------------

    @staticmethod
    def validate_form(form: LeadForm) -> None:
        if not (form.name or "").strip() or not (form.email or "").strip():
            raise LeadValidationError("Name and email are required fields")
        if not EMAIL_RE.match(form.email.strip()):
            raise LeadValidationError("Please enter a valid email address")

    def _update_fields(self, form: LeadForm, existing: LeadRecord) -> Dict[str, Any]:
        supplied = form.model_fields_set
        fields: Dict[str, Any] = {"name": form.name.strip()}

        for field in MERGE_FIELDS:
            if field in supplied:
                fields[field] = _cleared(getattr(form, field))

        if "interests" in supplied and fields["interests"] is None:
            fields["interests"] = []

        if "membership_plan_id" in supplied:
            fields["membership_plan_id"] = form.membership_plan_id

        if existing.status == LeadStatus.LOST:
            fields["status"] = LeadStatus.NEW.value

        return fields

    def _create_fields(self, form: LeadForm, email: str) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            "name": form.name.strip(),
            "email": email,
            "ai_score": 0,
            "status": LeadStatus.NEW.value,
            "source": "website",
        }
        for field in MERGE_FIELDS:
            value = _cleared(getattr(form, field))
            if value is not None:
                fields[field] = value

        fields.setdefault("interests", [])
        fields.setdefault("preferred_contact", "email")
        fields.setdefault("currency", self.settings.DEFAULT_CURRENCY)
        if form.membership_plan_id:
            fields["membership_plan_id"] = form.membership_plan_id
        return fields

    async def upsert(self, form: LeadForm) -> Tuple[LeadRecord, bool]:
        """
        Create or update a lead from a form submission.

        Email is the dedup key. The score is recomputed after the write and
        persisted only when it moved by at least SCORE_HYSTERESIS points;
        below that the status is left as it was too. Store work runs in the
        threadpool, notifications go out as detached tasks.

        Returns:
            tuple: (lead, created)

        Raises:
            LeadValidationError: missing name/email or malformed email
            LeadConflictError: a concurrent submission created the same email
        """
        self.validate_form(form)
        lead, created = await run_in_threadpool(self._write_lead, form)

        if created:
            self.dispatcher.dispatch(
                self.notifier.notify_welcome(lead.email, lead.name),
                name=f"welcome:{lead.id}",
            )
        self.dispatcher.dispatch(
            self.notifier.notify_new_or_updated_lead(lead),
            name=f"admin-notification:{lead.id}",
        )
        return lead, created

    async def upsert_lead(self, form: LeadForm) -> LeadRecord:
        lead, _ = await self.upsert(form)
        return lead

    def _write_lead(self, form: LeadForm) -> Tuple[LeadRecord, bool]:
        email = normalize_email(form.email)

        existing = self.store.find_lead_by_email(email)
        if existing:
            resurrected = existing.status == LeadStatus.LOST
            lead = self.store.update_lead(existing.id, self._update_fields(form, existing))
            if resurrected:
                logger.info("Lead {} resubmitted after being lost, status reset to new", lead.id)
            return self._refresh_score(lead, created=False, pin_status=resurrected), False

        lead = self.store.create_lead(self._create_fields(form, email))
        logger.info("Created lead {} ({})", lead.id, lead.email)
        return self._refresh_score(lead, created=True, pin_status=False), True

    def _refresh_score(self, lead: LeadRecord, created: bool, pin_status: bool) -> LeadRecord:
        try:
            if created:
                score = calculate_lead_score(lead, interactions=[], conversations=[], settings=self.settings)
            else:
                score = calculate_lead_score(lead, store=self.store, settings=self.settings)

            if abs((lead.ai_score or 0) - score) < self.settings.SCORE_HYSTERESIS:
                return lead

            fields: Dict[str, Any] = {"ai_score": score}
            if not pin_status:
                status = next_status(score, lead.status, settings=self.settings)
                if status != lead.status:
                    fields["status"] = status.value
            return self.store.update_lead(lead.id, fields)
        except Exception as e:
            logger.opt(exception=e).error("Error updating score for lead {}", lead.id)
            return lead

    # ------------------------------------------------------------------
    # Recompute
    # ------------------------------------------------------------------

    def recompute_score(self, lead_id: UUID) -> int:
        """
        Recompute and persist score and status for one lead

        Raises:
            LeadNotFoundError: no lead with this id
        """
        lead = self.store.get_lead(lead_id)
        if not lead:
            raise LeadNotFoundError(lead_id)

        score = calculate_lead_score(lead, store=self.store, settings=self.settings)
        status = next_status(score, lead.status, settings=self.settings)
        self.store.update_lead(lead.id, {"ai_score": score, "status": status.value})
        return score

    def rescore_all(self) -> Dict[str, int]:
        """
        Recompute every lead, one at a time.

        A failing lead is logged and skipped.

        Returns:
            dict: {"total": leads seen, "updated": leads successfully rescored}
        """
        lead_ids = self.store.list_all_lead_ids()
        updated = 0
        for lead_id in lead_ids:
            try:
                self.recompute_score(lead_id)
                updated += 1
            except Exception as e:
                logger.opt(exception=e).error("Error updating score for lead {}", lead_id)

        logger.info("Rescored {}/{} leads", updated, len(lead_ids))
        return {"total": len(lead_ids), "updated": updated}

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    async def record_payment(
        self,
        lead_id: UUID,
        payment_id: str,
        order_id: str,
        amount: Optional[int] = None,
        plan_name: Optional[str] = None,
    ) -> LeadRecord:
        """Mark a verified payment on the lead and convert it"""
        lead = await run_in_threadpool(self._apply_payment, lead_id, payment_id, order_id, amount, plan_name)
        self.dispatcher.dispatch(
            self.notifier.notify_payment_confirmation(lead),
            name=f"payment-confirmation:{lead.id}",
        )
        return lead

    def _apply_payment(
        self,
        lead_id: UUID,
        payment_id: str,
        order_id: str,
        amount: Optional[int],
        plan_name: Optional[str],
    ) -> LeadRecord:
        lead = self.store.get_lead(lead_id)
        if not lead:
            raise LeadNotFoundError(lead_id)

        fields: Dict[str, Any] = {
            "payment_status": "completed",
            "payment_id": payment_id,
            "order_id": order_id,
            "status": LeadStatus.CONVERTED.value,
        }
        if amount is not None:
            fields["amount"] = amount
        if plan_name:
            fields["plan_interest"] = plan_name
        lead = self.store.update_lead(lead.id, fields)

        try:
            self.store.add_interaction(
                lead.id,
                "payment_verified",
                content=f"Payment {payment_id} verified for order {order_id}",
                metadata={"payment_id": payment_id, "order_id": order_id, "amount": amount, "plan": plan_name},
            )
            score = calculate_lead_score(lead, store=self.store, settings=self.settings)
            lead = self.store.update_lead(lead.id, {"ai_score": score})
        except Exception as e:
            logger.opt(exception=e).error("Error rescoring lead {} after payment", lead.id)
        return lead
