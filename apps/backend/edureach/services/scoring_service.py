"""
Lead Scoring Algorithm

Each signal adds a fixed number of points, awarded at most once:

Profile completeness:
- phone 5, role 3, experience 3, goals 5, interests 2, learning style 2,
  budget 4, international interest 1, plan interest 8, quiz answers 10

Engagement:
- more than one interaction 15, newest interaction under 7 days old 10
- at least one conversation 12, more than one conversation 8
- conversation depth: one point per two messages, at most 10

Payment:
- payment id 20, completed payment 25

The weights add up to more than 100. The total is clamped, not normalized:
a fully engaged, paying lead saturates at 100.

Status ranges:
- 80-100: qualified
- 50-79: contacted
- 30-49: new
- 0-29: status left as it is
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

from ..config import Settings, settings as default_settings
from ..schemas import ConversationRecord, InteractionRecord, LeadRecord, LeadStatus

MAX_SCORE = 100
MESSAGE_BONUS_CAP = 10

SCORE_WEIGHTS = {
    # Base information
    "phone": 5,
    "role": 3,
    "experience": 3,
    "goals": 5,
    "interests": 2,
    "learning_style": 2,
    "budget": 4,
    "international": 1,
    "plan_interest": 8,
    "quiz_answers": 10,
    # Engagement
    "multiple_interactions": 15,
    "recent_interaction": 10,
    "conversation": 12,
    "multiple_conversations": 8,
    # Payment
    "payment_id": 20,
    "completed_payment": 25,
}

# Progression order used by the upgrade-only transition
STATUS_RANK = {
    LeadStatus.NEW: 0,
    LeadStatus.CONTACTED: 1,
    LeadStatus.QUALIFIED: 2,
}
TERMINAL_STATUSES = {LeadStatus.CONVERTED, LeadStatus.LOST}


def _present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return bool(value)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def profile_points(lead: LeadRecord) -> int:
    points = 0
    for field in (
        "phone",
        "role",
        "experience",
        "goals",
        "interests",
        "learning_style",
        "budget",
        "international",
        "plan_interest",
        "quiz_answers",
    ):
        if _present(getattr(lead, field)):
            points += SCORE_WEIGHTS[field]
    return points


def engagement_points(
    interactions: Sequence[InteractionRecord],
    conversations: Sequence[ConversationRecord],
    now: datetime,
    recent_days: int = 7,
) -> int:
    """
    Points for logged interactions and chat conversations.

    Args:
        interactions: Most recent interactions, newest first
        conversations: All conversations of the lead
        now: Reference time for the recency check
        recent_days: Age limit for the newest interaction to count as recent

    Returns:
        int: Engagement points (not clamped)
    """
    points = 0

    if len(interactions) > 1:
        points += SCORE_WEIGHTS["multiple_interactions"]

    if interactions:
        age = now - _as_utc(interactions[0].created_at)
        if age < timedelta(days=recent_days):
            points += SCORE_WEIGHTS["recent_interaction"]

    if conversations:
        points += SCORE_WEIGHTS["conversation"]
        if len(conversations) > 1:
            points += SCORE_WEIGHTS["multiple_conversations"]

        total_messages = sum(len(conv.messages) for conv in conversations)
        points += min(total_messages // 2, MESSAGE_BONUS_CAP)

    return points


def payment_points(lead: LeadRecord) -> int:
    points = 0
    if _present(lead.payment_id):
        points += SCORE_WEIGHTS["payment_id"]
    if lead.payment_status == "completed":
        points += SCORE_WEIGHTS["completed_payment"]
    return points


def calculate_lead_score(
    lead: LeadRecord,
    interactions: Optional[Iterable[InteractionRecord]] = None,
    conversations: Optional[Iterable[ConversationRecord]] = None,
    store=None,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> int:
    """
    Calculate lead engagement score (0-100)

    Missing collections are read from the store: the newest interactions
    (up to SCORING_INTERACTION_LIMIT) and every conversation.

    Args:
        lead: Lead snapshot
        interactions: Pre-fetched interactions, newest first
        conversations: Pre-fetched conversations
        store: EngagementStore used when a collection is not supplied
        now: Reference time (defaults to current UTC time)
        settings: Thresholds and fetch limit (defaults to the app settings)

    Returns:
        int: Score between 0 and 100
    """
    settings = settings or default_settings
    if (interactions is None or conversations is None) and store is None:
        raise ValueError("A store is required when interactions or conversations are not supplied")

    if interactions is None:
        interactions = store.find_interactions(lead.id, limit=settings.SCORING_INTERACTION_LIMIT)
    if conversations is None:
        conversations = store.find_conversations(lead.id)

    interactions = list(interactions)
    conversations = list(conversations)
    now = _as_utc(now) if now else datetime.now(timezone.utc)

    score = (
        profile_points(lead)
        + engagement_points(interactions, conversations, now, settings.RECENT_INTERACTION_DAYS)
        + payment_points(lead)
    )
    return min(max(0, score), MAX_SCORE)


def status_from_score(
    score: int,
    current_status: LeadStatus,
    settings: Optional[Settings] = None,
) -> LeadStatus:
    """
    Raw status cascade, first match wins

    Args:
        score: Lead score (0-100)
        current_status: Status before scoring

    Returns:
        LeadStatus: qualified / contacted / new, or current_status below the new threshold
    """
    settings = settings or default_settings
    if score >= settings.QUALIFIED_SCORE:
        return LeadStatus.QUALIFIED
    if score >= settings.CONTACTED_SCORE:
        return LeadStatus.CONTACTED
    if score >= settings.NEW_SCORE:
        return LeadStatus.NEW
    return LeadStatus(current_status)


def next_status(
    score: int,
    current_status: LeadStatus,
    allow_downgrade: Optional[bool] = None,
    settings: Optional[Settings] = None,
) -> LeadStatus:
    """
    Status a lead moves to after scoring.

    Upgrade-only by default: converted and lost leads are left alone, and a
    lead never falls back below its current stage. With allow_downgrade the
    raw cascade is applied as-is.
    """
    settings = settings or default_settings
    current_status = LeadStatus(current_status)
    if allow_downgrade is None:
        allow_downgrade = settings.STATUS_ALLOW_DOWNGRADE

    candidate = status_from_score(score, current_status, settings)
    if allow_downgrade:
        return candidate

    if current_status in TERMINAL_STATUSES:
        return current_status
    if STATUS_RANK[candidate] < STATUS_RANK[current_status]:
        return current_status
    return candidate
