"""
Course configuration and triage ledger models.
"""
from datetime import datetime, timezone
from typing import List, Optional
import uuid

from pydantic import BaseModel, Field, field_validator

from course_inbox.core.ai.model_tiers import DEFAULT_TIER, ModelTier, parse_tier
from course_inbox.core.config import get_settings


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class CourseSettings(BaseModel):
    """Per-course automation settings. Unset fields take the application defaults."""
    auto_reply_threshold: float = Field(default_factory=lambda: get_settings().auto_reply_threshold, ge=0.0, le=1.0)
    notify_on_new_question: bool = True
    max_auto_replies_per_day: Optional[int] = Field(None, ge=0)
    model: ModelTier = Field(default_factory=lambda: parse_tier(get_settings().default_model_tier))
    use_smart_model_for_low_confidence: bool = Field(
        default_factory=lambda: get_settings().use_smart_model_for_low_confidence
    )
    smart_model_threshold: float = Field(default_factory=lambda: get_settings().smart_model_threshold, ge=0.0, le=1.0)


class CourseConfig(BaseModel):
    course_id: str
    course_name: str
    professor_email: str
    professor_name: Optional[str] = None
    encrypted_api_key: Optional[str] = None
    settings: CourseSettings = Field(default_factory=CourseSettings)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class PendingQuestion(BaseModel):
    """A suggested answer awaiting professor review"""
    id: str = Field(default_factory=_new_id)
    email_id: str
    thread_id: Optional[str] = None
    from_address: str
    subject: str
    body: str
    received_at: datetime
    suggested_response: str
    confidence: float
    reasoning: str
    model_used: ModelTier = DEFAULT_TIER
    matched_faq_ids: List[str] = Field(default_factory=list)


class AnsweredQuestion(BaseModel):
    """Terminal record of a resolved question"""
    id: str = Field(default_factory=_new_id)
    email_id: str
    from_address: str
    subject: str
    question: str
    response: str
    answered_at: datetime = Field(default_factory=_utcnow)
    was_auto_reply: bool
    added_to_faq: bool = False

    @field_validator("answered_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class CourseStats(BaseModel):
    total_questions: int
    auto_replied: int
    manually_answered: int
    pending_count: int
    auto_reply_rate: float
    this_week: int
