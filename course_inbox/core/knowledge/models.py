"""
Knowledge base models.

One KnowledgeBase per course: FAQs in insertion order plus the syllabus
summary, key dates and policies used to ground automated answers.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
import uuid

from pydantic import BaseModel, Field


class FAQSource(str, Enum):
    """Where an FAQ came from"""
    PROFESSOR_APPROVED = "professor_approved"
    SYLLABUS = "syllabus"
    MANUAL = "manual"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FAQ(BaseModel):
    """A question/answer pair. Only question and answer text may change after creation."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    question: str
    answer: str
    source: FAQSource = FAQSource.PROFESSOR_APPROVED
    created: datetime = Field(default_factory=_utcnow)


class KeyDate(BaseModel):
    date: str
    description: str


class KnowledgeBase(BaseModel):
    course_id: str
    faqs: List[FAQ] = Field(default_factory=list)
    syllabus_summary: Optional[str] = None
    key_dates: List[KeyDate] = Field(default_factory=list)
    policies: List[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.faqs or self.syllabus_summary or self.key_dates or self.policies)


class FAQMatch(BaseModel):
    """An FAQ ranked against a query"""
    faq: FAQ
    similarity: float
