"""
Email models for the course inbox.

EmailData is an inbound message reduced to the fields the decision engine
and categorizer need. It is read-only input and never persisted here.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EmailCategory(str, Enum):
    """Reviewer-facing triage buckets"""
    ASSIGNMENTS = "assignments"
    ANNOUNCEMENTS = "announcements"
    SCHEDULE_CHANGES = "schedule_changes"
    GENERAL = "general"


class EmailData(BaseModel):
    """Inbound message. Accepts ``from`` as an alias of ``from_address``."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    thread_id: Optional[str] = None
    from_address: str = Field(alias="from")
    subject: str = ""
    body: str = ""
    snippet: str = ""
    date: datetime

    @field_validator("date")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive and aware dates must stay comparable when sorting
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def preview(self) -> str:
        """Snippet if the transport supplied one, else the start of the body."""
        return self.snippet or self.body[:200]


class Assignment(BaseModel):
    name: str
    due_date: Optional[str] = None
    description: Optional[str] = None


class SyllabusData(BaseModel):
    """The part of a parsed syllabus the categorizer uses"""
    course_name: Optional[str] = None
    assignments: List[Assignment] = Field(default_factory=list)


class CourseInfo(BaseModel):
    """Course identity used to build a mailbox search query"""
    name: Optional[str] = None
    code: Optional[str] = None
    email: Optional[str] = None


class CategorizedEmail(BaseModel):
    email: EmailData
    category: EmailCategory
    matched_keywords: List[str] = Field(default_factory=list)


GroupedEmails = Dict[EmailCategory, List[CategorizedEmail]]
