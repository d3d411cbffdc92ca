"""
Shared fixtures for course_inbox tests.
"""
# Configure the environment BEFORE importing anything that reads settings
import os

os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("ENCRYPTION_SECRET", "test-encryption-secret")

import pytest
from datetime import datetime, timezone
from typing import List, Optional, Union

from course_inbox.core.ai.model_tiers import ModelTier
from course_inbox.core.ai.providers.base import CompletionResult, CompletionService, TokenUsage
from course_inbox.core.config import reload_settings
from course_inbox.core.email.models import EmailData
from course_inbox.core.knowledge.models import FAQ, KeyDate, KnowledgeBase

reload_settings()


class FakeCompletionService(CompletionService):
    """
    Scripted completion service.

    Each call consumes the next scripted reply (the last one repeats).
    Exceptions in the script are raised instead of returned.
    """

    def __init__(self, replies: Optional[List[Union[str, Exception]]] = None):
        super().__init__()
        self.replies = list(replies or ['{"confidence": 0.9, "response": "ok", "reasoning": "test"}'])
        self.calls = []

    async def _complete_impl(self, system_prompt: str, user_prompt: str, tier: ModelTier) -> CompletionResult:
        self.calls.append({"system": system_prompt, "user": user_prompt, "tier": tier})
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return CompletionResult(
            text=reply,
            usage=TokenUsage(prompt_tokens=500, completion_tokens=200, total_tokens=700),
        )

    @property
    def tiers_called(self) -> List[ModelTier]:
        return [call["tier"] for call in self.calls]


@pytest.fixture
def fake_completion():
    """Factory for scripted completion services"""
    def _make(*replies):
        return FakeCompletionService(list(replies) if replies else None)
    return _make


@pytest.fixture
def make_email():
    """Factory for student emails"""
    def _make(
        body: str = "When is the midterm exam?",
        subject: str = "Question about the midterm",
        from_address: str = "student@university.edu",
        email_id: str = "msg-1",
        date: Optional[datetime] = None,
        snippet: str = "",
    ) -> EmailData:
        return EmailData(
            id=email_id,
            thread_id=f"thread-{email_id}",
            from_address=from_address,
            subject=subject,
            body=body,
            snippet=snippet,
            date=date or datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc),
        )
    return _make


@pytest.fixture
def empty_knowledge_base():
    return KnowledgeBase(course_id="cs-101")


@pytest.fixture
def course_knowledge_base():
    """Knowledge base with every section filled"""
    return KnowledgeBase(
        course_id="cs-101",
        syllabus_summary="Intro to CS. Weekly labs, one midterm, one final project.",
        key_dates=[
            KeyDate(date="2025-03-15", description="Midterm exam"),
            KeyDate(date="2025-02-01", description="Add/drop deadline"),
        ],
        policies=["Late work loses 10% per day", "Labs are graded pass/fail"],
        faqs=[
            FAQ(id="faq-office", question="Where are office hours held?", answer="Room 204, Tuesdays 3-5pm"),
            FAQ(id="faq-late", question="Can I submit the lab late?", answer="Yes, with a 10% penalty per day"),
        ],
    )
