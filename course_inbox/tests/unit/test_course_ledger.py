"""
Test the pending queue, the answered-question history and course stats.
"""
from datetime import datetime, timedelta, timezone

import pytest

from course_inbox.core.courses.ledger import QuestionLedger
from course_inbox.core.courses.models import AnsweredQuestion, PendingQuestion
from course_inbox.core.courses.repository import HISTORY_FILE
from course_inbox.core.knowledge.models import FAQSource
from course_inbox.core.knowledge.store import KNOWLEDGE_BASE_FILE, KnowledgeStore
from course_inbox.core.storage.base import StorageError
from course_inbox.core.storage.memory import InMemoryBackend

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class _FailingBackend(InMemoryBackend):
    """Rejects writes to one document."""

    def __init__(self, failing_file):
        super().__init__()
        self.failing_file = failing_file

    async def write_json(self, course_id, filename, payload):
        if filename == self.failing_file:
            raise StorageError(f"{filename} unavailable")
        await super().write_json(course_id, filename, payload)


def _answered(email_id="msg-1", auto=True, answered_at=None):
    return AnsweredQuestion(
        email_id=email_id,
        from_address="student@university.edu",
        subject="Question",
        question="When is the midterm?",
        response="March 15",
        answered_at=answered_at or NOW,
        was_auto_reply=auto,
    )


def _pending(email_id="msg-1"):
    return PendingQuestion(
        email_id=email_id,
        from_address="student@university.edu",
        subject="Extension request",
        body="Can I get an extension on lab 3?",
        received_at=NOW,
        suggested_response="Please talk to the professor.",
        confidence=0.4,
        reasoning="Needs professor judgment",
    )


class TestPendingQueue:

    @pytest.mark.asyncio
    async def test_add_and_remove(self):
        ledger = QuestionLedger()
        question = _pending()

        await ledger.add_pending_question("cs-101", question)
        assert [q.id for q in await ledger.get_pending_questions("cs-101")] == [question.id]

        removed = await ledger.remove_pending_question("cs-101", question.id)
        assert removed.email_id == "msg-1"
        assert await ledger.get_pending_questions("cs-101") == []

    @pytest.mark.asyncio
    async def test_remove_unknown(self):
        ledger = QuestionLedger()
        await ledger.add_pending_question("cs-101", _pending())

        assert await ledger.remove_pending_question("cs-101", "missing") is None
        assert len(await ledger.get_pending_questions("cs-101")) == 1

    @pytest.mark.asyncio
    async def test_unknown_course_is_empty(self):
        ledger = QuestionLedger()
        assert await ledger.get_pending_questions("nope") == []
        assert await ledger.get_question_history("nope") == []


class TestHistory:

    @pytest.mark.asyncio
    async def test_oldest_entries_dropped_first(self):
        ledger = QuestionLedger(history_limit=5)

        for i in range(7):
            await ledger.add_to_history("cs-101", _answered(email_id=f"msg-{i}"))

        history = await ledger.get_question_history("cs-101")
        assert [q.email_id for q in history] == [f"msg-{i}" for i in range(2, 7)]

    @pytest.mark.asyncio
    async def test_default_cap_is_one_thousand(self):
        backend = InMemoryBackend()
        seeded = [_answered(email_id=f"msg-{i}").model_dump(mode="json") for i in range(1000)]
        await backend.write_json("cs-101", HISTORY_FILE, {"questions": seeded})
        ledger = QuestionLedger(backend)

        await ledger.add_to_history("cs-101", _answered(email_id="msg-new"))

        history = await ledger.get_question_history("cs-101")
        assert len(history) == 1000
        assert history[0].email_id == "msg-1"
        assert history[-1].email_id == "msg-new"

    @pytest.mark.asyncio
    async def test_limit_returns_most_recent(self):
        ledger = QuestionLedger()
        for i in range(4):
            await ledger.add_to_history("cs-101", _answered(email_id=f"msg-{i}"))

        recent = await ledger.get_question_history("cs-101", limit=2)

        assert [q.email_id for q in recent] == ["msg-2", "msg-3"]

    @pytest.mark.parametrize("limit", [0, -5])
    def test_limit_must_be_positive(self, limit):
        with pytest.raises(ValueError, match="history_limit"):
            QuestionLedger(history_limit=limit)


class TestCourseStats:

    @pytest.mark.asyncio
    async def test_empty_course(self):
        stats = await QuestionLedger().get_course_stats("cs-101", now=NOW)

        assert stats.total_questions == 0
        assert stats.auto_reply_rate == 0.0
        assert stats.this_week == 0

    @pytest.mark.asyncio
    async def test_counts_and_rate(self):
        ledger = QuestionLedger()
        await ledger.add_to_history("cs-101", _answered("a", auto=True, answered_at=NOW - timedelta(days=1)))
        await ledger.add_to_history("cs-101", _answered("b", auto=False, answered_at=NOW - timedelta(days=3)))
        await ledger.add_to_history("cs-101", _answered("c", auto=True, answered_at=NOW - timedelta(days=8)))
        await ledger.add_to_history("cs-101", _answered("d", auto=False, answered_at=NOW - timedelta(days=7)))
        await ledger.add_pending_question("cs-101", _pending())

        stats = await ledger.get_course_stats("cs-101", now=NOW)

        assert stats.total_questions == 4
        assert stats.auto_replied == 2
        assert stats.manually_answered == 2
        assert stats.pending_count == 1
        assert stats.auto_reply_rate == 50.0
        # Exactly seven days old is outside the window
        assert stats.this_week == 2

    @pytest.mark.asyncio
    async def test_naive_now_treated_as_utc(self):
        ledger = QuestionLedger()
        await ledger.add_to_history("cs-101", _answered(answered_at=NOW - timedelta(hours=1)))

        stats = await ledger.get_course_stats("cs-101", now=NOW.replace(tzinfo=None))

        assert stats.this_week == 1


class TestReviewerActions:

    @pytest.mark.asyncio
    async def test_approve_with_suggested_response(self):
        ledger = QuestionLedger()
        question = _pending()
        await ledger.add_pending_question("cs-101", question)

        answered = await ledger.approve_pending("cs-101", question.id)

        assert answered.response == "Please talk to the professor."
        assert answered.question == "Can I get an extension on lab 3?"
        assert answered.was_auto_reply is False
        assert answered.added_to_faq is False
        assert await ledger.get_pending_questions("cs-101") == []
        assert [q.id for q in await ledger.get_question_history("cs-101")] == [answered.id]

    @pytest.mark.asyncio
    async def test_approve_edited_response_into_faq(self):
        store = KnowledgeStore()
        ledger = QuestionLedger(knowledge_store=store)
        question = _pending()
        await ledger.add_pending_question("cs-101", question)

        answered = await ledger.approve_pending(
            "cs-101", question.id, response="Yes, one week extension.", add_to_faq=True
        )

        faqs = await store.list_faqs("cs-101")
        assert answered.response == "Yes, one week extension."
        assert answered.added_to_faq is True
        assert [(f.question, f.answer) for f in faqs] == [
            ("Can I get an extension on lab 3?", "Yes, one week extension.")
        ]
        assert faqs[0].source == FAQSource.PROFESSOR_APPROVED

    @pytest.mark.asyncio
    async def test_approve_unknown_question(self):
        assert await QuestionLedger().approve_pending("cs-101", "missing") is None

    @pytest.mark.asyncio
    async def test_add_to_faq_requires_store(self):
        ledger = QuestionLedger()
        question = _pending()
        await ledger.add_pending_question("cs-101", question)

        with pytest.raises(ValueError, match="knowledge store"):
            await ledger.approve_pending("cs-101", question.id, add_to_faq=True)

        assert len(await ledger.get_pending_questions("cs-101")) == 1

    @pytest.mark.asyncio
    async def test_ignore(self):
        ledger = QuestionLedger()
        question = _pending()
        await ledger.add_pending_question("cs-101", question)

        ignored = await ledger.ignore_pending("cs-101", question.id)

        assert ignored.id == question.id
        assert await ledger.get_pending_questions("cs-101") == []
        assert await ledger.get_question_history("cs-101") == []

    @pytest.mark.asyncio
    async def test_approve_survives_knowledge_base_write_failure(self):
        backend = _FailingBackend(KNOWLEDGE_BASE_FILE)
        store = KnowledgeStore(backend)
        ledger = QuestionLedger(backend, knowledge_store=store)
        question = _pending()
        await ledger.add_pending_question("cs-101", question)

        answered = await ledger.approve_pending("cs-101", question.id, add_to_faq=True)

        assert answered.added_to_faq is True
        assert await ledger.get_pending_questions("cs-101") == []
        assert [q.id for q in await ledger.get_question_history("cs-101")] == [answered.id]
        # The FAQ lives on in the cache
        assert [f.question for f in (await store.get("cs-101")).faqs] == ["Can I get an extension on lab 3?"]

    @pytest.mark.asyncio
    async def test_failed_history_write_keeps_question_pending(self):
        ledger = QuestionLedger(_FailingBackend(HISTORY_FILE))
        question = _pending()
        await ledger.add_pending_question("cs-101", question)

        with pytest.raises(StorageError):
            await ledger.approve_pending("cs-101", question.id)

        assert [q.id for q in await ledger.get_pending_questions("cs-101")] == [question.id]
