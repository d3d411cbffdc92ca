"""
Pending/History Ledger

Tracks triage outcomes per course:
- pending-queue.json: suggested answers awaiting professor review
- history.json: resolved questions, append-ordered, capped at the most
  recent ``history_limit`` entries (oldest dropped first)

Reviewer actions (approve, ignore) move questions out of the pending queue.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from course_inbox.core.knowledge.models import FAQSource
from course_inbox.core.knowledge.store import KnowledgeStore
from course_inbox.core.storage.base import StorageBackend, StorageError
from course_inbox.core.storage.memory import InMemoryBackend
from .models import AnsweredQuestion, CourseStats, PendingQuestion
from .repository import HISTORY_FILE, PENDING_QUEUE_FILE

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 1000
STATS_WINDOW = timedelta(days=7)


class QuestionLedger:
    """Pending queue and answered-question history for each course."""

    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        knowledge_store: Optional[KnowledgeStore] = None,
    ):
        """
        Args:
            backend: Durable store; in-memory when omitted
            history_limit: Max answered questions kept per course
            knowledge_store: Where approved answers are added as FAQs

        Raises:
            ValueError: history_limit below 1
        """
        if history_limit < 1:
            raise ValueError(f"history_limit must be at least 1, got {history_limit}")
        self.backend = backend or InMemoryBackend()
        self.history_limit = history_limit
        self.knowledge_store = knowledge_store

    # ------------------------------------------------------------------
    # Pending queue
    # ------------------------------------------------------------------

    async def get_pending_questions(self, course_id: str) -> List[PendingQuestion]:
        data = await self.backend.read_json(course_id, PENDING_QUEUE_FILE)
        return [PendingQuestion.model_validate(q) for q in (data or {}).get("questions", [])]

    async def _save_pending(self, course_id: str, questions: List[PendingQuestion]) -> None:
        await self.backend.write_json(
            course_id,
            PENDING_QUEUE_FILE,
            {"questions": [q.model_dump(mode="json") for q in questions]},
        )

    async def add_pending_question(self, course_id: str, question: PendingQuestion) -> None:
        questions = await self.get_pending_questions(course_id)
        questions.append(question)
        await self._save_pending(course_id, questions)

    async def remove_pending_question(self, course_id: str, question_id: str) -> Optional[PendingQuestion]:
        questions = await self.get_pending_questions(course_id)
        for index, question in enumerate(questions):
            if question.id == question_id:
                removed = questions.pop(index)
                await self._save_pending(course_id, questions)
                return removed
        return None

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def get_question_history(self, course_id: str, limit: Optional[int] = None) -> List[AnsweredQuestion]:
        """Answered questions, oldest first. ``limit`` keeps only the most recent ones."""
        data = await self.backend.read_json(course_id, HISTORY_FILE)
        questions = [AnsweredQuestion.model_validate(q) for q in (data or {}).get("questions", [])]
        if limit:
            return questions[-limit:]
        return questions

    async def add_to_history(self, course_id: str, question: AnsweredQuestion) -> None:
        questions = await self.get_question_history(course_id)
        questions.append(question)

        if len(questions) > self.history_limit:
            dropped = len(questions) - self.history_limit
            questions = questions[-self.history_limit:]
            logger.debug(f"History for {course_id} trimmed by {dropped} entries")

        await self.backend.write_json(
            course_id,
            HISTORY_FILE,
            {"questions": [q.model_dump(mode="json") for q in questions]},
        )

    async def get_course_stats(self, course_id: str, now: Optional[datetime] = None) -> CourseStats:
        history = await self.get_question_history(course_id)
        pending = await self.get_pending_questions(course_id)

        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        one_week_ago = now - STATS_WINDOW

        total = len(history)
        auto_replied = sum(1 for q in history if q.was_auto_reply)
        this_week = sum(1 for q in history if q.answered_at > one_week_ago)

        return CourseStats(
            total_questions=total,
            auto_replied=auto_replied,
            manually_answered=total - auto_replied,
            pending_count=len(pending),
            auto_reply_rate=(auto_replied / total * 100) if total > 0 else 0.0,
            this_week=this_week,
        )

    # ------------------------------------------------------------------
    # Reviewer actions
    # ------------------------------------------------------------------

    async def approve_pending(
        self,
        course_id: str,
        question_id: str,
        response: Optional[str] = None,
        add_to_faq: bool = False,
    ) -> Optional[AnsweredQuestion]:
        """
        Resolve a pending question with the suggested (or edited) response.

        Returns:
            The history entry, or None if the question is not pending

        Raises:
            ValueError: add_to_faq requested without a knowledge store
        """
        if add_to_faq and self.knowledge_store is None:
            raise ValueError("add_to_faq requires a knowledge store")

        pending = next((q for q in await self.get_pending_questions(course_id) if q.id == question_id), None)
        if pending is None:
            return None

        final_response = response or pending.suggested_response
        if add_to_faq:
            try:
                await self.knowledge_store.add_faq(
                    course_id, pending.body, final_response, FAQSource.PROFESSOR_APPROVED
                )
            except StorageError as e:
                # Cache already holds the FAQ
                logger.error(f"Approved FAQ for question {question_id} not persisted for {course_id}: {e}")

        answered = AnsweredQuestion(
            email_id=pending.email_id,
            from_address=pending.from_address,
            subject=pending.subject,
            question=pending.body,
            response=final_response,
            was_auto_reply=False,
            added_to_faq=add_to_faq,
        )
        await self.add_to_history(course_id, answered)
        # Dequeue last so a failed history write leaves the question pending
        await self.remove_pending_question(course_id, question_id)
        logger.info(f"Approved pending question {question_id} for {course_id} (edited: {bool(response)})")
        return answered

    async def ignore_pending(self, course_id: str, question_id: str) -> Optional[PendingQuestion]:
        removed = await self.remove_pending_question(course_id, question_id)
        if removed:
            logger.info(f"Ignored pending question {question_id} for {course_id}")
        return removed
