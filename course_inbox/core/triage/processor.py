"""
Inbound Question Processor

Runs one student email through the decision engine and acts on the result:

- Confident enough (auto-reply gate): send the answer, add the Q&A to the
  course knowledge base and record it in history
- Otherwise: queue the suggestion for professor review and notify them

Mail transport is external: replies and notifications go through async
callables supplied by the caller.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

from course_inbox.core.ai.decision import AnalyzeOptions, Decision, analyze_question, should_auto_reply
from course_inbox.core.ai.providers.base import CompletionService
from course_inbox.core.config import get_settings
from course_inbox.core.courses.ledger import QuestionLedger
from course_inbox.core.courses.models import AnsweredQuestion, CourseConfig, PendingQuestion
from course_inbox.core.email.models import EmailData
from course_inbox.core.knowledge.models import FAQSource
from course_inbox.core.knowledge.store import KnowledgeStore
from course_inbox.core.storage.base import StorageError
from .notifications import format_notification_subject, format_professor_notification, generate_approval_links

logger = logging.getLogger(__name__)

# (email, response text)
ReplySender = Callable[[EmailData, str], Awaitable[None]]
# (to address, subject, body)
Notifier = Callable[[str, str, str], Awaitable[None]]

AUTO_REPLY_WINDOW = timedelta(hours=24)


class TriageAction(str, Enum):
    AUTO_REPLIED = "auto_replied"
    ROUTED = "routed_to_professor"
    SKIPPED = "skipped"


@dataclass
class TriageOutcome:
    email_id: str
    action: TriageAction
    decision: Optional[Decision] = None
    pending_id: Optional[str] = None
    reason: str = ""

    def to_dict(self) -> dict:
        return {
            "email_id": self.email_id,
            "action": self.action.value,
            "decision": self.decision.model_dump(mode="json") if self.decision else None,
            "pending_id": self.pending_id,
            "reason": self.reason,
        }


class QuestionProcessor:
    """Decision engine + auto-reply gate + ledger for one course inbox."""

    def __init__(
        self,
        store: KnowledgeStore,
        ledger: QuestionLedger,
        completion: Optional[CompletionService] = None,
        reply_sender: Optional[ReplySender] = None,
        notifier: Optional[Notifier] = None,
        base_url: Optional[str] = None,
    ):
        self.store = store
        self.ledger = ledger
        self.completion = completion
        self.reply_sender = reply_sender
        self.notifier = notifier
        self.base_url = base_url or get_settings().app_base_url

    async def _auto_replies_in_window(self, course_id: str, now: datetime) -> int:
        history = await self.ledger.get_question_history(course_id)
        since = now - AUTO_REPLY_WINDOW
        return sum(1 for q in history if q.was_auto_reply and q.answered_at > since)

    async def process(
        self,
        course: CourseConfig,
        email: EmailData,
        api_key: Optional[str] = None,
        dry_run: bool = False,
    ) -> TriageOutcome:
        """
        Triage one inbound email.

        Args:
            course: Course config (settings drive the model tier and threshold)
            email: The student's message
            api_key: Completion API key for this course
            dry_run: Decide only; no replies, ledger or knowledge base writes

        Returns:
            TriageOutcome
        """
        if course.professor_email.lower() in email.from_address.lower():
            return TriageOutcome(email_id=email.id, action=TriageAction.SKIPPED, reason="sent by professor")

        settings = course.settings
        knowledge_base = await self.store.get(course.course_id)
        options = AnalyzeOptions.from_settings(settings, api_key)
        decision = await analyze_question(email, knowledge_base, options, self.completion)

        auto_reply = should_auto_reply(decision, options.auto_reply_threshold)
        reason = f"confidence {decision.confidence * 100:.0f}% vs threshold {options.auto_reply_threshold * 100:.0f}%"

        if auto_reply and settings.max_auto_replies_per_day is not None:
            sent = await self._auto_replies_in_window(course.course_id, datetime.now(timezone.utc))
            if sent >= settings.max_auto_replies_per_day:
                auto_reply = False
                reason = f"daily auto-reply limit reached ({sent}/{settings.max_auto_replies_per_day})"

        if dry_run:
            action = TriageAction.AUTO_REPLIED if auto_reply else TriageAction.ROUTED
            return TriageOutcome(email_id=email.id, action=action, decision=decision, reason=f"dry run: {reason}")

        if auto_reply:
            return await self._auto_reply(course, email, decision, reason)
        return await self._route_to_professor(course, email, decision, reason)

    async def _auto_reply(
        self, course: CourseConfig, email: EmailData, decision: Decision, reason: str
    ) -> TriageOutcome:
        if self.reply_sender:
            await self.reply_sender(email, decision.response)

        try:
            await self.store.add_faq(course.course_id, email.body, decision.response, FAQSource.PROFESSOR_APPROVED)
        except StorageError as e:
            # Cache already holds the FAQ
            logger.error(f"FAQ from email {email.id} not persisted for {course.course_id}: {e}")

        await self.ledger.add_to_history(course.course_id, AnsweredQuestion(
            email_id=email.id,
            from_address=email.from_address,
            subject=email.subject,
            question=email.body,
            response=decision.response,
            was_auto_reply=True,
            added_to_faq=True,
        ))

        logger.info(f"Auto-replied to {email.from_address} ({reason})")
        return TriageOutcome(email_id=email.id, action=TriageAction.AUTO_REPLIED, decision=decision, reason=reason)

    async def _route_to_professor(
        self, course: CourseConfig, email: EmailData, decision: Decision, reason: str
    ) -> TriageOutcome:
        pending = PendingQuestion(
            email_id=email.id,
            thread_id=email.thread_id,
            from_address=email.from_address,
            subject=email.subject,
            body=email.body,
            received_at=email.date,
            suggested_response=decision.response,
            confidence=decision.confidence,
            reasoning=decision.reasoning,
            model_used=decision.model_used,
            matched_faq_ids=decision.matched_faq_ids,
        )
        await self.ledger.add_pending_question(course.course_id, pending)

        if course.settings.notify_on_new_question and self.notifier:
            links = generate_approval_links(pending.id, course.course_id, self.base_url)
            await self.notifier(
                course.professor_email,
                format_notification_subject(email),
                format_professor_notification(email, decision, links),
            )

        logger.info(f"Routed question from {email.from_address} to {course.professor_email} ({reason})")
        return TriageOutcome(
            email_id=email.id,
            action=TriageAction.ROUTED,
            decision=decision,
            pending_id=pending.id,
            reason=reason,
        )
