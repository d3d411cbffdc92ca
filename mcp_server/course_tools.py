"""
Course tools backing the MCP server.

Each method performs one tool action against the course_inbox core and
returns a JSON-serializable dict with a ``success`` flag. Argument presence is
checked by the server before these methods are called.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from course_inbox.core.ai.decision import AnalyzeOptions, analyze_question, should_auto_reply
from course_inbox.core.ai.model_tiers import MODEL_INFO, TIER_ORDER, estimate_cost, parse_tier
from course_inbox.core.ai.providers.base import CompletionService
from course_inbox.core.config import build_storage_backend, get_settings
from course_inbox.core.courses.ledger import QuestionLedger
from course_inbox.core.courses.models import CourseSettings
from course_inbox.core.courses.repository import CourseRepository
from course_inbox.core.email.categorizer import EmailCategorizer, get_categorizer
from course_inbox.core.email.models import Assignment, EmailData, SyllabusData
from course_inbox.core.knowledge.models import FAQSource
from course_inbox.core.knowledge.store import KnowledgeStore
from course_inbox.core.storage.memory import InMemoryBackend

logger = logging.getLogger(__name__)


def _faq_dict(faq) -> Dict[str, Any]:
    return faq.model_dump(mode="json")


class CourseToolsClient:
    """Course Q&A operations exposed as MCP tools."""

    def __init__(
        self,
        store: Optional[KnowledgeStore] = None,
        ledger: Optional[QuestionLedger] = None,
        repository: Optional[CourseRepository] = None,
        completion: Optional[CompletionService] = None,
        categorizer: Optional[EmailCategorizer] = None,
    ):
        settings = get_settings()
        if store is None or ledger is None or repository is None:
            backend = build_storage_backend(settings)
            # Course config and ledger share one document store even in memory mode
            documents = backend or InMemoryBackend()
            store = store or KnowledgeStore(backend)
            repository = repository or CourseRepository(documents)
            ledger = ledger or QuestionLedger(documents, settings.history_limit, store)

        self.store = store
        self.ledger = ledger
        self.repository = repository
        self.completion = completion
        self.categorizer = categorizer or get_categorizer()

    # ============================================================
    # Courses
    # ============================================================

    async def setup_course(
        self,
        course_id: str,
        course_name: str,
        professor_email: str,
        professor_name: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        course_id = "-".join(course_id.lower().split())
        course = await self.repository.create_course(
            course_id, course_name, professor_email, professor_name, api_key
        )
        return {
            "success": True,
            "message": f'Course "{course_name}" created',
            "course": {
                "course_id": course.course_id,
                "course_name": course.course_name,
                "professor_email": course.professor_email,
            },
        }

    async def list_courses(self) -> Dict[str, Any]:
        courses = await self.repository.list_courses()
        return {
            "success": True,
            "count": len(courses),
            "courses": [
                {
                    "course_id": c.course_id,
                    "course_name": c.course_name,
                    "created_at": c.created_at.isoformat(),
                }
                for c in courses
            ],
        }

    async def get_course_info(self, course_id: str) -> Dict[str, Any]:
        config = await self.repository.get_course_config(course_id)
        if config is None:
            return {"success": False, "error": "Course not found"}

        kb = await self.store.get(course_id)
        stats = await self.ledger.get_course_stats(course_id)
        return {
            "success": True,
            "course": {
                "course_id": config.course_id,
                "course_name": config.course_name,
                "professor_email": config.professor_email,
                "settings": config.settings.model_dump(mode="json"),
                "created_at": config.created_at.isoformat(),
            },
            "knowledge_base": {
                "faq_count": len(kb.faqs),
                "has_syllabus_summary": bool(kb.syllabus_summary),
                "key_dates_count": len(kb.key_dates),
                "policies_count": len(kb.policies),
            },
            "stats": stats.model_dump(),
        }

    async def update_settings(self, course_id: str, settings: Dict[str, Any]) -> Dict[str, Any]:
        try:
            updated = await self.repository.update_course_config(course_id, {"settings": settings})
        except ValueError as e:
            return {"success": False, "error": str(e)}
        return {
            "success": True,
            "message": "Settings updated",
            "settings": updated.settings.model_dump(mode="json"),
        }

    # ============================================================
    # Knowledge base
    # ============================================================

    async def sync_syllabus(self, course_id: str, syllabus_text: str) -> Dict[str, Any]:
        await self.store.update_syllabus_summary(course_id, syllabus_text)
        return {
            "success": True,
            "message": "Syllabus summary stored. Use add_faq, add_key_date, and add_policy to extract specific items.",
            "syllabus_length": len(syllabus_text),
        }

    async def add_faq(self, course_id: str, question: str, answer: str, source: str = "manual") -> Dict[str, Any]:
        faq = await self.store.add_faq(course_id, question, answer, FAQSource(source))
        return {"success": True, "message": "FAQ added", "faq": _faq_dict(faq)}

    async def list_faqs(self, course_id: str) -> Dict[str, Any]:
        faqs = await self.store.list_faqs(course_id)
        return {"success": True, "count": len(faqs), "faqs": [_faq_dict(f) for f in faqs]}

    async def update_faq(
        self,
        course_id: str,
        faq_id: str,
        question: Optional[str] = None,
        answer: Optional[str] = None,
    ) -> Dict[str, Any]:
        faq = await self.store.update_faq(course_id, faq_id, question, answer)
        if faq is None:
            return {"success": False, "error": "FAQ not found"}
        return {"success": True, "message": "FAQ updated", "faq": _faq_dict(faq)}

    async def remove_faq(self, course_id: str, faq_id: str) -> Dict[str, Any]:
        removed = await self.store.remove_faq(course_id, faq_id)
        return {"success": removed, "message": "FAQ removed" if removed else "FAQ not found"}

    async def search_faqs(self, course_id: str, query: str) -> Dict[str, Any]:
        matches = await self.store.search(course_id, query)
        return {
            "success": True,
            "count": len(matches),
            "results": [
                {**_faq_dict(m.faq), "similarity": round(m.similarity, 4)}
                for m in matches
            ],
        }

    async def add_key_date(self, course_id: str, date: str, description: str) -> Dict[str, Any]:
        await self.store.add_key_date(course_id, date, description)
        return {"success": True, "message": "Key date added"}

    async def add_policy(self, course_id: str, policy: str) -> Dict[str, Any]:
        await self.store.add_policy(course_id, policy)
        return {"success": True, "message": "Policy added"}

    # ============================================================
    # Questions
    # ============================================================

    async def analyze_question(
        self,
        course_id: str,
        from_address: str,
        subject: str,
        body: str,
        email_id: Optional[str] = None,
        date: Optional[str] = None,
    ) -> Dict[str, Any]:
        config = await self.repository.get_course_config(course_id)
        course_settings = config.settings if config else CourseSettings()
        api_key = await self.repository.get_decrypted_api_key(course_id) if config else None

        email = EmailData(
            id=email_id or f"adhoc-{int(datetime.now(timezone.utc).timestamp() * 1000)}",
            from_address=from_address,
            subject=subject,
            body=body,
            date=date or datetime.now(timezone.utc),
        )
        kb = await self.store.get(course_id)
        options = AnalyzeOptions.from_settings(course_settings, api_key)
        decision = await analyze_question(email, kb, options, self.completion)

        return {
            "success": True,
            "decision": decision.model_dump(mode="json"),
            "should_auto_reply": should_auto_reply(decision, options.auto_reply_threshold),
            "auto_reply_threshold": options.auto_reply_threshold,
        }

    async def categorize_emails(
        self,
        emails: List[Dict[str, Any]],
        assignments: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        parsed = [EmailData.model_validate(e) for e in emails]
        syllabus = SyllabusData(assignments=[Assignment(name=name) for name in assignments or []])
        grouped = self.categorizer.group(parsed, syllabus)
        return {
            "success": True,
            "count": len(parsed),
            "groups": {
                category.value: [
                    {
                        "id": c.email.id,
                        "from": c.email.from_address,
                        "subject": c.email.subject,
                        "date": c.email.date.isoformat(),
                        "matched_keywords": c.matched_keywords,
                    }
                    for c in items
                ]
                for category, items in grouped.items()
            },
        }

    async def get_pending(self, course_id: str) -> Dict[str, Any]:
        pending = await self.ledger.get_pending_questions(course_id)
        return {
            "success": True,
            "count": len(pending),
            "questions": [q.model_dump(mode="json") for q in pending],
        }

    async def approve_response(
        self,
        course_id: str,
        question_id: str,
        response: Optional[str] = None,
        add_to_faq: bool = False,
    ) -> Dict[str, Any]:
        answered = await self.ledger.approve_pending(course_id, question_id, response, add_to_faq)
        if answered is None:
            return {"success": False, "error": "Question not found"}
        return {
            "success": True,
            "message": f"Response approved for {answered.from_address}",
            "to": answered.from_address,
            "subject": f"Re: {answered.subject}",
            "response": answered.response,
            "added_to_faq": answered.added_to_faq,
        }

    async def ignore_question(self, course_id: str, question_id: str) -> Dict[str, Any]:
        removed = await self.ledger.ignore_pending(course_id, question_id)
        return {
            "success": removed is not None,
            "message": "Question removed from queue" if removed else "Question not found",
        }

    # ============================================================
    # Analytics
    # ============================================================

    async def get_stats(self, course_id: str) -> Dict[str, Any]:
        stats = await self.ledger.get_course_stats(course_id)
        return {"success": True, "stats": stats.model_dump()}

    async def estimate_cost(self, model: Optional[str] = None) -> Dict[str, Any]:
        tiers = [parse_tier(model)] if model else TIER_ORDER
        return {
            "success": True,
            "estimates": [
                {
                    "model": tier.value,
                    "name": MODEL_INFO[tier].name,
                    "description": MODEL_INFO[tier].description,
                    "cost_per_question": estimate_cost(tier).to_dict(),
                }
                for tier in tiers
            ],
        }
