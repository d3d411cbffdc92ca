"""
Knowledge Store

Two-tier resolution for per-course knowledge bases:
- an in-process cache keyed by course id
- an optional durable backend (local folder, Google Drive)

Without a backend the cache is the store. Durable read failures fall back to
the cache. Writes update the cache first, then the backend; a backend write
failure is re-raised, but the cache already reflects the change.

The cache has no locking: concurrent writers to one course race and the last
write wins.
"""
import logging
from typing import Dict, List, Optional

from pydantic import ValidationError

from course_inbox.core.storage.base import StorageBackend
from .models import FAQ, FAQMatch, FAQSource, KeyDate, KnowledgeBase
from .search import search_faqs

logger = logging.getLogger(__name__)

KNOWLEDGE_BASE_FILE = "knowledge-base.json"


class KnowledgeStore:
    """Per-course knowledge base CRUD over a cache and an optional durable backend."""

    def __init__(self, backend: Optional[StorageBackend] = None):
        self.backend = backend
        self._cache: Dict[str, KnowledgeBase] = {}

    @property
    def is_durable(self) -> bool:
        return self.backend is not None

    def _cached_or_empty(self, course_id: str) -> KnowledgeBase:
        if course_id not in self._cache:
            self._cache[course_id] = KnowledgeBase(course_id=course_id)
        return self._cache[course_id]

    async def get(self, course_id: str) -> KnowledgeBase:
        """Load a course's knowledge base. Never raises; an unknown course gets an empty one."""
        if self.backend is None:
            return self._cached_or_empty(course_id)

        try:
            data = await self.backend.read_json(course_id, KNOWLEDGE_BASE_FILE)
            if data is not None:
                kb = KnowledgeBase.model_validate(data)
                self._cache[course_id] = kb
                return kb
        except ValidationError as e:
            logger.error(f"Stored knowledge base for {course_id} is malformed, using cache: {e}")
        except Exception as e:
            logger.error(f"Failed to load knowledge base for {course_id}, using cache: {e}")

        return self._cached_or_empty(course_id)

    async def save(self, knowledge_base: KnowledgeBase) -> None:
        """
        Save a knowledge base.

        Raises:
            StorageError: Durable write failed (the cache is already updated)
        """
        self._cache[knowledge_base.course_id] = knowledge_base

        if self.backend is None:
            return

        try:
            await self.backend.write_json(
                knowledge_base.course_id,
                KNOWLEDGE_BASE_FILE,
                knowledge_base.model_dump(mode="json"),
            )
        except Exception as e:
            logger.error(f"Failed to save knowledge base for {knowledge_base.course_id}: {e}")
            raise

    async def add_faq(
        self,
        course_id: str,
        question: str,
        answer: str,
        source: FAQSource = FAQSource.PROFESSOR_APPROVED,
    ) -> FAQ:
        kb = await self.get(course_id)
        faq = FAQ(question=question, answer=answer, source=source)
        kb.faqs.append(faq)
        await self.save(kb)
        return faq

    async def update_faq(
        self,
        course_id: str,
        faq_id: str,
        question: Optional[str] = None,
        answer: Optional[str] = None,
    ) -> Optional[FAQ]:
        """Edit an FAQ's text. Empty values leave the field unchanged. Returns None if not found."""
        kb = await self.get(course_id)
        faq = next((f for f in kb.faqs if f.id == faq_id), None)
        if faq is None:
            return None

        if question:
            faq.question = question
        if answer:
            faq.answer = answer

        await self.save(kb)
        return faq

    async def remove_faq(self, course_id: str, faq_id: str) -> bool:
        kb = await self.get(course_id)
        for index, faq in enumerate(kb.faqs):
            if faq.id == faq_id:
                del kb.faqs[index]
                await self.save(kb)
                return True
        return False

    async def update_syllabus_summary(self, course_id: str, summary: str) -> None:
        kb = await self.get(course_id)
        kb.syllabus_summary = summary
        await self.save(kb)

    async def add_key_date(self, course_id: str, date: str, description: str) -> None:
        kb = await self.get(course_id)
        kb.key_dates.append(KeyDate(date=date, description=description))
        await self.save(kb)

    async def add_policy(self, course_id: str, policy: str) -> None:
        kb = await self.get(course_id)
        kb.policies.append(policy)
        await self.save(kb)

    async def list_faqs(self, course_id: str) -> List[FAQ]:
        kb = await self.get(course_id)
        return list(kb.faqs)

    async def search(self, course_id: str, query: str) -> List[FAQMatch]:
        kb = await self.get(course_id)
        return search_faqs(kb, query)

    def clear_cache(self, course_id: Optional[str] = None) -> None:
        if course_id:
            self._cache.pop(course_id, None)
        else:
            self._cache.clear()
