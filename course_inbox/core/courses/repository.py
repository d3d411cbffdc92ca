"""
Course configuration repository.

Each course folder holds ``config.json``; creating a course also initializes
an empty ``pending-queue.json`` and ``history.json``.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from course_inbox.core.storage.base import StorageBackend
from course_inbox.core.storage.memory import InMemoryBackend
from .encryption import decrypt_api_key, encrypt_api_key
from .models import CourseConfig, CourseSettings

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.json"
PENDING_QUEUE_FILE = "pending-queue.json"
HISTORY_FILE = "history.json"

IMMUTABLE_FIELDS = {"course_id", "created_at"}


class CourseRepository:
    """Course config CRUD over a storage backend (in-memory when none is given)."""

    def __init__(self, backend: Optional[StorageBackend] = None):
        self.backend = backend or InMemoryBackend()

    async def create_course(
        self,
        course_id: str,
        course_name: str,
        professor_email: str,
        professor_name: Optional[str] = None,
        api_key: Optional[str] = None,
        settings: Optional[CourseSettings] = None,
    ) -> CourseConfig:
        config = CourseConfig(
            course_id=course_id,
            course_name=course_name,
            professor_email=professor_email,
            professor_name=professor_name,
            encrypted_api_key=encrypt_api_key(api_key, professor_email) if api_key else None,
            settings=settings or CourseSettings(),
        )

        await self.backend.write_json(course_id, CONFIG_FILE, config.model_dump(mode="json"))
        await self.backend.write_json(course_id, PENDING_QUEUE_FILE, {"questions": []})
        await self.backend.write_json(course_id, HISTORY_FILE, {"questions": []})

        logger.info(f"Created course {course_id} ({course_name}) for {professor_email}")
        return config

    async def get_course_config(self, course_id: str) -> Optional[CourseConfig]:
        data = await self.backend.read_json(course_id, CONFIG_FILE)
        if data is None:
            return None
        return CourseConfig.model_validate(data)

    async def update_course_config(self, course_id: str, updates: Dict[str, Any]) -> CourseConfig:
        """
        Merge updates into a course config. ``settings`` may be a partial dict.

        Raises:
            ValueError: Course not found
        """
        existing = await self.get_course_config(course_id)
        if existing is None:
            raise ValueError(f"Course {course_id} not found")

        data = existing.model_dump()
        for key, value in updates.items():
            if key in IMMUTABLE_FIELDS:
                logger.warning(f"Ignoring update to immutable field '{key}' of course {course_id}")
                continue
            if key == "settings" and isinstance(value, dict):
                data["settings"] = {**data["settings"], **value}
            elif isinstance(value, CourseSettings):
                data[key] = value.model_dump()
            else:
                data[key] = value
        data["updated_at"] = datetime.now(timezone.utc)

        updated = CourseConfig.model_validate(data)
        await self.backend.write_json(course_id, CONFIG_FILE, updated.model_dump(mode="json"))
        return updated

    async def update_api_key(self, course_id: str, api_key: str) -> CourseConfig:
        """
        Raises:
            ValueError: Course not found or no encryption secret configured
        """
        config = await self.get_course_config(course_id)
        if config is None:
            raise ValueError(f"Course {course_id} not found")
        return await self.update_course_config(
            course_id,
            {"encrypted_api_key": encrypt_api_key(api_key, config.professor_email)},
        )

    async def get_decrypted_api_key(self, course_id: str) -> Optional[str]:
        config = await self.get_course_config(course_id)
        if config is None or not config.encrypted_api_key:
            return None
        try:
            return decrypt_api_key(config.encrypted_api_key, config.professor_email)
        except ValueError as e:
            logger.error(f"Could not decrypt API key for course {course_id}: {e}")
            return None

    async def list_courses(self) -> List[CourseConfig]:
        courses = []
        for course_id in await self.backend.list_courses():
            config = await self.get_course_config(course_id)
            if config:
                courses.append(config)
        return courses
