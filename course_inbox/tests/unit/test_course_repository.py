"""
Test course configuration storage.
"""
import pytest

from course_inbox.core.ai.model_tiers import ModelTier
from course_inbox.core.courses.models import CourseSettings
from course_inbox.core.courses.repository import (
    CONFIG_FILE,
    HISTORY_FILE,
    PENDING_QUEUE_FILE,
    CourseRepository,
)
from course_inbox.core.storage.memory import InMemoryBackend


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def repository(backend):
    return CourseRepository(backend)


class TestCreateCourse:

    @pytest.mark.asyncio
    async def test_creates_config_and_empty_ledgers(self, repository, backend):
        config = await repository.create_course("cs-101", "Intro to CS", "prof@university.edu", "Dr. Ada")

        assert config.settings == CourseSettings()
        assert (await backend.read_json("cs-101", CONFIG_FILE))["course_name"] == "Intro to CS"
        assert await backend.read_json("cs-101", PENDING_QUEUE_FILE) == {"questions": []}
        assert await backend.read_json("cs-101", HISTORY_FILE) == {"questions": []}

    @pytest.mark.asyncio
    async def test_api_key_is_stored_encrypted(self, repository, backend):
        await repository.create_course("cs-101", "Intro to CS", "prof@university.edu", api_key="sk-ant-secret")

        stored = await backend.read_json("cs-101", CONFIG_FILE)

        assert stored["encrypted_api_key"]
        assert "sk-ant-secret" not in stored["encrypted_api_key"]
        assert await repository.get_decrypted_api_key("cs-101") == "sk-ant-secret"

    @pytest.mark.asyncio
    async def test_get_unknown_course(self, repository):
        assert await repository.get_course_config("missing") is None
        assert await repository.get_decrypted_api_key("missing") is None

    @pytest.mark.asyncio
    async def test_list_courses(self, repository):
        await repository.create_course("math-200", "Linear Algebra", "b@university.edu")
        await repository.create_course("cs-101", "Intro to CS", "a@university.edu")

        courses = await repository.list_courses()

        assert [c.course_id for c in courses] == ["cs-101", "math-200"]


class TestUpdateCourse:

    @pytest.mark.asyncio
    async def test_partial_settings_merge(self, repository):
        await repository.create_course("cs-101", "Intro to CS", "prof@university.edu")

        updated = await repository.update_course_config(
            "cs-101", {"settings": {"auto_reply_threshold": 0.9, "model": "sonnet"}}
        )

        assert updated.settings.auto_reply_threshold == 0.9
        assert updated.settings.model == ModelTier.SONNET
        assert updated.settings.notify_on_new_question is True
        assert (await repository.get_course_config("cs-101")).settings.model == ModelTier.SONNET

    @pytest.mark.asyncio
    async def test_immutable_fields_are_ignored(self, repository):
        created = await repository.create_course("cs-101", "Intro to CS", "prof@university.edu")

        updated = await repository.update_course_config(
            "cs-101", {"course_id": "hijacked", "course_name": "Intro to Computing"}
        )

        assert updated.course_id == "cs-101"
        assert updated.course_name == "Intro to Computing"
        assert updated.created_at == created.created_at
        assert updated.updated_at >= created.updated_at

    @pytest.mark.asyncio
    async def test_update_unknown_course(self, repository):
        with pytest.raises(ValueError, match="not found"):
            await repository.update_course_config("missing", {"course_name": "x"})

    @pytest.mark.asyncio
    async def test_rotate_api_key(self, repository):
        await repository.create_course("cs-101", "Intro to CS", "prof@university.edu", api_key="sk-old")

        await repository.update_api_key("cs-101", "sk-new")

        assert await repository.get_decrypted_api_key("cs-101") == "sk-new"

    @pytest.mark.asyncio
    async def test_undecryptable_key_returns_none(self, repository):
        await repository.create_course("cs-101", "Intro to CS", "prof@university.edu", api_key="sk-old")
        await repository.update_course_config("cs-101", {"professor_email": "new-prof@university.edu"})

        assert await repository.get_decrypted_api_key("cs-101") is None
