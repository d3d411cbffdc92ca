"""
Test durable storage backends and backend selection.
"""
import pytest
from unittest.mock import MagicMock, patch

from googleapiclient.errors import HttpError

from course_inbox.core.config import Settings, build_storage_backend
from course_inbox.core.storage.base import StorageError
from course_inbox.core.storage.drive import FOLDER_MIME_TYPE, GoogleDriveBackend
from course_inbox.core.storage.local import LocalFolderBackend
from course_inbox.core.storage.memory import InMemoryBackend


class _FakeDownload:
    """Stands in for MediaIoBaseDownload: writes a fixed document in one chunk."""

    content = b'{"questions": []}'

    def __init__(self, fd, request):
        fd.write(self.content)

    def next_chunk(self):
        return None, True


def _http_error(status=503):
    return HttpError(MagicMock(status=status, reason="Backend Error"), b"Backend Error")


@pytest.fixture
def drive_service():
    return MagicMock()


def _files(service):
    return service.files.return_value


class TestLocalFolderBackend:

    @pytest.mark.asyncio
    async def test_missing_document(self, tmp_path):
        assert await LocalFolderBackend(tmp_path).read_json("cs-101", "config.json") is None

    @pytest.mark.asyncio
    async def test_write_then_read(self, tmp_path):
        backend = LocalFolderBackend(tmp_path)

        await backend.write_json("cs-101", "config.json", {"course_name": "Intro to CS"})

        assert await backend.read_json("cs-101", "config.json") == {"course_name": "Intro to CS"}
        assert [p.name for p in (tmp_path / "cs-101").iterdir()] == ["config.json"]

    @pytest.mark.asyncio
    async def test_overwrite(self, tmp_path):
        backend = LocalFolderBackend(tmp_path)

        await backend.write_json("cs-101", "history.json", {"questions": [1]})
        await backend.write_json("cs-101", "history.json", {"questions": [1, 2]})

        assert await backend.read_json("cs-101", "history.json") == {"questions": [1, 2]}

    @pytest.mark.asyncio
    async def test_corrupt_document(self, tmp_path):
        (tmp_path / "cs-101").mkdir()
        (tmp_path / "cs-101" / "config.json").write_text("{not json")

        with pytest.raises(StorageError, match="config.json"):
            await LocalFolderBackend(tmp_path).read_json("cs-101", "config.json")

    @pytest.mark.asyncio
    async def test_list_courses(self, tmp_path):
        backend = LocalFolderBackend(tmp_path)
        await backend.write_json("math-200", "config.json", {})
        await backend.write_json("cs-101", "config.json", {})
        (tmp_path / "README.txt").write_text("not a course")

        assert await backend.list_courses() == ["cs-101", "math-200"]

    @pytest.mark.asyncio
    async def test_list_courses_without_root(self, tmp_path):
        assert await LocalFolderBackend(tmp_path / "missing").list_courses() == []


class TestInMemoryBackend:

    @pytest.mark.asyncio
    async def test_documents_are_copied(self):
        backend = InMemoryBackend()
        payload = {"questions": []}

        await backend.write_json("cs-101", "history.json", payload)
        payload["questions"].append("mutated")
        loaded = await backend.read_json("cs-101", "history.json")
        loaded["questions"].append("also mutated")

        assert await backend.read_json("cs-101", "history.json") == {"questions": []}


class TestGoogleDriveBackend:

    @pytest.mark.asyncio
    async def test_read_missing_document(self, drive_service):
        _files(drive_service).list.return_value.execute.side_effect = [
            {"files": [{"id": "folder-1", "name": "cs-101"}]},
            {"files": []},
        ]
        backend = GoogleDriveBackend("unused.json", "root-id", drive_service=drive_service)

        assert await backend.read_json("cs-101", "config.json") is None

    @pytest.mark.asyncio
    async def test_read_newest_copy(self, drive_service):
        _files(drive_service).list.return_value.execute.side_effect = [
            {"files": [{"id": "folder-1", "name": "cs-101"}]},
            {"files": [{"id": "file-new"}, {"id": "file-old"}]},
        ]
        backend = GoogleDriveBackend("unused.json", "root-id", drive_service=drive_service)

        with patch("course_inbox.core.storage.drive.MediaIoBaseDownload", _FakeDownload):
            data = await backend.read_json("cs-101", "history.json")

        assert data == {"questions": []}
        _files(drive_service).get_media.assert_called_once_with(fileId="file-new")

    @pytest.mark.asyncio
    async def test_write_creates_folder_and_file(self, drive_service):
        files = _files(drive_service)
        files.list.return_value.execute.side_effect = [{"files": []}, {"files": []}]
        files.create.return_value.execute.return_value = {"id": "folder-new"}
        backend = GoogleDriveBackend("unused.json", "root-id", drive_service=drive_service)

        await backend.write_json("cs-101", "config.json", {"course_name": "Intro to CS"})

        folder_call, file_call = files.create.call_args_list
        assert folder_call.kwargs["body"] == {
            "name": "cs-101",
            "mimeType": FOLDER_MIME_TYPE,
            "parents": ["root-id"],
        }
        assert file_call.kwargs["body"] == {"name": "config.json", "parents": ["folder-new"]}

    @pytest.mark.asyncio
    async def test_write_updates_newest_and_trashes_duplicates(self, drive_service):
        files = _files(drive_service)
        files.list.return_value.execute.side_effect = [
            {"files": [{"id": "folder-1", "name": "cs-101"}]},
            {"files": [{"id": "file-new"}, {"id": "file-dup"}]},
        ]
        backend = GoogleDriveBackend("unused.json", "root-id", drive_service=drive_service)

        await backend.write_json("cs-101", "history.json", {"questions": []})

        update_call, trash_call = files.update.call_args_list
        assert update_call.kwargs["fileId"] == "file-new"
        assert trash_call.kwargs["fileId"] == "file-dup"
        assert trash_call.kwargs["body"] == {"trashed": True}
        files.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_folder_ids_are_cached(self, drive_service):
        files = _files(drive_service)
        files.list.return_value.execute.side_effect = [
            {"files": [{"id": "folder-1", "name": "cs-101"}]},
            {"files": []},
            {"files": []},
        ]
        backend = GoogleDriveBackend("unused.json", "root-id", drive_service=drive_service)

        await backend.read_json("cs-101", "config.json")
        await backend.read_json("cs-101", "history.json")

        assert files.list.return_value.execute.call_count == 3

    @pytest.mark.asyncio
    async def test_http_errors_become_storage_errors(self, drive_service):
        _files(drive_service).list.return_value.execute.side_effect = _http_error()
        backend = GoogleDriveBackend("unused.json", "root-id", drive_service=drive_service)

        with pytest.raises(StorageError):
            await backend.read_json("cs-101", "config.json")
        with pytest.raises(StorageError):
            await backend.write_json("cs-101", "config.json", {})
        with pytest.raises(StorageError):
            await backend.list_courses()

    @pytest.mark.asyncio
    async def test_list_courses(self, drive_service):
        _files(drive_service).list.return_value.execute.return_value = {
            "files": [{"id": "f1", "name": "cs-101"}, {"id": "f2", "name": "math-200"}]
        }
        backend = GoogleDriveBackend("unused.json", "root-id", drive_service=drive_service)

        assert await backend.list_courses() == ["cs-101", "math-200"]

    def test_missing_service_account_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            GoogleDriveBackend(str(tmp_path / "missing.json"), "root-id")


class TestBuildStorageBackend:

    def test_memory(self):
        assert build_storage_backend(Settings(storage_backend="memory")) is None

    def test_local(self, tmp_path):
        backend = build_storage_backend(Settings(storage_backend="local", storage_dir=str(tmp_path)))

        assert isinstance(backend, LocalFolderBackend)
        assert backend.root_dir == tmp_path

    def test_drive_requires_configuration(self):
        settings = Settings(
            storage_backend="drive",
            google_service_account_path=None,
            google_drive_root_folder_id=None,
        )
        with pytest.raises(ValueError, match="GOOGLE_SERVICE_ACCOUNT_PATH"):
            build_storage_backend(settings)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown storage backend"):
            build_storage_backend(Settings(storage_backend="s3"))


class TestSettingsValidation:

    def test_model_tier_is_normalized(self):
        assert Settings(default_model_tier=" Sonnet ").default_model_tier == "sonnet"

    def test_unknown_model_tier(self):
        with pytest.raises(ValueError, match="default_model_tier"):
            Settings(default_model_tier="gpt-4")

    def test_history_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            Settings(history_limit=0)

    def test_threshold_range(self):
        with pytest.raises(ValueError):
            Settings(auto_reply_threshold=1.5)
