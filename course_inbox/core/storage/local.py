"""
Local folder backend: one directory per course under a root path.
"""
import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from .base import StorageBackend, StorageError

logger = logging.getLogger(__name__)


class LocalFolderBackend(StorageBackend):
    """Stores course documents as JSON files on the local filesystem."""

    def __init__(self, root_dir: str):
        self.root_dir = Path(root_dir).expanduser()

    def _course_dir(self, course_id: str) -> Path:
        return self.root_dir / course_id

    def _read(self, course_id: str, filename: str) -> Optional[Dict[str, Any]]:
        path = self._course_dir(course_id) / filename
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def _write(self, course_id: str, filename: str, payload: Dict[str, Any]) -> None:
        course_dir = self._course_dir(course_id)
        path = course_dir / filename
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            course_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, default=str)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
        logger.debug(f"Wrote {path}")

    async def read_json(self, course_id: str, filename: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._read, course_id, filename)

    async def write_json(self, course_id: str, filename: str, payload: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, course_id, filename, payload)

    async def list_courses(self) -> List[str]:
        if not self.root_dir.exists():
            return []
        return sorted(p.name for p in self.root_dir.iterdir() if p.is_dir())
