"""
In-process backend for course documents (tests and ephemeral runs).
"""
import copy
from typing import Any, Dict, List, Optional

from .base import StorageBackend


class InMemoryBackend(StorageBackend):
    """Keeps documents in a dict; lost when the process exits."""

    def __init__(self):
        self._documents: Dict[str, Dict[str, Dict[str, Any]]] = {}

    async def read_json(self, course_id: str, filename: str) -> Optional[Dict[str, Any]]:
        document = self._documents.get(course_id, {}).get(filename)
        return copy.deepcopy(document) if document is not None else None

    async def write_json(self, course_id: str, filename: str, payload: Dict[str, Any]) -> None:
        self._documents.setdefault(course_id, {})[filename] = copy.deepcopy(payload)

    async def list_courses(self) -> List[str]:
        return sorted(self._documents)
