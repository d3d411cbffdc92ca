"""
Durable Storage Interface

Every course owns a folder holding small JSON documents
(knowledge base, course config, pending queue, history).
Backends only move those documents; they know nothing about their shape.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class StorageError(Exception):
    """Durable store unavailable or rejected the operation."""
    pass


class StorageBackend(ABC):
    """
    Base interface for durable course storage.

    Reads return None when the document does not exist.
    Writes are idempotent upserts.
    """

    @abstractmethod
    async def read_json(self, course_id: str, filename: str) -> Optional[Dict[str, Any]]:
        """
        Read a JSON document from a course folder.

        Raises:
            StorageError: If the store cannot be reached
        """
        pass

    @abstractmethod
    async def write_json(self, course_id: str, filename: str, payload: Dict[str, Any]) -> None:
        """
        Write (create or replace) a JSON document in a course folder.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_courses(self) -> List[str]:
        """List course ids that have a folder in this store."""
        pass
