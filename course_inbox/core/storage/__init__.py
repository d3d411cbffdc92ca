"""
Durable storage backends for per-course JSON documents.
"""

from .base import StorageBackend, StorageError
from .local import LocalFolderBackend
from .memory import InMemoryBackend

__all__ = [
    'StorageBackend',
    'StorageError',
    'LocalFolderBackend',
    'InMemoryBackend',
]
