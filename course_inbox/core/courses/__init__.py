"""
Course configuration, API key encryption and the pending/history ledger.
"""

from .models import (
    AnsweredQuestion,
    CourseConfig,
    CourseSettings,
    CourseStats,
    PendingQuestion,
)
from .encryption import decrypt_api_key, encrypt_api_key
from .repository import CourseRepository
from .ledger import QuestionLedger

__all__ = [
    'AnsweredQuestion',
    'CourseConfig',
    'CourseSettings',
    'CourseStats',
    'PendingQuestion',
    'decrypt_api_key',
    'encrypt_api_key',
    'CourseRepository',
    'QuestionLedger',
]
