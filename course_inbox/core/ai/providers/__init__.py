"""
Completion Service Abstraction Layer

Provides a unified interface for the model backends answering questions.
"""

from .base import CompletionService, CompletionError, CompletionResult, TokenUsage
from .anthropic import AnthropicCompletionService

__all__ = [
    'CompletionService',
    'CompletionError',
    'CompletionResult',
    'TokenUsage',
    'AnthropicCompletionService',
]
