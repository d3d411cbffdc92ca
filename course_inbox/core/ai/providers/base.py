"""
Base Completion Service Interface

Defines the abstract interface for text completion backends used by the
decision engine: given a system prompt and a user prompt, return raw text.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import time
import logging

from ..model_tiers import ModelTier, calculate_cost

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """Completion backend failed or returned nothing usable."""
    pass


@dataclass
class TokenUsage:
    """Token usage information from one completion call."""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class CompletionResult:
    text: str
    usage: TokenUsage
    latency_ms: int = 0


class CompletionService(ABC):
    """
    Base interface for completion services.

    Subclasses implement ``_complete_impl``; the base class times each call
    and tracks usage and cost across calls.
    """

    def __init__(self):
        # Usage tracking
        self.total_requests = 0
        self.total_tokens = 0
        self.total_cost = 0.0

    async def complete(self, system_prompt: str, user_prompt: str, tier: ModelTier) -> str:
        """
        Get a text completion.

        Args:
            system_prompt: Instructions and course context
            user_prompt: The student's email
            tier: Model tier to answer with

        Returns:
            Raw completion text

        Raises:
            CompletionError: Backend failure or empty reply
        """
        start_time = time.time()

        result = await self._complete_impl(system_prompt, user_prompt, tier)
        result.latency_ms = int((time.time() - start_time) * 1000)

        self.total_requests += 1
        self.total_tokens += result.usage.total_tokens
        cost = calculate_cost(tier, result.usage.prompt_tokens, result.usage.completion_tokens).total
        self.total_cost += cost

        logger.info(
            f"{tier.value}: {result.usage.total_tokens} tokens, "
            f"${cost:.4f}, {result.latency_ms}ms"
        )

        return result.text

    @abstractmethod
    async def _complete_impl(self, system_prompt: str, user_prompt: str, tier: ModelTier) -> CompletionResult:
        """Provider-specific implementation of completion."""
        pass

    def get_stats(self) -> dict:
        """Get usage statistics."""
        return {
            "requests": self.total_requests,
            "tokens": self.total_tokens,
            "cost": round(self.total_cost, 4),
            "avg_tokens_per_request": (
                self.total_tokens / max(1, self.total_requests)
            )
        }
