"""
Anthropic Completion Service

Wraps LangChain's ChatAnthropic for the Claude answering tiers.
"""

import logging
import os
from typing import Dict, Optional

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage, SystemMessage

from course_inbox.core.config import get_settings
from ..model_tiers import MODEL_INFO, ModelTier
from .base import CompletionError, CompletionResult, CompletionService, TokenUsage

logger = logging.getLogger(__name__)


def _extract_text(content) -> str:
    """Text of the first text block of a chat message content."""
    if isinstance(content, str):
        return content
    for block in content or []:
        if isinstance(block, str):
            return block
        if isinstance(block, dict) and block.get("type") == "text":
            return block.get("text", "")
    return ""


class AnthropicCompletionService(CompletionService):
    """Claude completions through LangChain, one client per tier."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ):
        super().__init__()
        settings = get_settings()

        self.api_key = api_key or settings.anthropic_api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError("No Anthropic API key: pass one or set ANTHROPIC_API_KEY")

        self.max_tokens = max_tokens if max_tokens is not None else settings.completion_max_tokens
        self.temperature = temperature if temperature is not None else settings.completion_temperature
        self._clients: Dict[ModelTier, ChatAnthropic] = {}

    def _get_client(self, tier: ModelTier) -> ChatAnthropic:
        if tier not in self._clients:
            self._clients[tier] = ChatAnthropic(
                model=MODEL_INFO[tier].model_id,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                anthropic_api_key=self.api_key,
            )
        return self._clients[tier]

    async def _complete_impl(self, system_prompt: str, user_prompt: str, tier: ModelTier) -> CompletionResult:
        client = self._get_client(tier)
        try:
            message = await client.ainvoke([
                SystemMessage(content=system_prompt),
                HumanMessage(content=user_prompt),
            ])
        except Exception as e:
            logger.error(f"Anthropic API error ({tier.value}): {e}")
            raise CompletionError(f"Anthropic API error: {e}") from e

        text = _extract_text(message.content)
        if not text:
            raise CompletionError(f"Empty completion from {MODEL_INFO[tier].model_id}")

        usage_metadata = getattr(message, "usage_metadata", None)
        if usage_metadata:
            prompt_tokens = usage_metadata.get("input_tokens", 0)
            completion_tokens = usage_metadata.get("output_tokens", 0)
        else:
            # Rough estimate
            prompt_tokens = (len(system_prompt) + len(user_prompt)) // 4
            completion_tokens = len(text) // 4

        return CompletionResult(
            text=text,
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )
