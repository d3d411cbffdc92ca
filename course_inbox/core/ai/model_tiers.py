"""
Model tiers for question answering.

Three Claude tiers ordered from cheapest to most capable. Tier order drives
escalation; pricing drives cost estimates only.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union


class ModelTier(str, Enum):
    """Answering model tier, ordered low -> high cost"""
    HAIKU = "haiku"
    SONNET = "sonnet"
    OPUS = "opus"


TIER_ORDER = [ModelTier.HAIKU, ModelTier.SONNET, ModelTier.OPUS]
DEFAULT_TIER = ModelTier.HAIKU


@dataclass(frozen=True)
class ModelInfo:
    name: str
    model_id: str
    cost_per_1m_input: float
    cost_per_1m_output: float
    description: str


@dataclass(frozen=True)
class CostEstimate:
    input: float
    output: float
    total: float

    def to_dict(self) -> dict:
        return {"input": self.input, "output": self.output, "total": self.total}


# Pricing per 1M tokens
MODEL_INFO: Dict[ModelTier, ModelInfo] = {
    ModelTier.HAIKU: ModelInfo(
        name="Claude 3.5 Haiku",
        model_id="claude-3-5-haiku-20241022",
        cost_per_1m_input=0.25,
        cost_per_1m_output=1.25,
        description="Fast and cheap. Great for simple FAQ matching.",
    ),
    ModelTier.SONNET: ModelInfo(
        name="Claude Sonnet 4",
        model_id="claude-sonnet-4-20250514",
        cost_per_1m_input=3.0,
        cost_per_1m_output=15.0,
        description="Balanced quality and cost. Good for most questions.",
    ),
    ModelTier.OPUS: ModelInfo(
        name="Claude Opus 4",
        model_id="claude-opus-4-20250514",
        cost_per_1m_input=15.0,
        cost_per_1m_output=75.0,
        description="Most capable. Use for complex reasoning only.",
    ),
}

# Assumed workload per question for estimates
ESTIMATE_INPUT_TOKENS = 500
ESTIMATE_OUTPUT_TOKENS = 200


def parse_tier(value: Union[str, ModelTier]) -> ModelTier:
    """
    Resolve a tier from an enum member or its name.

    Raises:
        ValueError: Unknown tier
    """
    if isinstance(value, ModelTier):
        return value
    try:
        return ModelTier(str(value).strip().lower())
    except ValueError:
        valid = ", ".join(t.value for t in TIER_ORDER)
        raise ValueError(f"Unknown model tier '{value}'. Valid tiers: {valid}")


def next_tier(tier: ModelTier) -> Optional[ModelTier]:
    """The adjacent more capable tier, or None at the top."""
    index = TIER_ORDER.index(tier)
    if index + 1 < len(TIER_ORDER):
        return TIER_ORDER[index + 1]
    return None


def calculate_cost(tier: ModelTier, input_tokens: int, output_tokens: int) -> CostEstimate:
    info = MODEL_INFO[tier]
    input_cost = (input_tokens / 1_000_000) * info.cost_per_1m_input
    output_cost = (output_tokens / 1_000_000) * info.cost_per_1m_output
    return CostEstimate(input=input_cost, output=output_cost, total=input_cost + output_cost)


def estimate_cost(tier: Union[str, ModelTier]) -> CostEstimate:
    """Approximate cost of answering one question (500 input / 200 output tokens)."""
    return calculate_cost(parse_tier(tier), ESTIMATE_INPUT_TOKENS, ESTIMATE_OUTPUT_TOKENS)
