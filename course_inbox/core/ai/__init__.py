"""
Question answering: model tiers, completion services and the decision engine.
"""

from .model_tiers import (
    MODEL_INFO,
    TIER_ORDER,
    CostEstimate,
    ModelInfo,
    ModelTier,
    estimate_cost,
    next_tier,
    parse_tier,
)
from .decision import (
    AnalyzeOptions,
    Decision,
    ParseResult,
    analyze_question,
    parse_agent_response,
    should_auto_reply,
)

__all__ = [
    'MODEL_INFO',
    'TIER_ORDER',
    'CostEstimate',
    'ModelInfo',
    'ModelTier',
    'estimate_cost',
    'next_tier',
    'parse_tier',
    'AnalyzeOptions',
    'Decision',
    'ParseResult',
    'analyze_question',
    'parse_agent_response',
    'should_auto_reply',
]
