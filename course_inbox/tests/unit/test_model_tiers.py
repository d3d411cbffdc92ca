"""
Test model tier ordering and cost estimates.
"""
import pytest

from course_inbox.core.ai.model_tiers import (
    MODEL_INFO,
    TIER_ORDER,
    ModelTier,
    calculate_cost,
    estimate_cost,
    next_tier,
    parse_tier,
)


class TestTierOrder:

    def test_order_is_cheapest_first(self):
        assert TIER_ORDER == [ModelTier.HAIKU, ModelTier.SONNET, ModelTier.OPUS]

    def test_next_tier(self):
        assert next_tier(ModelTier.HAIKU) == ModelTier.SONNET
        assert next_tier(ModelTier.SONNET) == ModelTier.OPUS
        assert next_tier(ModelTier.OPUS) is None

    def test_every_tier_has_model_info(self):
        for tier in TIER_ORDER:
            assert MODEL_INFO[tier].model_id.startswith("claude-")


class TestParseTier:

    def test_accepts_names_and_members(self):
        assert parse_tier("sonnet") == ModelTier.SONNET
        assert parse_tier(" OPUS ") == ModelTier.OPUS
        assert parse_tier(ModelTier.HAIKU) == ModelTier.HAIKU

    def test_unknown_tier(self):
        with pytest.raises(ValueError, match="Valid tiers: haiku, sonnet, opus"):
            parse_tier("gpt-4")


class TestCosts:

    def test_haiku_estimate(self):
        cost = estimate_cost(ModelTier.HAIKU)
        assert cost.input == pytest.approx(0.000125)
        assert cost.output == pytest.approx(0.00025)
        assert cost.total == pytest.approx(0.000375)

    def test_opus_estimate_by_name(self):
        cost = estimate_cost("opus")
        assert cost.input == pytest.approx(0.0075)
        assert cost.output == pytest.approx(0.015)
        assert cost.total == pytest.approx(0.0225)

    def test_calculate_cost(self):
        cost = calculate_cost(ModelTier.SONNET, 1_000_000, 1_000_000)
        assert cost.total == pytest.approx(18.0)

    def test_to_dict(self):
        assert set(estimate_cost("sonnet").to_dict()) == {"input", "output", "total"}
