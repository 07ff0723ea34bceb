"""
Tests for pricing, the per-test cost ledger and the active-ledger context.
"""

import asyncio
import logging

import pytest

from ai_eval_engine.core.errors import (
    CostExceeded,
    LedgerClosedError,
    NoActiveLedgerError,
    TokenBudgetExceeded,
)
from ai_eval_engine.cost import (
    MODEL_PRICING,
    CostLedger,
    PricingEntry,
    PricingTable,
    assert_cost_less_than,
    assert_tokens_less_than,
    calculate_cost,
    current_ledger,
    format_cost,
    format_tokens,
    predict_cost,
    record_usage,
    suggest_cheaper_model,
    use_ledger,
)


# ---------------------------------------------------------------------------
# PRICING
# ---------------------------------------------------------------------------


class TestPricingTable:

    def test_known_model_cost(self):
        assert calculate_cost("gpt-4o-mini", 1000, 500) == pytest.approx(0.00045)

    def test_unknown_model_uses_default_and_warns(self, caplog):
        table = PricingTable()
        with caplog.at_level(logging.WARNING, logger="ai_eval_engine.cost.pricing"):
            cost = table.calculate_cost("mystery-model", 1000, 500)

        assert cost == pytest.approx(0.00045)
        assert "mystery-model" in caplog.text

    def test_wildcard_prefix_match(self):
        table = PricingTable()
        entry = table.lookup("ollama/llama3")

        assert entry.model == "ollama/*"
        assert table.calculate_cost("ollama/llama3", 10_000, 10_000) == 0.0
        assert "ollama/mistral" in table

    def test_find_does_not_fall_back(self):
        assert PricingTable().find("not-a-model") is None

    def test_default_model_must_exist(self):
        with pytest.raises(ValueError):
            PricingTable(default_model="nope")

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError):
            PricingEntry("bad", -1.0, 1.0, "test")

    def test_custom_table(self):
        table = PricingTable(
            {"house": PricingEntry("house", 1.0, 2.0, "internal")},
            default_model="house",
        )
        assert table.calculate_cost("house", 1_000_000, 1_000_000) == pytest.approx(3.0)


class TestPredictCost:

    def test_estimates_input_tokens_from_length(self):
        prediction = predict_cost("gpt-4o-mini", "x" * 401)

        assert prediction.input_tokens == 101  # ceil(401 / 4)
        assert prediction.output_tokens == 500
        assert prediction.estimated_cost == pytest.approx(calculate_cost("gpt-4o-mini", 101, 500))

    def test_custom_output_estimate(self):
        prediction = predict_cost("gpt-4o", "hello", estimated_output_tokens=100)
        assert prediction.output_tokens == 100


class TestSuggestCheaperModel:

    def test_suggestion_is_at_most_half_price(self):
        suggestion = suggest_cheaper_model("gpt-4o", 1.0)
        current = MODEL_PRICING["gpt-4o"]

        assert suggestion is not None
        suggested = MODEL_PRICING[suggestion.model]
        assert suggested.mean_price <= current.mean_price * 0.5
        assert suggestion.savings == pytest.approx(1.0 - suggestion.estimated_cost)
        assert suggestion.savings > 0

    def test_picks_closest_qualifying_model(self):
        table = PricingTable(
            {
                "big": PricingEntry("big", 10.0, 10.0, "x"),
                "half": PricingEntry("half", 5.0, 5.0, "x"),
                "tiny": PricingEntry("tiny", 1.0, 1.0, "x"),
                "local/*": PricingEntry("local/*", 0.0, 0.0, "x"),
            },
            default_model="big",
        )
        suggestion = table.suggest_cheaper_model("big", 2.0)

        assert suggestion.model == "half"
        assert suggestion.estimated_cost == pytest.approx(1.0)

    def test_unknown_model_returns_none(self):
        assert suggest_cheaper_model("unknown-model", 1.0) is None

    def test_free_model_returns_none(self):
        assert suggest_cheaper_model("ollama/llama3", 1.0) is None


class TestFormatting:

    @pytest.mark.parametrize(
        "cost, expected",
        [
            (0.0000001, "< $0.000001"),
            (0.00045, "$0.000450"),
            (0.5, "$0.5000"),
            (12.5, "$12.50"),
        ],
    )
    def test_format_cost(self, cost, expected):
        assert format_cost(cost) == expected

    @pytest.mark.parametrize(
        "tokens, expected",
        [(950, "950"), (1500, "1.5K"), (2_000_000, "2.0M")],
    )
    def test_format_tokens(self, tokens, expected):
        assert format_tokens(tokens) == expected


# ---------------------------------------------------------------------------
# LEDGER
# ---------------------------------------------------------------------------


class TestCostLedger:

    def test_costs_are_additive(self):
        ledger = CostLedger()
        calls = [("gpt-4o-mini", 1000, 500), ("gpt-4o", 200, 100), ("claude-3-5-haiku-20241022", 50, 60)]

        for model, i, o in calls:
            ledger.record_usage(model, i, o)

        assert ledger.total_cost_usd == pytest.approx(sum(calculate_cost(*c) for c in calls))
        assert ledger.input_tokens == 1250
        assert ledger.output_tokens == 660
        assert ledger.total_tokens == 1910

    def test_latest_model_and_provider_win(self):
        ledger = CostLedger()
        ledger.record_usage("gpt-4o-mini", 1, 1)
        ledger.record_usage("claude-3-5-haiku-20241022", 1, 1)

        assert ledger.model == "claude-3-5-haiku-20241022"
        assert ledger.provider == "anthropic"

    def test_record_returns_call_cost(self):
        assert CostLedger().record_usage("gpt-4o-mini", 1000, 500) == pytest.approx(0.00045)

    def test_negative_tokens_rejected(self):
        with pytest.raises(ValueError):
            CostLedger().record_usage("gpt-4o-mini", -1, 0)

    def test_ended_ledger_rejects_usage(self):
        ledger = CostLedger()
        ledger.record_usage("gpt-4o-mini", 10, 10)
        final = ledger.end()

        assert not ledger.is_active
        assert final.total_tokens == 20
        with pytest.raises(LedgerClosedError):
            ledger.record_usage("gpt-4o-mini", 10, 10)

    def test_token_scopes(self):
        ledger = CostLedger()
        ledger.record_usage("gpt-4o-mini", 30, 70)

        assert ledger.tokens("input") == 30
        assert ledger.tokens("output") == 70
        assert ledger.tokens("total") == 100
        with pytest.raises(ValueError):
            ledger.tokens("cached")


class TestCostAssertions:
    """End-to-end cost scenario from a single recorded call."""

    def make_ledger(self) -> CostLedger:
        ledger = CostLedger()
        ledger.record_usage("gpt-4o-mini", 1000, 500)
        return ledger

    def test_within_budget_passes(self):
        ledger = self.make_ledger()
        assert ledger.total_cost_usd == pytest.approx(0.00045)
        assert_cost_less_than(ledger, 0.001)

    def test_over_budget_raises_with_breakdown(self):
        with pytest.raises(CostExceeded) as exc_info:
            assert_cost_less_than(self.make_ledger(), 0.0001)

        error = exc_info.value
        assert error.actual_usd == pytest.approx(0.00045)
        assert error.max_usd == 0.0001
        assert error.usage["input_tokens"] == 1000
        assert error.usage["output_tokens"] == 500
        assert error.details["negated"] is False

    def test_token_budget(self):
        ledger = self.make_ledger()
        assert_tokens_less_than(ledger, 1500)
        assert_tokens_less_than(ledger, 600, scope="output")

        with pytest.raises(TokenBudgetExceeded) as exc_info:
            assert_tokens_less_than(ledger, 999, scope="input")
        assert exc_info.value.actual_tokens == 1000
        assert exc_info.value.scope == "input"


# ---------------------------------------------------------------------------
# ACTIVE LEDGER CONTEXT
# ---------------------------------------------------------------------------


class TestActiveLedger:

    def test_record_usage_without_ledger_raises(self):
        with pytest.raises(NoActiveLedgerError):
            record_usage("gpt-4o-mini", 1, 1)

    def test_use_ledger_binds_and_restores(self):
        ledger = CostLedger()
        assert current_ledger() is None

        with use_ledger(ledger):
            assert current_ledger() is ledger
            record_usage("gpt-4o-mini", 1000, 500)

        assert current_ledger() is None
        assert ledger.total_cost_usd == pytest.approx(0.00045)

    def test_concurrent_tasks_keep_separate_ledgers(self):
        async def worker(tokens: int) -> CostLedger:
            ledger = CostLedger()
            with use_ledger(ledger):
                for _ in range(5):
                    await asyncio.sleep(0)
                    record_usage("gpt-4o-mini", tokens, 0)
            return ledger

        async def main():
            return await asyncio.gather(worker(1), worker(100))

        small, large = asyncio.run(main())
        assert small.input_tokens == 5
        assert large.input_tokens == 500
