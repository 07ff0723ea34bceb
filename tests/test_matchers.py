"""
Tests for the expect() matcher surface, the schema validator and PII detection.

Negation is checked as a property: for every matcher and input exactly one of
``m`` and ``not_.m`` raises, and both raise the matcher's own error type.
"""

import asyncio
import re

import pytest

from conftest import FakeEmbeddings, FakeJudge, unit

from ai_eval_engine.core.errors import (
    ConsistencyFailed,
    CostExceeded,
    DistributionMismatch,
    EmbeddingProviderError,
    ExpectationFailed,
    NoActiveLedgerError,
    RegressionFailed,
    SchemaMismatch,
    SemanticMismatch,
    SnapshotMismatch,
    StatisticalMismatch,
    TokenBudgetExceeded,
    VarianceExceeded,
)
from ai_eval_engine.cost import CostLedger, use_ledger
from ai_eval_engine.matchers import Expectation, find_pii, validate_schema
from ai_eval_engine.regression import Baseline, InMemoryBaselineStore


def raises(fn) -> bool:
    try:
        fn()
    except ExpectationFailed:
        return True
    return False


# ---------------------------------------------------------------------------
# SCHEMA VALIDATOR
# ---------------------------------------------------------------------------


USER_SCHEMA = {
    "type": "object",
    "required": ["name", "age"],
    "properties": {
        "name": {"type": "string"},
        "age": {"type": "integer"},
        "tags": {"type": "array", "items": {"type": "string"}},
        "role": {"enum": ["admin", "user"]},
    },
}


class TestValidateSchema:

    def test_valid_value(self):
        assert validate_schema({"name": "Ada", "age": 36, "tags": ["x"], "role": "admin"}, USER_SCHEMA) == []

    def test_collects_every_error_with_paths(self):
        errors = validate_schema({"name": 1, "tags": ["ok", 2], "role": "root"}, USER_SCHEMA)

        assert "$: missing required property 'age'" in errors
        assert "$.name: expected string, got integer" in errors
        assert "$.tags[1]: expected string, got integer" in errors
        assert any(e.startswith("$.role:") for e in errors)
        assert len(errors) == 4

    def test_wrong_root_type_stops_descent(self):
        assert validate_schema("text", USER_SCHEMA) == ["$: expected object, got string"]

    def test_booleans_are_not_numbers(self):
        assert validate_schema(True, {"type": "number"}) == ["$: expected number, got boolean"]

    def test_type_union(self):
        assert validate_schema(None, {"type": ["string", "null"]}) == []

    def test_unknown_type_is_a_schema_error(self):
        with pytest.raises(ValueError):
            validate_schema(1, {"type": "decimal"})


# ---------------------------------------------------------------------------
# PII
# ---------------------------------------------------------------------------


class TestPII:

    @pytest.mark.parametrize(
        "text, kind",
        [
            ("Reach me at jane.doe@example.com", "email"),
            ("Call 555-123-4567 tomorrow", "phone"),
            ("SSN 123-45-6789 on file", "ssn"),
            ("Card 4111 1111 1111 1111 expires soon", "credit_card"),
        ],
    )
    def test_detects_each_kind(self, text, kind):
        assert kind in find_pii(text)

    def test_clean_text(self):
        assert find_pii("Your order has shipped and will arrive Tuesday.") == {}
        assert find_pii("Thanks for reaching out!") == {}


# ---------------------------------------------------------------------------
# STRUCTURAL MATCHERS
# ---------------------------------------------------------------------------


STRUCTURAL_CASES = [
    (1, lambda e: e.to_be(1)),
    (1, lambda e: e.to_be(1.0)),
    ([1], lambda e: e.to_be([1])),
    ({"a": [1, 2]}, lambda e: e.to_equal({"a": [1, 2]})),
    ({"a": 1}, lambda e: e.to_equal({"a": 2})),
    (None, lambda e: e.to_be_defined()),
    (0, lambda e: e.to_be_defined()),
    (None, lambda e: e.to_be_undefined()),
    ("", lambda e: e.to_be_truthy()),
    ("x", lambda e: e.to_be_truthy()),
    ([], lambda e: e.to_be_falsy()),
    ("hello world", lambda e: e.to_contain("world")),
    ([1, 2, 3], lambda e: e.to_contain(4)),
    (5, lambda e: e.to_contain(5)),
    ("order #123", lambda e: e.to_match(r"#\d+")),
    ("order", lambda e: e.to_match(re.compile(r"^\d"))),
    (3, lambda e: e.to_be_greater_than(2)),
    (2, lambda e: e.to_be_greater_than(2)),
    ("3", lambda e: e.to_be_greater_than(2)),
    (1.5, lambda e: e.to_be_less_than(2)),
    (0.1 + 0.2, lambda e: e.to_be_close_to(0.3)),
    (0.31, lambda e: e.to_be_close_to(0.3)),
    (lambda: 1 / 0, lambda e: e.to_throw()),
    (lambda: 1 / 0, lambda e: e.to_throw("division")),
    (lambda: 1 / 0, lambda e: e.to_throw(ZeroDivisionError)),
    (lambda: 1 / 0, lambda e: e.to_throw(ValueError)),
    (lambda: None, lambda e: e.to_throw()),
    ("not callable", lambda e: e.to_throw()),
]


class TestStructuralMatchers:

    def test_passing_matchers(self):
        e = Expectation
        e(1).to_be(1)
        e({"a": [1, 2]}).to_equal({"a": [1, 2]})
        e(0).to_be_defined()
        e(None).to_be_undefined()
        e("x").to_be_truthy()
        e([]).to_be_falsy()
        e("hello world").to_contain("world")
        e("order #123").to_match(r"#\d+")
        e(3).to_be_greater_than(2)
        e(1.5).to_be_less_than(2)
        e(0.1 + 0.2).to_be_close_to(0.3)
        e(lambda: 1 / 0).to_throw(ZeroDivisionError)

    def test_failure_message_and_details(self):
        with pytest.raises(ExpectationFailed) as exc_info:
            Expectation(2).to_equal(3)

        assert str(exc_info.value) == "Expected 2 to equal 3"
        assert exc_info.value.details == {"actual": 2, "expected": 3, "negated": False}

    def test_negated_failure_message(self):
        with pytest.raises(ExpectationFailed) as exc_info:
            Expectation("abc").not_.to_contain("b")

        assert str(exc_info.value) == "Expected 'abc' not to contain 'b'"
        assert exc_info.value.details["negated"] is True

    def test_identity_for_containers(self):
        shared = [1]
        Expectation(shared).to_be(shared)

    @pytest.mark.parametrize("value, matcher", STRUCTURAL_CASES)
    def test_exactly_one_of_matcher_and_negation_raises(self, value, matcher):
        positive = raises(lambda: matcher(Expectation(value)))
        negative = raises(lambda: matcher(Expectation(value).not_))
        assert positive != negative

    def test_not_returns_a_new_expectation(self):
        original = Expectation(1)
        negated = original.not_

        assert negated is not original
        assert negated.negated
        assert not original.negated
        assert not negated.not_.negated


# ---------------------------------------------------------------------------
# COST MATCHERS
# ---------------------------------------------------------------------------


class TestCostMatchers:

    def make_ledger(self, engine) -> CostLedger:
        ledger = engine.new_ledger()
        ledger.record_usage("gpt-4o-mini", 1000, 500)
        return ledger

    def test_explicit_ledger(self, engine):
        ledger = self.make_ledger(engine)
        asyncio.run(engine.expect(None, ledger=ledger).to_cost_less_than(0.001))

        with pytest.raises(CostExceeded) as exc_info:
            asyncio.run(engine.expect(None, ledger=ledger).to_cost_less_than(0.0001))
        assert exc_info.value.actual_usd == pytest.approx(0.00045)

    def test_ledger_as_value(self, engine):
        ledger = self.make_ledger(engine)
        asyncio.run(engine.expect(ledger).to_use_fewer_tokens_than(1500))

        with pytest.raises(TokenBudgetExceeded):
            asyncio.run(engine.expect(ledger).to_use_fewer_tokens_than(400, scope="output"))

    def test_active_ledger(self, engine):
        ledger = self.make_ledger(engine)

        async def check():
            with use_ledger(ledger):
                await engine.expect("some output").to_cost_less_than(0.01)

        asyncio.run(check())

    def test_negated_cost_keeps_error_type(self, engine):
        ledger = self.make_ledger(engine)

        with pytest.raises(CostExceeded) as exc_info:
            asyncio.run(engine.expect(ledger).not_.to_cost_less_than(0.01))
        assert exc_info.value.details["negated"] is True

    def test_no_ledger_anywhere(self, engine):
        with pytest.raises(NoActiveLedgerError):
            asyncio.run(engine.expect("output").to_cost_less_than(1.0))


# ---------------------------------------------------------------------------
# AI MATCHERS
# ---------------------------------------------------------------------------


class TestSemanticMatchers:

    def test_semantic_match_and_negation(self, make_engine):
        engine = make_engine(FakeEmbeddings({"out": [1, 0], "close": unit(0.9), "far": unit(0.2)}))

        asyncio.run(engine.expect("out").to_semantic_match("close"))
        asyncio.run(engine.expect("out").not_.to_semantic_match("far"))

        with pytest.raises(SemanticMismatch):
            asyncio.run(engine.expect("out").to_semantic_match("far"))
        with pytest.raises(SemanticMismatch) as exc_info:
            asyncio.run(engine.expect("out").not_.to_semantic_match("close"))
        assert "(negated)" in str(exc_info.value)

    def test_semantic_match_can_skip_the_cache(self, make_engine):
        provider = FakeEmbeddings({"out": [1, 0], "close": unit(0.9)})
        engine = make_engine(provider)

        asyncio.run(engine.expect("out").to_semantic_match("close"))
        asyncio.run(engine.expect("out").to_semantic_match("close"))
        assert len(provider.calls) == 2

        asyncio.run(engine.expect("out").to_semantic_match("close", use_cache=False))
        assert len(provider.calls) == 4
        assert engine.cache.stats().hits == 2

    def test_provider_error_ignores_negation(self, make_engine):
        engine = make_engine(FakeEmbeddings({"out": [1, 0]}))

        with pytest.raises(EmbeddingProviderError):
            asyncio.run(engine.expect("out").not_.to_semantic_match("unknown"))

    def test_snapshot_first_run_then_drift(self, make_engine):
        engine = make_engine(FakeEmbeddings({"v1": [1, 0], "v2": unit(0.5)}))

        asyncio.run(engine.expect("v1").to_match_semantic_snapshot("answer"))
        asyncio.run(engine.expect("v1").to_match_semantic_snapshot("answer"))

        with pytest.raises(SnapshotMismatch):
            asyncio.run(engine.expect("v2").to_match_semantic_snapshot("answer"))
        asyncio.run(engine.expect("v2").not_.to_match_semantic_snapshot("answer"))

    def test_negated_snapshot_on_first_run_fails(self, make_engine):
        engine = make_engine(FakeEmbeddings({"v1": [1, 0]}))

        with pytest.raises(SnapshotMismatch):
            asyncio.run(engine.expect("v1").not_.to_match_semantic_snapshot("fresh"))


class TestRegressionMatcher:

    def test_first_run_passes(self, engine):
        asyncio.run(engine.expect("a good answer").to_pass_regression("answer"))
        assert engine.regression.load_baseline("answer").version == 1

    def test_regression_fails_and_negation_passes(self, make_engine):
        store = InMemoryBaselineStore(
            [Baseline(id="answer", text="baseline", metrics={"coherence": 0.9, "relevance": 0.9})]
        )
        engine = make_engine(
            judge=FakeJudge('{"coherence": 0.4, "relevance": 0.4}'), baseline_store=store
        )

        with pytest.raises(RegressionFailed):
            asyncio.run(engine.expect("worse").to_pass_regression("answer"))
        asyncio.run(engine.expect("worse").not_.to_pass_regression("answer"))

    def test_update_baseline_on_improvement(self, make_engine):
        store = InMemoryBaselineStore(
            [Baseline(id="answer", text="baseline", metrics={"coherence": 0.9, "relevance": 0.9})]
        )
        engine = make_engine(
            judge=FakeJudge('{"coherence": 0.95, "relevance": 0.92}'), baseline_store=store
        )

        asyncio.run(engine.expect("better").to_pass_regression("answer", update_baseline=True))

        baseline = store.load("answer")
        assert baseline.version == 2
        assert baseline.text == "better"


class TestSchemaAndPIIMatchers:

    def test_schema(self, engine):
        asyncio.run(engine.expect({"name": "Ada", "age": 36}).to_match_schema(USER_SCHEMA))

        with pytest.raises(SchemaMismatch) as exc_info:
            asyncio.run(engine.expect({"name": "Ada"}).to_match_schema(USER_SCHEMA))
        assert exc_info.value.errors == ["$: missing required property 'age'"]

    def test_negated_schema(self, engine):
        asyncio.run(engine.expect("text").not_.to_match_schema(USER_SCHEMA))
        with pytest.raises(SchemaMismatch):
            asyncio.run(engine.expect({"name": "Ada", "age": 1}).not_.to_match_schema(USER_SCHEMA))

    def test_pii(self, engine):
        asyncio.run(engine.expect("Email me: a@b.io").to_contain_pii())
        asyncio.run(engine.expect("No personal data here").not_.to_contain_pii())

        with pytest.raises(ExpectationFailed) as exc_info:
            asyncio.run(engine.expect("Email me: a@b.io").not_.to_contain_pii())
        assert "email" in str(exc_info.value)


class TestStatisticalMatchers:

    def test_mostly_be(self, engine):
        asyncio.run(engine.expect(["yes"] * 9 + ["no"]).to_mostly_be("yes"))
        with pytest.raises(StatisticalMismatch):
            asyncio.run(engine.expect(["yes", "no"]).to_mostly_be("yes"))

    def test_sample_matchers_need_lists(self, engine):
        with pytest.raises(TypeError):
            asyncio.run(engine.expect("yes").to_mostly_be("yes"))
        with pytest.raises(TypeError):
            asyncio.run(engine.expect(3.0).to_have_low_variance(1.0))

    def test_low_variance(self, engine):
        asyncio.run(engine.expect([0.9, 0.91, 0.89]).to_have_low_variance(0.05))
        with pytest.raises(VarianceExceeded):
            asyncio.run(engine.expect([0.1, 0.9]).to_have_low_variance(0.05))

    def test_consistency(self, make_engine):
        engine = make_engine(FakeEmbeddings({"a": [1, 0], "b": unit(0.95), "c": unit(0.3)}))

        asyncio.run(engine.expect(["a", "b"]).to_be_consistent())
        with pytest.raises(ConsistencyFailed):
            asyncio.run(engine.expect(["a", "c"]).to_be_consistent())
        asyncio.run(engine.expect(["a", "c"]).not_.to_be_consistent())

    def test_distribution(self, engine):
        results = ["pos"] * 50 + ["neg"] * 50
        asyncio.run(engine.expect(results).to_match_distribution({"pos": 0.5, "neg": 0.5}))

        with pytest.raises(DistributionMismatch):
            asyncio.run(engine.expect(results).to_match_distribution({"pos": 0.9, "neg": 0.1}))
