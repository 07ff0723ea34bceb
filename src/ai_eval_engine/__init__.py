"""
ai_eval_engine - assertions for non-deterministic AI output.

USAGE:
------
from ai_eval_engine import Suite, run_suites

suite = Suite("Support bot")

@suite.test("answers refund questions")
async def _(ctx):
    reply = await bot("How do I get a refund?")
    ctx.record_usage("gpt-4o-mini", 120, 300)

    await ctx.expect(reply).to_semantic_match("explains the refund process")
    await ctx.expect(reply).not_.to_contain_pii()
    await ctx.expect(reply).to_pass_regression("refund-answer")
    await ctx.expect(reply).to_cost_less_than(0.01)
"""

from ai_eval_engine.config import EngineConfig, get_config, reset_config
from ai_eval_engine.core.errors import (
    EvalError,
    ProviderError,
    EmbeddingProviderError,
    JudgeProviderError,
    DimensionMismatch,
    LedgerClosedError,
    NoActiveLedgerError,
    EvalAssertionError,
    ExpectationFailed,
    CostExceeded,
    TokenBudgetExceeded,
    SemanticMismatch,
    SnapshotMismatch,
    RegressionFailed,
    StatisticalMismatch,
    VarianceExceeded,
    ConsistencyFailed,
    DistributionMismatch,
    SchemaMismatch,
    EvalTimeout,
)
from ai_eval_engine.cost import (
    CostLedger,
    PricingTable,
    calculate_cost,
    current_ledger,
    format_cost,
    format_tokens,
    predict_cost,
    record_usage,
    suggest_cheaper_model,
    use_ledger,
)
from ai_eval_engine.engine import (
    EvaluationEngine,
    expect,
    get_engine,
    reset_engine,
    set_engine,
)
from ai_eval_engine.harness import (
    AITestContext,
    AITestResult,
    AITestSession,
    AITestStatus,
    EvalSet,
    RunReport,
    Suite,
    ab_test,
    compare_models,
    load_eval_set,
    run,
    run_suites,
)
from ai_eval_engine.matchers import Expectation
from ai_eval_engine.semantic import cosine_similarity
from ai_eval_engine.stats import chi_squared_test, run_times, run_times_parallel

__version__ = "0.1.0"

__all__ = [
    # Config
    "EngineConfig",
    "get_config",
    "reset_config",
    # Engine
    "EvaluationEngine",
    "Expectation",
    "expect",
    "get_engine",
    "reset_engine",
    "set_engine",
    # Cost
    "CostLedger",
    "PricingTable",
    "calculate_cost",
    "current_ledger",
    "format_cost",
    "format_tokens",
    "predict_cost",
    "record_usage",
    "suggest_cheaper_model",
    "use_ledger",
    # Harness
    "AITestContext",
    "AITestResult",
    "AITestSession",
    "AITestStatus",
    "EvalSet",
    "RunReport",
    "Suite",
    "ab_test",
    "compare_models",
    "load_eval_set",
    "run",
    "run_suites",
    # Helpers
    "chi_squared_test",
    "cosine_similarity",
    "run_times",
    "run_times_parallel",
    # Errors
    "EvalError",
    "ProviderError",
    "EmbeddingProviderError",
    "JudgeProviderError",
    "DimensionMismatch",
    "LedgerClosedError",
    "NoActiveLedgerError",
    "EvalAssertionError",
    "ExpectationFailed",
    "CostExceeded",
    "TokenBudgetExceeded",
    "SemanticMismatch",
    "SnapshotMismatch",
    "RegressionFailed",
    "StatisticalMismatch",
    "VarianceExceeded",
    "ConsistencyFailed",
    "DistributionMismatch",
    "SchemaMismatch",
    "EvalTimeout",
]
