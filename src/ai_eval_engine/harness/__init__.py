"""
Harness module - running AI tests.

- AITestSession: one test through pending -> running -> passed|failed|skipped
- Suite / run_suites: grouped tests with hooks, .only filtering and a RunReport
- EvalSet / compare_models / ab_test: lightweight pass-rate, model and variant comparison helpers
"""

from ai_eval_engine.harness.session import (
    AITestContext,
    AITestResult,
    AITestSession,
    AITestStatus,
)
from ai_eval_engine.harness.runner import (
    RunReport,
    Suite,
    TestCase,
    run,
    run_suites,
)
from ai_eval_engine.harness.eval_set import (
    ABTestResult,
    EvalItem,
    EvalItemResult,
    EvalSet,
    EvalSetResult,
    ModelComparison,
    ModelSummary,
    ab_test,
    compare_models,
    load_eval_set,
)

__all__ = [
    # Session
    "AITestContext",
    "AITestResult",
    "AITestSession",
    "AITestStatus",
    # Runner
    "RunReport",
    "Suite",
    "TestCase",
    "run",
    "run_suites",
    # Eval sets
    "ABTestResult",
    "EvalItem",
    "EvalItemResult",
    "EvalSet",
    "EvalSetResult",
    "ModelComparison",
    "ModelSummary",
    "ab_test",
    "compare_models",
    "load_eval_set",
]
