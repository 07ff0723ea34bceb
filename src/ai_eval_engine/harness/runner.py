"""
Suite runner

Groups AI tests into suites, runs them through AITestSession and produces a
RunReport.

ORCHESTRATION:
--------------
1. If any test in any suite is marked ``only``, every unmarked test is dropped.
2. Per suite: before_all hooks, then each test (before_each/after_each run
   inside the test's session, so a failing hook fails that test), then
   after_all hooks.
3. Tests in a suite run sequentially by default. With ``parallel=True`` they
   run as concurrent tasks bounded by ``max_concurrency``; each test still has
   its own ledger, so cost accounting cannot bleed between them.

A failed test never stops the run. A failing before_all hook fails every test
in its suite without running them.

REPORTING:
----------
- Exit code 0 = no failures (see RunReport.exit_code)
- RunReport.to_dict() for CI parsing
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Sequence

from ai_eval_engine.cost.pricing import format_cost
from ai_eval_engine.harness.session import (
    AITestResult,
    AITestSession,
    AITestStatus,
    Hook,
    TestBody,
    call_maybe_async,
)
from ai_eval_engine.observability import EVAL_RUN_ID, EVAL_RUN_TESTS_COUNT, get_tracer, init_tracing

if TYPE_CHECKING:
    from ai_eval_engine.engine import EvaluationEngine

logger = logging.getLogger(__name__)


@dataclass
class TestCase:
    """A registered test and its options."""
    __test__ = False  # not a pytest class

    name: str
    fn: TestBody
    skip: bool = False
    only: bool = False
    timeout_s: float | None = None


class Suite:
    """
    A named group of tests with setup/teardown hooks.

    Example:
        suite = Suite("Greeting")

        @suite.test("is friendly")
        async def _(ctx):
            await ctx.expect(await bot("hi")).to_semantic_match("a warm hello")

        @suite.test("stays cheap", timeout=10)
        async def _(ctx):
            ...

        report = await run_suites([suite])
    """

    def __init__(self, name: str):
        self.name = name
        self.tests: list[TestCase] = []
        self.before_all_hooks: list[Hook] = []
        self.after_all_hooks: list[Hook] = []
        self.before_each_hooks: list[Hook] = []
        self.after_each_hooks: list[Hook] = []

    def add_test(
        self,
        name: str,
        fn: TestBody,
        skip: bool = False,
        only: bool = False,
        timeout: float | None = None,
    ) -> TestCase:
        case = TestCase(name, fn, skip=skip, only=only, timeout_s=timeout)
        self.tests.append(case)
        return case

    def test(
        self,
        name: str,
        skip: bool = False,
        only: bool = False,
        timeout: float | None = None,
    ) -> Callable[[TestBody], TestBody]:
        """Decorator form of add_test()."""
        def decorator(fn: TestBody) -> TestBody:
            self.add_test(name, fn, skip=skip, only=only, timeout=timeout)
            return fn
        return decorator

    def before_all(self, fn: Hook) -> Hook:
        self.before_all_hooks.append(fn)
        return fn

    def after_all(self, fn: Hook) -> Hook:
        self.after_all_hooks.append(fn)
        return fn

    def before_each(self, fn: Hook) -> Hook:
        self.before_each_hooks.append(fn)
        return fn

    def after_each(self, fn: Hook) -> Hook:
        self.after_each_hooks.append(fn)
        return fn

    @property
    def has_only(self) -> bool:
        return any(t.only for t in self.tests)


@dataclass
class RunReport:
    """Aggregate result of a run."""
    run_id: str
    timestamp: str
    results: list[AITestResult] = field(default_factory=list)
    total_duration_ms: float = 0.0

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.status is AITestStatus.PASSED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status is AITestStatus.FAILED)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.status is AITestStatus.SKIPPED)

    @property
    def total_cost(self) -> float:
        return sum(r.cost_usd for r in self.results)

    @property
    def all_passed(self) -> bool:
        return self.failed == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.all_passed else 1

    @property
    def summary(self) -> str:
        return (
            f"{self.passed} passed, {self.failed} failed, {self.skipped} skipped "
            f"in {self.total_duration_ms:.0f}ms (cost {format_cost(self.total_cost)})"
        )

    def to_dict(self) -> dict:
        """Convert to dict for JSON serialization."""
        return {
            "run_id": self.run_id,
            "timestamp": self.timestamp,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "total_cost": self.total_cost,
            "total_duration_ms": self.total_duration_ms,
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary,
        }


def _log_result(result: AITestResult) -> None:
    if result.status is AITestStatus.PASSED:
        logger.info(f"PASS {result.full_name} ({result.duration_ms:.0f}ms, {format_cost(result.cost_usd)})")
    elif result.status is AITestStatus.SKIPPED:
        logger.info(f"SKIP {result.full_name}")
    else:
        logger.info(f"FAIL {result.full_name}: {result.error_type}: {result.error}")


def _failed_without_running(suite: Suite, case: TestCase, error: BaseException) -> AITestResult:
    if case.skip:
        return AITestResult(case.name, AITestStatus.SKIPPED, 0.0, suite=suite.name)
    return AITestResult(case.name, AITestStatus.FAILED, 0.0, suite=suite.name, error=error)


async def _run_suite(
    suite: Suite,
    cases: list[TestCase],
    engine: "EvaluationEngine | None",
    parallel: bool,
    max_concurrency: int,
) -> list[AITestResult]:
    try:
        for hook in suite.before_all_hooks:
            await call_maybe_async(hook)
    except Exception as e:
        logger.warning(f"before_all failed for suite '{suite.name}': {e}")
        results = [_failed_without_running(suite, case, e) for case in cases]
        for result in results:
            _log_result(result)
        return results

    def make_session(case: TestCase) -> AITestSession:
        return AITestSession(
            case.name,
            case.fn,
            engine=engine,
            timeout_s=case.timeout_s,
            skip=case.skip,
            suite=suite.name,
            before_each=suite.before_each_hooks,
            after_each=suite.after_each_hooks,
        )

    results: list[AITestResult] = []
    try:
        if parallel:
            semaphore = asyncio.Semaphore(max_concurrency)

            async def run_bounded(case: TestCase) -> AITestResult:
                async with semaphore:
                    result = await make_session(case).run()
                _log_result(result)
                return result

            # gather keeps registration order in the report
            results = list(await asyncio.gather(*(run_bounded(case) for case in cases)))
        else:
            for case in cases:
                result = await make_session(case).run()
                _log_result(result)
                results.append(result)
    finally:
        for hook in suite.after_all_hooks:
            try:
                await call_maybe_async(hook)
            except Exception as e:
                logger.warning(f"after_all failed for suite '{suite.name}': {e}")

    return results


async def run_suites(
    suites: Sequence[Suite],
    engine: "EvaluationEngine | None" = None,
    parallel: bool = False,
    max_concurrency: int = 5,
) -> RunReport:
    """
    Run every suite and return the aggregate report.

    Args:
        suites: Suites in the order they should run
        engine: Engine shared by every test (defaults to get_engine())
        parallel: Run the tests of each suite concurrently
        max_concurrency: Upper bound on concurrent tests when parallel
    """
    if max_concurrency < 1:
        raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")

    report = RunReport(
        run_id=str(uuid.uuid4()),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    has_only = any(suite.has_only for suite in suites)
    planned = [
        (suite, [case for case in suite.tests if case.only or not has_only])
        for suite in suites
    ]
    total = sum(len(cases) for _, cases in planned)

    init_tracing()
    tracer = get_tracer()
    start = time.perf_counter()
    with tracer.start_span(
        "eval_run",
        attributes={EVAL_RUN_ID: report.run_id, EVAL_RUN_TESTS_COUNT: total},
    ) as span:
        for suite, cases in planned:
            if not cases:
                continue
            logger.info(f"Suite '{suite.name}' ({len(cases)} tests)")
            report.results.extend(
                await _run_suite(suite, cases, engine, parallel, max_concurrency)
            )

        report.total_duration_ms = (time.perf_counter() - start) * 1000
        span.set_status("ok" if report.all_passed else "error", report.summary)

    logger.info(f"Run complete: {report.summary}")
    return report


def run(
    suites: Sequence[Suite],
    engine: "EvaluationEngine | None" = None,
    parallel: bool = False,
    max_concurrency: int = 5,
) -> RunReport:
    """Synchronous entry point for scripts: asyncio.run(run_suites(...))."""
    return asyncio.run(run_suites(suites, engine, parallel, max_concurrency))
