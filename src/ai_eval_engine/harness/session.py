"""
AITestSession - one execution of one AI test.

STATE MACHINE:
--------------
    pending -> running -> passed | failed | skipped

Every terminal state is final; a session runs at most once. Entering
``running`` creates a fresh CostLedger (bound as the active ledger for the
test body's context) and starts the deadline. When the deadline passes the
body is cancelled at the run() boundary and the test is failed with
EvalTimeout, whatever the matchers still in flight would have decided.

FAILURE BOUNDARY:
-----------------
Assertion errors abort the test body and are caught here, never above. A
failed test is a result, not an exception, so one failure never stops the
suite. Provider errors land in the same place but keep their own type, so a
report can tell "the model got worse" from "the embedding API was down".

Cancellation of the surrounding task (CancelledError) is not a test outcome
and propagates untouched.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Sequence, Union

from ai_eval_engine.core.errors import EvalError, EvalTimeout
from ai_eval_engine.cost.context import use_ledger
from ai_eval_engine.cost.ledger import CostLedger, LedgerSnapshot
from ai_eval_engine.matchers.expect import Expectation
from ai_eval_engine.observability import (
    EVAL_TEST_OUTPUT_EXCERPT,
    eval_test_attributes,
    get_tracer,
    get_tracing_config,
    usage_attributes,
)

if TYPE_CHECKING:
    from ai_eval_engine.engine import EvaluationEngine

logger = logging.getLogger(__name__)

TestBody = Callable[["AITestContext"], Union[Any, Awaitable[Any]]]
Hook = Callable[[], Union[Any, Awaitable[Any]]]

EXCERPT_CHARS = 500


class _BodyTimeout(Exception):
    """A TimeoutError raised inside the test body, not by the deadline."""

    def __init__(self, error: BaseException):
        super().__init__(str(error))
        self.error = error


async def call_maybe_async(fn: Callable[..., Any], *args: Any) -> Any:
    """Call ``fn`` and await the result if it is awaitable."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class AITestStatus(Enum):
    """Lifecycle state of a test execution."""
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (AITestStatus.PASSED, AITestStatus.FAILED, AITestStatus.SKIPPED)


@dataclass
class AITestResult:
    """Outcome of one test execution."""
    name: str
    status: AITestStatus
    duration_ms: float
    suite: str | None = None
    error: BaseException | None = None
    usage: LedgerSnapshot | None = None

    @property
    def full_name(self) -> str:
        return f"{self.suite} > {self.name}" if self.suite else self.name

    @property
    def cost_usd(self) -> float:
        return self.usage.total_cost_usd if self.usage else 0.0

    @property
    def error_type(self) -> str | None:
        return type(self.error).__name__ if self.error else None

    def to_dict(self) -> dict:
        """Convert to dict for JSON serialization."""
        data: dict[str, Any] = {
            "name": self.full_name,
            "status": self.status.value,
            "duration_ms": self.duration_ms,
            "cost_usd": self.cost_usd,
        }
        if self.usage:
            data["usage"] = self.usage.to_dict()
        if self.error:
            data["error"] = {
                "type": self.error_type,
                "message": str(self.error),
                "details": self.error.details if isinstance(self.error, EvalError) else {},
            }
        return data


class AITestContext:
    """
    What a test body receives.

    ``ctx.expect(value)`` binds the test's own ledger to the expectation, so
    cost matchers never read another test's usage even when tests run
    concurrently.
    """

    def __init__(self, name: str, ledger: CostLedger, engine: "EvaluationEngine"):
        self.name = name
        self.ledger = ledger
        self.engine = engine
        self._started = time.perf_counter()

    def expect(self, value: Any) -> Expectation:
        return self.engine.expect(value, ledger=self.ledger)

    def record_usage(self, model: str, input_tokens: int, output_tokens: int) -> float:
        return self.ledger.record_usage(model, input_tokens, output_tokens)

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000


class AITestSession:
    """
    Runs one test body through the pending -> running -> terminal lifecycle.

    Example:
        async def greets(ctx):
            reply = await chatbot("hi")
            ctx.record_usage("gpt-4o-mini", 12, 40)
            await ctx.expect(reply).to_semantic_match("a friendly greeting")
            await ctx.expect(reply).to_cost_less_than(0.01)

        result = await AITestSession("greets", greets, engine=engine).run()
    """

    def __init__(
        self,
        name: str,
        fn: TestBody,
        engine: "EvaluationEngine | None" = None,
        timeout_s: float | None = None,
        skip: bool = False,
        suite: str | None = None,
        before_each: Sequence[Hook] = (),
        after_each: Sequence[Hook] = (),
    ):
        self.name = name
        self.fn = fn
        self.timeout_s = timeout_s
        self.skip = skip
        self.suite = suite
        self.before_each = list(before_each)
        self.after_each = list(after_each)
        self.status = AITestStatus.PENDING
        self.result: AITestResult | None = None
        self._engine = engine

    @property
    def engine(self) -> "EvaluationEngine":
        if self._engine is None:
            from ai_eval_engine.engine import get_engine

            self._engine = get_engine()
        return self._engine

    @property
    def full_name(self) -> str:
        return f"{self.suite} > {self.name}" if self.suite else self.name

    def _resolve_timeout(self) -> float | None:
        timeout = self.timeout_s if self.timeout_s is not None else self.engine.config.test_timeout_s
        # Zero or negative disables the deadline
        if timeout is None or timeout <= 0:
            return None
        return timeout

    async def _body(self, ctx: AITestContext) -> Any:
        try:
            for hook in self.before_each:
                await call_maybe_async(hook)
            try:
                return await call_maybe_async(self.fn, ctx)
            finally:
                for hook in self.after_each:
                    await call_maybe_async(hook)
        except (asyncio.TimeoutError, TimeoutError) as e:
            # Keep the body's own timeouts apart from the session deadline
            raise _BodyTimeout(e) from e

    async def run(self) -> AITestResult:
        """Execute the test and return its terminal result."""
        if self.status is not AITestStatus.PENDING:
            raise RuntimeError(f"Test '{self.full_name}' already ran (status={self.status.value})")

        if self.skip:
            self.status = AITestStatus.SKIPPED
            self.result = AITestResult(self.name, self.status, 0.0, suite=self.suite)
            return self.result

        self.status = AITestStatus.RUNNING
        timeout = self._resolve_timeout()
        ledger = self.engine.new_ledger()
        ctx = AITestContext(self.name, ledger, self.engine)
        tracer = get_tracer()
        error: BaseException | None = None
        output: Any = None
        start = time.perf_counter()

        with tracer.start_span(f"eval_test.{self.name}") as span:
            try:
                with use_ledger(ledger):
                    output = await asyncio.wait_for(self._body(ctx), timeout)
                self.status = AITestStatus.PASSED
            except _BodyTimeout as e:
                error = e.error
                self.status = AITestStatus.FAILED
            except asyncio.TimeoutError:
                error = EvalTimeout(self.full_name, timeout)
                self.status = AITestStatus.FAILED
            except Exception as e:
                error = e
                self.status = AITestStatus.FAILED
            finally:
                usage = ledger.end()

            duration_ms = (time.perf_counter() - start) * 1000
            self.result = AITestResult(
                self.name,
                self.status,
                duration_ms,
                suite=self.suite,
                error=error,
                usage=usage,
            )

            for key, value in eval_test_attributes(
                self.full_name,
                self.status.value,
                duration_ms,
                suite_name=self.suite,
                error_type=self.result.error_type,
            ).items():
                span.set_attribute(key, value)
            for key, value in usage_attributes(
                usage.model, usage.provider, usage.input_tokens, usage.output_tokens, usage.total_cost_usd
            ).items():
                span.set_attribute(key, value)
            if isinstance(output, str) and get_tracing_config().capture_text:
                span.set_attribute(EVAL_TEST_OUTPUT_EXCERPT, output[:EXCERPT_CHARS])

            if error is not None:
                span.record_exception(error)
                span.set_status("error", str(error))
            else:
                span.set_status("ok")

        if error is not None:
            logger.debug(f"Test '{self.full_name}' failed with {type(error).__name__}: {error}")
        return self.result
