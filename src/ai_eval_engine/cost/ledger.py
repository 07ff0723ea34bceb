"""
Per-test cost ledger.

One CostLedger belongs to one logical test. It is created active, accumulates
usage through record_usage(), is read by the cost assertions, and is ended
when the test finishes. Totals only ever grow while it is active.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Literal

from ai_eval_engine.core.errors import (
    CostExceeded,
    LedgerClosedError,
    TokenBudgetExceeded,
)
from ai_eval_engine.cost.pricing import PricingTable, format_cost

TokenScope = Literal["input", "output", "total"]


@dataclass(frozen=True)
class LedgerSnapshot:
    """Read-only copy of a ledger's totals, safe to keep after the test ends."""

    total_cost_usd: float
    input_tokens: int
    output_tokens: int
    model: str
    provider: str

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> dict:
        return {
            "total_cost_usd": self.total_cost_usd,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
            "model": self.model,
            "provider": self.provider,
        }


@dataclass
class CostLedger:
    """Mutable accumulator of token usage and derived dollar cost."""

    pricing: PricingTable = field(default_factory=PricingTable, repr=False)
    total_cost_usd: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""
    provider: str = ""
    _active: bool = field(default=True, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def record_usage(self, model: str, input_tokens: int, output_tokens: int) -> float:
        """
        Add one call's usage and return the cost it contributed.

        The model/provider fields always reflect the most recent call.
        """
        if input_tokens < 0 or output_tokens < 0:
            raise ValueError("Token counts must be non-negative")

        entry = self.pricing.lookup(model)
        cost = entry.cost(input_tokens, output_tokens)

        with self._lock:
            if not self._active:
                raise LedgerClosedError(
                    f"Cannot record usage for '{model}': ledger has ended",
                    {"model": model, "input_tokens": input_tokens, "output_tokens": output_tokens},
                )
            self.input_tokens += input_tokens
            self.output_tokens += output_tokens
            self.total_cost_usd += cost
            self.model = model
            self.provider = entry.provider
        return cost

    def tokens(self, scope: TokenScope = "total") -> int:
        if scope == "input":
            return self.input_tokens
        if scope == "output":
            return self.output_tokens
        if scope == "total":
            return self.total_tokens
        raise ValueError(f"Unknown token scope: {scope!r}")

    def snapshot(self) -> LedgerSnapshot:
        with self._lock:
            return LedgerSnapshot(
                total_cost_usd=self.total_cost_usd,
                input_tokens=self.input_tokens,
                output_tokens=self.output_tokens,
                model=self.model,
                provider=self.provider,
            )

    def end(self) -> LedgerSnapshot:
        """Close the ledger and return its final totals."""
        with self._lock:
            self._active = False
        return self.snapshot()


# ---------------------------------------------------------------------------
# COST ASSERTIONS
# ---------------------------------------------------------------------------


def cost_exceeded_error(ledger: CostLedger, max_usd: float, negated: bool = False) -> CostExceeded:
    """Build the diagnostic error for a cost verdict."""
    usage = ledger.snapshot().to_dict()
    expectation = f"> ${max_usd:.6f}" if negated else f"<= ${max_usd:.6f}"
    message = (
        "Cost assertion failed.\n"
        f"Expected cost: {expectation}\n"
        f"Actual cost: ${ledger.total_cost_usd:.6f} ({format_cost(ledger.total_cost_usd)})\n\n"
        "Breakdown:\n"
        f"  - Input tokens: {ledger.input_tokens}\n"
        f"  - Output tokens: {ledger.output_tokens}\n"
        f"  - Model: {ledger.model}\n"
        f"  - Provider: {ledger.provider}"
    )
    return CostExceeded(message, ledger.total_cost_usd, max_usd, usage, negated=negated)


def token_budget_error(
    ledger: CostLedger,
    max_tokens: int,
    scope: TokenScope = "total",
    negated: bool = False,
) -> TokenBudgetExceeded:
    """Build the diagnostic error for a token budget verdict."""
    actual = ledger.tokens(scope)
    expectation = f"> {max_tokens}" if negated else f"<= {max_tokens}"
    message = (
        "Token assertion failed.\n"
        f"Expected {scope} tokens: {expectation}\n"
        f"Actual {scope} tokens: {actual}\n\n"
        "Full breakdown:\n"
        f"  - Input tokens: {ledger.input_tokens}\n"
        f"  - Output tokens: {ledger.output_tokens}\n"
        f"  - Total tokens: {ledger.total_tokens}"
    )
    return TokenBudgetExceeded(
        message, scope, actual, max_tokens, ledger.snapshot().to_dict(), negated=negated
    )


def assert_cost_less_than(ledger: CostLedger, max_usd: float) -> None:
    """Fail with CostExceeded if the ledger's total cost is above ``max_usd``."""
    if ledger.total_cost_usd > max_usd:
        raise cost_exceeded_error(ledger, max_usd)


def assert_tokens_less_than(
    ledger: CostLedger,
    max_tokens: int,
    scope: TokenScope = "total",
) -> None:
    """Fail with TokenBudgetExceeded if usage in ``scope`` is above ``max_tokens``."""
    if ledger.tokens(scope) > max_tokens:
        raise token_budget_error(ledger, max_tokens, scope)
