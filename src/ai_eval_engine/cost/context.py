"""
Active-ledger context.

Code under test reports usage with record_usage() without holding a reference
to the ledger. The ledger is carried in a ContextVar, so each asyncio task
(and so each concurrently running test) resolves its own ledger.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

from ai_eval_engine.core.errors import NoActiveLedgerError
from ai_eval_engine.cost.ledger import CostLedger

_active_ledger: ContextVar[CostLedger | None] = ContextVar("ai_eval_active_ledger", default=None)


def current_ledger() -> CostLedger | None:
    """The ledger bound to the current context, if any."""
    return _active_ledger.get()


@contextmanager
def use_ledger(ledger: CostLedger) -> Iterator[CostLedger]:
    """Bind ``ledger`` as the active ledger for the enclosed block."""
    token = _active_ledger.set(ledger)
    try:
        yield ledger
    finally:
        _active_ledger.reset(token)


def record_usage(model: str, input_tokens: int, output_tokens: int) -> float:
    """Record usage on the active ledger and return the call's cost."""
    ledger = current_ledger()
    if ledger is None:
        raise NoActiveLedgerError()
    return ledger.record_usage(model, input_tokens, output_tokens)
