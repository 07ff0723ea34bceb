"""
Cost module - pricing table and per-test cost ledger.

ARCHITECTURE:
-------------
- pricing.py: PricingTable, cost estimation, cheaper-model suggestions
- ledger.py: CostLedger (one per test) and the budget assertions
- context.py: ContextVar binding of the active ledger for record_usage()
"""

from ai_eval_engine.cost.pricing import (
    CHARS_PER_TOKEN,
    MODEL_PRICING,
    DEFAULT_PRICING_MODEL,
    PricingEntry,
    PricingTable,
    CostPrediction,
    CheaperModelSuggestion,
    calculate_cost,
    predict_cost,
    suggest_cheaper_model,
    format_cost,
    format_tokens,
)
from ai_eval_engine.cost.ledger import (
    CostLedger,
    LedgerSnapshot,
    TokenScope,
    assert_cost_less_than,
    assert_tokens_less_than,
    cost_exceeded_error,
    token_budget_error,
)
from ai_eval_engine.cost.context import (
    current_ledger,
    use_ledger,
    record_usage,
)

__all__ = [
    # Pricing
    "CHARS_PER_TOKEN",
    "MODEL_PRICING",
    "DEFAULT_PRICING_MODEL",
    "PricingEntry",
    "PricingTable",
    "CostPrediction",
    "CheaperModelSuggestion",
    "calculate_cost",
    "predict_cost",
    "suggest_cheaper_model",
    "format_cost",
    "format_tokens",
    # Ledger
    "CostLedger",
    "LedgerSnapshot",
    "TokenScope",
    "assert_cost_less_than",
    "assert_tokens_less_than",
    "cost_exceeded_error",
    "token_budget_error",
    # Context
    "current_ledger",
    "use_ledger",
    "record_usage",
]
