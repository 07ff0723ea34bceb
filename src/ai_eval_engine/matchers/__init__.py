"""
Matchers module - the expect() surface, schema validator, PII battery.
"""

from ai_eval_engine.matchers.expect import Expectation
from ai_eval_engine.matchers.schema import validate_schema
from ai_eval_engine.matchers.pii import PII_PATTERNS, find_pii

__all__ = [
    "Expectation",
    "validate_schema",
    "PII_PATTERNS",
    "find_pii",
]
