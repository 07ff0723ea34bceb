"""
Core module - shared protocols and the error taxonomy.

USAGE:
------
from ai_eval_engine.core import EmbeddingProvider, SemanticMismatch

class MyEmbeddings:
    '''Implements EmbeddingProvider protocol.'''
    ...
"""

from ai_eval_engine.core.protocols import (
    EmbeddingProvider,
    JudgeClient,
    BaselineStore,
)
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

__all__ = [
    # Protocols
    "EmbeddingProvider",
    "JudgeClient",
    "BaselineStore",
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
