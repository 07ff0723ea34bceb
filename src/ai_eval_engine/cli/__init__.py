"""
CLI module - operator command-line interface (``ai-eval``).

Provides entry points for:
- Listing, showing and deleting regression baselines
- Listing and deleting semantic snapshots
- Cost prediction and cheaper-model suggestions
- Comparing two output versions against a reference
"""

from ai_eval_engine.cli.commands import build_parser, main

__all__ = [
    "build_parser",
    "main",
]
