"""
CLI commands - operator entry points for stored state and cost planning.

Each command follows a consistent pattern:
1. Parse arguments
2. Load environment
3. Do one thing against a store, the pricing table or the engine
4. Print results
5. Return exit code

Exit codes: 0 success, 1 requested item missing or operation failed,
2 usage error (argparse), 130 interrupted.

Baselines and snapshots are only ever deleted through these commands (or the
matching store methods); nothing in the engine deletes them on its own.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from ai_eval_engine.config import get_config
from ai_eval_engine.cost.pricing import MODEL_PRICING, PricingTable, format_cost, format_tokens
from ai_eval_engine.core.errors import EvalError
from ai_eval_engine.regression.baseline import FileBaselineStore
from ai_eval_engine.semantic.snapshot import FileSnapshotStore


def _load_env() -> None:
    """Load environment variables from .env file."""
    load_dotenv()


def _excerpt(text: str, limit: int = 60) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[: limit - 3] + "..."


# ---------------------------------------------------------------------------
# BASELINES
# ---------------------------------------------------------------------------


def _baseline_store(args: argparse.Namespace) -> FileBaselineStore:
    return FileBaselineStore(args.dir or get_config().baseline_dir)


def cmd_baselines_list(args: argparse.Namespace) -> int:
    baselines = _baseline_store(args).list()
    if not baselines:
        print("No baselines stored")
        return 0

    for b in baselines:
        scores = ", ".join(f"{k}={v:.2f}" for k, v in sorted(b.metrics.items()))
        print(f"  {b.id}  v{b.version}  {b.updated_at:%Y-%m-%d %H:%M}  [{b.scoring}]  {scores}")
    print(f"\nTotal: {len(baselines)}")
    return 0


def cmd_baselines_show(args: argparse.Namespace) -> int:
    baseline = _baseline_store(args).load(args.id)
    if baseline is None:
        print(f"Baseline '{args.id}' not found", file=sys.stderr)
        return 1
    print(json.dumps(baseline.to_dict(), indent=2))
    return 0


def cmd_baselines_delete(args: argparse.Namespace) -> int:
    if not _baseline_store(args).delete(args.id):
        print(f"Baseline '{args.id}' not found", file=sys.stderr)
        return 1
    print(f"Deleted baseline '{args.id}'")
    return 0


# ---------------------------------------------------------------------------
# SNAPSHOTS
# ---------------------------------------------------------------------------


def _snapshot_store(args: argparse.Namespace) -> FileSnapshotStore:
    return FileSnapshotStore(args.dir or get_config().snapshot_dir)


def cmd_snapshots_list(args: argparse.Namespace) -> int:
    snapshots = _snapshot_store(args).list()
    if not snapshots:
        print("No snapshots stored")
        return 0

    for s in snapshots:
        print(f"  {s.id}  {s.created_at:%Y-%m-%d %H:%M}  {s.model}  \"{_excerpt(s.text)}\"")
    print(f"\nTotal: {len(snapshots)}")
    return 0


def cmd_snapshots_delete(args: argparse.Namespace) -> int:
    if not _snapshot_store(args).delete(args.id):
        print(f"Snapshot '{args.id}' not found", file=sys.stderr)
        return 1
    print(f"Deleted snapshot '{args.id}'")
    return 0


# ---------------------------------------------------------------------------
# COST
# ---------------------------------------------------------------------------


def _pricing() -> PricingTable:
    return PricingTable(MODEL_PRICING, get_config().default_pricing_model)


def cmd_cost_predict(args: argparse.Namespace) -> int:
    text = args.text if args.text is not None else Path(args.file).read_text()
    prediction = _pricing().predict_cost(args.model, text, args.output_tokens)

    print(f"Model:         {args.model}")
    print(f"Input tokens:  {format_tokens(prediction.input_tokens)} (estimated)")
    print(f"Output tokens: {format_tokens(prediction.output_tokens)} (estimated)")
    print(f"Cost:          {format_cost(prediction.estimated_cost)}")
    return 0


def cmd_cost_suggest(args: argparse.Namespace) -> int:
    suggestion = _pricing().suggest_cheaper_model(args.model, args.cost_usd)
    if suggestion is None:
        print(f"No cheaper alternative found for '{args.model}'")
        return 1

    print(f"Suggested model: {suggestion.model}")
    print(f"Estimated cost:  {format_cost(suggestion.estimated_cost)}")
    print(f"Savings:         {format_cost(suggestion.savings)}")
    return 0


def cmd_cost_models(args: argparse.Namespace) -> int:
    print(f"  {'MODEL':<32} {'PROVIDER':<10} {'IN $/1M':>9} {'OUT $/1M':>9}")
    for entry in sorted(_pricing().entries, key=lambda e: (e.provider, e.model)):
        print(
            f"  {entry.model:<32} {entry.provider:<10} "
            f"{entry.input_per_million:>9.2f} {entry.output_per_million:>9.2f}"
        )
    return 0


# ---------------------------------------------------------------------------
# COMPARE
# ---------------------------------------------------------------------------


def cmd_compare(args: argparse.Namespace) -> int:
    from ai_eval_engine.engine import EvaluationEngine

    version1 = Path(args.version1).read_text()
    version2 = Path(args.version2).read_text()
    reference = Path(args.reference).read_text()

    engine = EvaluationEngine()
    comparison = asyncio.run(engine.regression.compare_versions(version1, version2, reference))

    if args.json:
        print(json.dumps(comparison.to_dict(), indent=2))
        return 0

    print(f"  {'METRIC':<12} {'V1':>6} {'V2':>6} {'DIFF':>7}")
    for metric, diff in comparison.differences.items():
        s1 = comparison.version1_scores.get(metric, 0.0)
        s2 = comparison.version2_scores.get(metric, 0.0)
        print(f"  {metric:<12} {s1:>6.2f} {s2:>6.2f} {diff:>+7.2f}")
    print(f"\nTotals: v1={comparison.version1_total:.2f}  v2={comparison.version2_total:.2f}")
    print(f"Winner: {comparison.winner}")
    return 0


# ---------------------------------------------------------------------------
# PARSER
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ai-eval",
        description="Manage AI evaluation baselines, snapshots and cost estimates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ai-eval baselines list
  ai-eval baselines show greeting-v1
  ai-eval snapshots delete welcome-email
  ai-eval cost predict gpt-4o --file prompt.txt --output-tokens 800
  ai-eval cost suggest gpt-4o 0.25
  ai-eval compare old.txt new.txt reference.txt
        """,
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    # baselines
    baselines = commands.add_parser("baselines", help="Inspect or delete regression baselines")
    baseline_actions = baselines.add_subparsers(dest="action", required=True)

    p = baseline_actions.add_parser("list", help="List stored baselines")
    p.add_argument("--dir", help="Baseline directory (default: $AI_EVAL_HOME/baselines)")
    p.set_defaults(handler=cmd_baselines_list)

    p = baseline_actions.add_parser("show", help="Print one baseline as JSON")
    p.add_argument("id")
    p.add_argument("--dir", help="Baseline directory (default: $AI_EVAL_HOME/baselines)")
    p.set_defaults(handler=cmd_baselines_show)

    p = baseline_actions.add_parser("delete", help="Delete one baseline")
    p.add_argument("id")
    p.add_argument("--dir", help="Baseline directory (default: $AI_EVAL_HOME/baselines)")
    p.set_defaults(handler=cmd_baselines_delete)

    # snapshots
    snapshots = commands.add_parser("snapshots", help="Inspect or delete semantic snapshots")
    snapshot_actions = snapshots.add_subparsers(dest="action", required=True)

    p = snapshot_actions.add_parser("list", help="List stored snapshots")
    p.add_argument("--dir", help="Snapshot directory (default: $AI_EVAL_HOME/snapshots)")
    p.set_defaults(handler=cmd_snapshots_list)

    p = snapshot_actions.add_parser("delete", help="Delete one snapshot")
    p.add_argument("id")
    p.add_argument("--dir", help="Snapshot directory (default: $AI_EVAL_HOME/snapshots)")
    p.set_defaults(handler=cmd_snapshots_delete)

    # cost
    cost = commands.add_parser("cost", help="Estimate request costs")
    cost_actions = cost.add_subparsers(dest="action", required=True)

    p = cost_actions.add_parser("predict", help="Estimate the cost of a prompt")
    p.add_argument("model")
    source = p.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="Prompt text")
    source.add_argument("--file", help="File holding the prompt")
    p.add_argument("--output-tokens", type=int, default=500, help="Expected output tokens (default: 500)")
    p.set_defaults(handler=cmd_cost_predict)

    p = cost_actions.add_parser("suggest", help="Suggest a model at most half the price")
    p.add_argument("model")
    p.add_argument("cost_usd", type=float)
    p.set_defaults(handler=cmd_cost_suggest)

    p = cost_actions.add_parser("models", help="Print the pricing table")
    p.set_defaults(handler=cmd_cost_models)

    # compare
    p = commands.add_parser("compare", help="Score two output versions against a reference")
    p.add_argument("version1", help="File with the first version")
    p.add_argument("version2", help="File with the second version")
    p.add_argument("reference", help="File with the reference text")
    p.add_argument("--json", action="store_true", help="Print the comparison as JSON")
    p.set_defaults(handler=cmd_compare)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main CLI entry point with subcommands.

    Usage:
        ai-eval baselines list|show ID|delete ID [--dir DIR]
        ai-eval snapshots list|delete ID [--dir DIR]
        ai-eval cost predict MODEL (--text TEXT | --file PATH) [--output-tokens N]
        ai-eval cost suggest MODEL COST_USD
        ai-eval cost models
        ai-eval compare V1_FILE V2_FILE REFERENCE_FILE
    """
    _load_env()

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.handler(args)
    except (EvalError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
