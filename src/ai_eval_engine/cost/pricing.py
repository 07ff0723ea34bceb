"""
Cost estimation - model pricing and cost calculation.

Pricing is externalized so it can be:
1. Updated independently when providers change prices
2. Extended for new models
3. Used for cost projections and cheaper-model suggestions

Unknown models are priced with a configured default entry. This is a
deliberate fail-open policy with a conservative estimate, and every fallback
is logged so a mispriced test is visible.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Rough estimation: 1 token ~ 4 characters of English text. Not a tokenizer;
# callers that need exact numbers must record real token counts.
CHARS_PER_TOKEN = 4

DEFAULT_ESTIMATED_OUTPUT_TOKENS = 500

# A suggestion must cost at most this fraction of the current model's mean price
CHEAPER_MODEL_MAX_RATIO = 0.5


@dataclass(frozen=True)
class PricingEntry:
    """Price per 1M tokens for one model."""

    model: str
    input_per_million: float
    output_per_million: float
    provider: str

    def __post_init__(self):
        if self.input_per_million < 0 or self.output_per_million < 0:
            raise ValueError(f"Prices for {self.model} must be non-negative")

    @property
    def mean_price(self) -> float:
        return (self.input_per_million + self.output_per_million) / 2

    @property
    def is_wildcard(self) -> bool:
        return self.model.endswith("*")

    def cost(self, input_tokens: int, output_tokens: int) -> float:
        input_cost = (input_tokens / 1_000_000) * self.input_per_million
        output_cost = (output_tokens / 1_000_000) * self.output_per_million
        return input_cost + output_cost


# ---------------------------------------------------------------------------
# MODEL PRICING
# ---------------------------------------------------------------------------
# Approximate pricing per 1M tokens (as of 2025)

MODEL_PRICING: dict[str, PricingEntry] = {
    entry.model: entry
    for entry in [
        # OpenAI
        PricingEntry("gpt-4o", 2.50, 10.00, "openai"),
        PricingEntry("gpt-4o-mini", 0.15, 0.60, "openai"),
        PricingEntry("gpt-4-turbo", 10.00, 30.00, "openai"),
        PricingEntry("gpt-3.5-turbo", 0.50, 1.50, "openai"),
        PricingEntry("o1", 15.00, 60.00, "openai"),
        PricingEntry("o1-mini", 3.00, 12.00, "openai"),
        # Anthropic
        PricingEntry("claude-3-5-sonnet-20241022", 3.00, 15.00, "anthropic"),
        PricingEntry("claude-3-5-haiku-20241022", 0.80, 4.00, "anthropic"),
        PricingEntry("claude-3-opus-20240229", 15.00, 75.00, "anthropic"),
        # Google
        PricingEntry("gemini-1.5-pro", 1.25, 5.00, "google"),
        PricingEntry("gemini-1.5-flash", 0.075, 0.30, "google"),
        PricingEntry("gemini-2.0-flash", 0.10, 0.40, "google"),
        # Groq
        PricingEntry("llama-3.1-70b-versatile", 0.59, 0.79, "groq"),
        PricingEntry("llama-3.1-8b-instant", 0.05, 0.08, "groq"),
        PricingEntry("mixtral-8x7b-32768", 0.24, 0.24, "groq"),
        # xAI
        PricingEntry("grok-2", 2.00, 10.00, "xai"),
        PricingEntry("grok-2-mini", 0.20, 1.00, "xai"),
        # Local (free)
        PricingEntry("ollama/*", 0.0, 0.0, "ollama"),
    ]
}

DEFAULT_PRICING_MODEL = "gpt-4o-mini"


@dataclass(frozen=True)
class CostPrediction:
    """Estimated cost of a request before it is made."""

    estimated_cost: float
    input_tokens: int
    output_tokens: int


@dataclass(frozen=True)
class CheaperModelSuggestion:
    """A cheaper alternative and the savings it would bring."""

    model: str
    estimated_cost: float
    savings: float


# ---------------------------------------------------------------------------
# PRICING TABLE
# ---------------------------------------------------------------------------


class PricingTable:
    """Immutable model -> PricingEntry mapping with an explicit default.

    Lookup order: exact id, then wildcard prefix (``ollama/*`` matches
    ``ollama/llama3``), then the default entry (logged).
    """

    def __init__(
        self,
        entries: dict[str, PricingEntry] | None = None,
        default_model: str = DEFAULT_PRICING_MODEL,
    ):
        self._entries = dict(entries if entries is not None else MODEL_PRICING)
        if default_model not in self._entries:
            raise ValueError(f"Default pricing model {default_model!r} is not in the table")
        self._default_model = default_model

    @property
    def default_entry(self) -> PricingEntry:
        return self._entries[self._default_model]

    @property
    def entries(self) -> list[PricingEntry]:
        return list(self._entries.values())

    def __contains__(self, model: str) -> bool:
        return self.find(model) is not None

    def find(self, model: str) -> PricingEntry | None:
        """Exact or wildcard match, without falling back."""
        entry = self._entries.get(model)
        if entry is not None:
            return entry
        for candidate in self._entries.values():
            if candidate.is_wildcard and model.startswith(candidate.model[:-1]):
                return candidate
        return None

    def lookup(self, model: str) -> PricingEntry:
        """Pricing for ``model``, or the default entry for unknown models."""
        entry = self.find(model)
        if entry is not None:
            return entry
        default = self.default_entry
        logger.warning(
            f"No pricing for model '{model}', estimating with '{default.model}' "
            f"(${default.input_per_million}/1M in, ${default.output_per_million}/1M out)"
        )
        return default

    def calculate_cost(self, model: str, input_tokens: int, output_tokens: int) -> float:
        """
        Cost in USD for a given token usage.

        Example:
            >>> PricingTable().calculate_cost("gpt-4o-mini", 1000, 500)
            0.00045  # ($0.15/1M * 1000) + ($0.60/1M * 500)
        """
        return self.lookup(model).cost(input_tokens, output_tokens)

    def predict_cost(
        self,
        model: str,
        input_text: str,
        estimated_output_tokens: int = DEFAULT_ESTIMATED_OUTPUT_TOKENS,
    ) -> CostPrediction:
        """Estimate a request's cost from its prompt text."""
        input_tokens = math.ceil(len(input_text) / CHARS_PER_TOKEN)
        return CostPrediction(
            estimated_cost=self.calculate_cost(model, input_tokens, estimated_output_tokens),
            input_tokens=input_tokens,
            output_tokens=estimated_output_tokens,
        )

    def suggest_cheaper_model(
        self,
        current_model: str,
        current_cost: float,
    ) -> CheaperModelSuggestion | None:
        """
        Suggest the closest model costing at most half of ``current_model``.

        Among qualifying models the most expensive one wins, so the suggestion
        does not jump straight to the lowest-quality tier. Returns None for
        unknown models or when nothing qualifies.
        """
        current = self.find(current_model)
        if current is None or current.mean_price <= 0:
            return None

        limit = current.mean_price * CHEAPER_MODEL_MAX_RATIO
        alternatives = [
            entry
            for entry in self._entries.values()
            if entry.model != current.model
            and not entry.is_wildcard
            and entry.mean_price <= limit
        ]
        if not alternatives:
            return None

        best = max(alternatives, key=lambda e: e.mean_price)
        ratio = best.mean_price / current.mean_price
        estimated = current_cost * ratio
        return CheaperModelSuggestion(
            model=best.model,
            estimated_cost=estimated,
            savings=current_cost - estimated,
        )


# ---------------------------------------------------------------------------
# MODULE-LEVEL HELPERS
# ---------------------------------------------------------------------------

_default_table = PricingTable()


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Cost in USD using the built-in pricing table."""
    return _default_table.calculate_cost(model, input_tokens, output_tokens)


def predict_cost(
    model: str,
    input_text: str,
    estimated_output_tokens: int = DEFAULT_ESTIMATED_OUTPUT_TOKENS,
) -> CostPrediction:
    """Estimate a request's cost using the built-in pricing table."""
    return _default_table.predict_cost(model, input_text, estimated_output_tokens)


def suggest_cheaper_model(current_model: str, current_cost: float) -> CheaperModelSuggestion | None:
    """Cheaper-model suggestion using the built-in pricing table."""
    return _default_table.suggest_cheaper_model(current_model, current_cost)


def format_cost(cost: float) -> str:
    """Format a USD amount with precision appropriate to its size."""
    if cost < 0.000001:
        return "< $0.000001"
    if cost < 0.01:
        return f"${cost:.6f}"
    if cost < 1:
        return f"${cost:.4f}"
    return f"${cost:.2f}"


def format_tokens(tokens: int) -> str:
    """Format a token count as 950, 1.5K or 2.0M."""
    if tokens >= 1_000_000:
        return f"{tokens / 1_000_000:.1f}M"
    if tokens >= 1_000:
        return f"{tokens / 1_000:.1f}K"
    return str(tokens)
