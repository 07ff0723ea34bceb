"""
Semantic Conventions for Span Attributes

Defines attribute keys following OpenTelemetry GenAI conventions
plus a custom namespace for eval runs.

Reference: https://opentelemetry.io/docs/specs/semconv/gen-ai/
"""

# ---------------------------------------------------------------------------
# GENAI NAMESPACE (OTel standard)
# ---------------------------------------------------------------------------

GEN_AI_SYSTEM = "gen_ai.system"  # "openai", "anthropic", etc.
GEN_AI_REQUEST_MODEL = "gen_ai.request.model"  # "gpt-4o-mini"

GEN_AI_USAGE_INPUT_TOKENS = "gen_ai.usage.input_tokens"
GEN_AI_USAGE_OUTPUT_TOKENS = "gen_ai.usage.output_tokens"
GEN_AI_USAGE_TOTAL_TOKENS = "gen_ai.usage.total_tokens"
GEN_AI_USAGE_COST_USD = "gen_ai.usage.cost_usd"


# ---------------------------------------------------------------------------
# EVAL NAMESPACE (custom)
# ---------------------------------------------------------------------------

# Run level
EVAL_RUN_ID = "eval.run.id"  # UUID for correlation
EVAL_RUN_TESTS_COUNT = "eval.run.tests_count"

# Test level
EVAL_SUITE_NAME = "eval.suite.name"
EVAL_TEST_NAME = "eval.test.name"  # "Greeting > is friendly"
EVAL_TEST_STATUS = "eval.test.status"  # "passed", "failed", "skipped"
EVAL_TEST_DURATION_MS = "eval.test.duration_ms"
EVAL_TEST_ERROR_TYPE = "eval.test.error_type"  # "SemanticMismatch", "EvalTimeout"
EVAL_TEST_OUTPUT_EXCERPT = "eval.test.output_excerpt"  # only with AI_EVAL_TRACE_CAPTURE_TEXT


# ---------------------------------------------------------------------------
# HELPER FUNCTIONS
# ---------------------------------------------------------------------------


def eval_test_attributes(
    test_name: str,
    status: str,
    duration_ms: float,
    suite_name: str | None = None,
    error_type: str | None = None,
) -> dict:
    """Create attributes dict for a test span."""
    attrs = {
        EVAL_TEST_NAME: test_name,
        EVAL_TEST_STATUS: status,
        EVAL_TEST_DURATION_MS: duration_ms,
    }
    if suite_name:
        attrs[EVAL_SUITE_NAME] = suite_name
    if error_type:
        attrs[EVAL_TEST_ERROR_TYPE] = error_type
    return attrs


def usage_attributes(
    model: str,
    provider: str,
    input_tokens: int,
    output_tokens: int,
    cost_usd: float,
) -> dict:
    """Create attributes dict for a test's accumulated LLM usage."""
    attrs = {
        GEN_AI_USAGE_INPUT_TOKENS: input_tokens,
        GEN_AI_USAGE_OUTPUT_TOKENS: output_tokens,
        GEN_AI_USAGE_TOTAL_TOKENS: input_tokens + output_tokens,
        GEN_AI_USAGE_COST_USD: cost_usd,
    }
    if model:
        attrs[GEN_AI_REQUEST_MODEL] = model
    if provider:
        attrs[GEN_AI_SYSTEM] = provider
    return attrs
