"""
Observability Module - OpenTelemetry tracing for eval runs

USAGE:
------
# At application startup:
from ai_eval_engine.observability import init_tracing

init_tracing()  # Installs an SDK provider if AI_EVAL_TRACING_ENABLED=true

# In code that needs tracing:
from ai_eval_engine.observability import get_tracer

tracer = get_tracer()
with tracer.start_span("my_operation", attributes={"key": "value"}) as span:
    # ... do work ...
    span.set_attribute("result", "success")
"""

from __future__ import annotations

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from ai_eval_engine.observability.config import (
    TracingConfig,
    get_tracing_config,
    reset_tracing_config,
)
from ai_eval_engine.observability.tracer import (
    TracerProtocol,
    SpanProtocol,
    NoOpTracer,
    NoOpSpan,
    OTelTracer,
    OTelSpan,
    get_tracer,
    reset_tracer,
)
from ai_eval_engine.observability.attributes import (
    # GenAI
    GEN_AI_SYSTEM,
    GEN_AI_REQUEST_MODEL,
    GEN_AI_USAGE_INPUT_TOKENS,
    GEN_AI_USAGE_OUTPUT_TOKENS,
    GEN_AI_USAGE_TOTAL_TOKENS,
    GEN_AI_USAGE_COST_USD,
    # Eval
    EVAL_RUN_ID,
    EVAL_RUN_TESTS_COUNT,
    EVAL_SUITE_NAME,
    EVAL_TEST_NAME,
    EVAL_TEST_STATUS,
    EVAL_TEST_DURATION_MS,
    EVAL_TEST_ERROR_TYPE,
    EVAL_TEST_OUTPUT_EXCERPT,
    # Helpers
    eval_test_attributes,
    usage_attributes,
)

logger = logging.getLogger(__name__)

_provider: TracerProvider | None = None


def init_tracing(config: TracingConfig | None = None) -> bool:
    """
    Initialize OpenTelemetry tracing.

    This should be called once at application startup. Spans go to the OTLP
    HTTP endpoint when one is configured, otherwise to the console.

    Returns:
        True if tracing was initialized, False if disabled
    """
    global _provider
    if _provider is not None:
        return True

    config = config or get_tracing_config()
    if not config.enabled:
        logger.debug("Tracing disabled")
        return False

    if config.otlp_endpoint:
        exporter = OTLPSpanExporter(endpoint=f"{config.otlp_endpoint.rstrip('/')}/v1/traces")
        logger.info(f"Exporting traces to {config.otlp_endpoint}")
    else:
        exporter = ConsoleSpanExporter()
        logger.info("No OTLP endpoint configured, exporting traces to console")

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: config.service_name}))
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    reset_tracer()

    _provider = provider
    return True


def shutdown_tracing() -> None:
    """Flush pending spans and drop the cached tracer."""
    global _provider

    if _provider is None:
        return

    _provider.shutdown()
    reset_tracer()
    reset_tracing_config()
    _provider = None


__all__ = [
    # Initialization
    "init_tracing",
    "shutdown_tracing",
    # Config
    "TracingConfig",
    "get_tracing_config",
    "reset_tracing_config",
    # Tracer
    "TracerProtocol",
    "SpanProtocol",
    "NoOpTracer",
    "NoOpSpan",
    "OTelTracer",
    "OTelSpan",
    "get_tracer",
    "reset_tracer",
    # Attributes - GenAI
    "GEN_AI_SYSTEM",
    "GEN_AI_REQUEST_MODEL",
    "GEN_AI_USAGE_INPUT_TOKENS",
    "GEN_AI_USAGE_OUTPUT_TOKENS",
    "GEN_AI_USAGE_TOTAL_TOKENS",
    "GEN_AI_USAGE_COST_USD",
    # Attributes - Eval
    "EVAL_RUN_ID",
    "EVAL_RUN_TESTS_COUNT",
    "EVAL_SUITE_NAME",
    "EVAL_TEST_NAME",
    "EVAL_TEST_STATUS",
    "EVAL_TEST_DURATION_MS",
    "EVAL_TEST_ERROR_TYPE",
    "EVAL_TEST_OUTPUT_EXCERPT",
    # Helpers
    "eval_test_attributes",
    "usage_attributes",
]
