"""
Tracing configuration

Loads OpenTelemetry settings from environment variables. Tracing is off
unless explicitly enabled.
"""

import os
from dataclasses import dataclass


@dataclass
class TracingConfig:
    """Configuration for OpenTelemetry tracing.

    Environment Variables:
        AI_EVAL_TRACING_ENABLED: Enable tracing (default: false)
        AI_EVAL_SERVICE_NAME: service.name resource attribute (default: ai-eval-engine)
        OTEL_EXPORTER_OTLP_ENDPOINT: OTLP/HTTP collector (console exporter if empty)
        AI_EVAL_TRACE_CAPTURE_TEXT: Attach evaluated text excerpts to spans (default: false)

    PRIVACY WARNING:
        Setting AI_EVAL_TRACE_CAPTURE_TEXT=true exports raw model output to the
        collector. Only enable it where that output may be stored.
    """

    enabled: bool = False
    service_name: str = "ai-eval-engine"
    otlp_endpoint: str | None = None
    capture_text: bool = False

    @classmethod
    def from_env(cls) -> "TracingConfig":
        """Load config from environment variables."""
        return cls(
            enabled=os.environ.get("AI_EVAL_TRACING_ENABLED", "false").lower() in ("true", "1", "yes"),
            service_name=os.environ.get("AI_EVAL_SERVICE_NAME", "ai-eval-engine"),
            otlp_endpoint=os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT") or None,
            capture_text=os.environ.get("AI_EVAL_TRACE_CAPTURE_TEXT", "false").lower() in ("true", "1", "yes"),
        )


# Global config singleton
_config: TracingConfig | None = None


def get_tracing_config() -> TracingConfig:
    """Get the global tracing config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = TracingConfig.from_env()
    return _config


def reset_tracing_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
