"""JSON logging and optional OpenTelemetry tracing for Harmonist services.

Records are emitted one JSON object per line. Structured fields can be
attached with ``logger.info("...", extra={"fields": {...}})``; they are
merged into the payload. When tracing is configured, the current trace and
span ids are added as well.
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional

from .config import get_settings

try:
    # Optional OTEL tracing
    from opentelemetry import trace
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor
except ImportError:  # pragma: no cover - OTEL is optional
    trace = None  # type: ignore

# Third-party loggers that are chatty below WARNING
QUIET_LOGGERS = ("numba", "python_multipart", "multipart")

_TRACER_NAME = "harmonist"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            payload.update({k: v for k, v in fields.items() if k not in payload})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        span = trace.get_current_span() if trace else None
        if span is not None:
            ctx = span.get_span_context()
            if ctx and ctx.is_valid:
                payload["trace_id"] = format(ctx.trace_id, "032x")
                payload["span_id"] = format(ctx.span_id, "016x")
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: Optional[str] = None) -> None:
    """Route the root logger to stdout as JSON lines at HM_LOG_LEVEL."""
    s = get_settings()
    log_level = getattr(logging, (level or s.HM_LOG_LEVEL).upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def setup_tracing(service_name: str = "harmonist", service_version: Optional[str] = None) -> bool:
    """Install an OTLP/HTTP tracer provider when HM_OTEL_ENDPOINT is set.

    Returns:
        True when a tracer provider was installed.
    """
    s = get_settings()
    if not s.HM_OTEL_ENDPOINT or not trace:
        return False

    attributes = {"service.name": service_name, "deployment.environment": s.HM_ENV}
    if service_version:
        attributes["service.version"] = service_version
    provider = TracerProvider(resource=Resource.create(attributes))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=s.HM_OTEL_ENDPOINT)))
    trace.set_tracer_provider(provider)
    return True


@contextmanager
def span(name: str, **attributes) -> Iterator[None]:
    """Trace a block of work; does nothing when OpenTelemetry is absent."""
    if not trace:
        yield
        return
    with trace.get_tracer(_TRACER_NAME).start_as_current_span(name) as current:
        for key, value in attributes.items():
            current.set_attribute(key, value)
        yield


__all__ = ["QUIET_LOGGERS", "JsonFormatter", "setup_logging", "setup_tracing", "span"]
