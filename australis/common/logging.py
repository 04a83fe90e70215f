import logging
from typing import Any

from opentelemetry import trace

from .config import ServiceSettings


_TRACE_PLACEHOLDER = "-"
_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | trace_id=%(trace_id)s span_id=%(span_id)s | %(message)s"

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "trace_id", "span_id"}


def _format_trace_id(value: int, length: int) -> str:
    return format(value, f"0{length}x")


def structured_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the ``extra=`` fields attached to a record, in insertion order."""

    return {key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS}


class TraceContextFilter(logging.Filter):
    """Populate trace/span identifiers when a span is active."""

    def filter(self, record: logging.LogRecord) -> bool:
        span = trace.get_current_span()
        span_context = span.get_span_context() if span is not None else None
        if span_context is not None and span_context.is_valid:
            record.trace_id = _format_trace_id(span_context.trace_id, 32)
            record.span_id = _format_trace_id(span_context.span_id, 16)
        else:
            record.trace_id = _TRACE_PLACEHOLDER
            record.span_id = _TRACE_PLACEHOLDER
        return True


class StructuredFormatter(logging.Formatter):
    """Append ``key=value`` pairs for fields passed through ``extra=``."""

    def format(self, record: logging.LogRecord) -> str:
        rendered = super().format(record)
        fields = structured_fields(record)
        if not fields:
            return rendered
        pairs = " ".join(f"{key}={value}" for key, value in fields.items())
        return f"{rendered} | {pairs}"


def configure_logging(settings: ServiceSettings) -> None:
    """Configure root logging level, format and trace context."""

    logging.basicConfig(level=settings.log_level, format=_LOG_FORMAT)
    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)
    existing_filter = next(
        (f for f in root_logger.filters if isinstance(f, TraceContextFilter)),
        None,
    )
    context_filter = existing_filter or TraceContextFilter()
    if existing_filter is None:
        root_logger.addFilter(context_filter)
    for handler in root_logger.handlers:
        if not any(isinstance(f, TraceContextFilter) for f in handler.filters):
            handler.addFilter(context_filter)
        if not isinstance(handler.formatter, StructuredFormatter):
            handler.setFormatter(StructuredFormatter(_LOG_FORMAT))
