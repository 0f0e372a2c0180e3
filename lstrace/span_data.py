"""Span contexts, log records and finished spans."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

# Sizes in bytes of the in-memory representations the size estimates count.
_ID_FIELDS_SIZE = 3 * 8
_TIMESTAMP_SIZE = 24
_DURATION_SIZE = 8
_LOG_FIELD_SIZE = 64


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


@dataclass
class SpanContext:
    """Identifiers, sampling decision and baggage that travel with a span."""

    trace_id: int = 0
    trace_id_upper: int = 0
    span_id: int = 0
    sampled: str = ""
    baggage: Optional[dict[str, str]] = None

    def size(self) -> int:
        """Approximate size of the context in bytes."""
        total = _ID_FIELDS_SIZE + _byte_len(self.sampled)
        for key, value in (self.baggage or {}).items():
            total += _byte_len(key) + _byte_len(value)
        return total

    def foreach_baggage_item(self, handler: Callable[[str, str], bool]) -> None:
        """Call ``handler`` for each baggage item until it returns a false value."""
        for key, value in (self.baggage or {}).items():
            if not handler(key, value):
                break

    def with_baggage_item(self, key: str, value: str) -> "SpanContext":
        """Return a new context with ``key`` set to ``value`` in its baggage."""
        baggage = dict(self.baggage or {})
        baggage[key] = value
        return SpanContext(
            trace_id=self.trace_id,
            trace_id_upper=self.trace_id_upper,
            span_id=self.span_id,
            sampled=self.sampled,
            baggage=baggage,
        )


class FieldKind(enum.Enum):
    """The type of value a log field carries."""

    STRING = "string"
    BOOL = "bool"
    INT = "int"
    INT32 = "int32"
    INT64 = "int64"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    ERROR = "error"
    OBJECT = "object"
    LAZY_LOGGER = "lazy_logger"
    NOOP = "noop"


@dataclass(frozen=True)
class Field:
    """A typed key/value pair inside a log record."""

    key: str
    kind: FieldKind
    value: Any = None

    def marshal(self, encoder: Any) -> None:
        """Hand this field to the matching ``emit_*`` method of ``encoder``."""
        kind = self.kind
        if kind is FieldKind.NOOP:
            return
        if kind is FieldKind.LAZY_LOGGER:
            encoder.emit_lazy_logger(self.value)
        elif kind is FieldKind.ERROR:
            text = "<nil>" if self.value is None else str(self.value)
            encoder.emit_string(self.key, text)
        else:
            getattr(encoder, f"emit_{kind.value}")(self.key, self.value)


@dataclass
class LogRecord:
    """A timestamped group of log fields."""

    timestamp: datetime
    fields: list[Field] = field(default_factory=list)


@dataclass
class RawSpan:
    """All state of a finished span."""

    context: SpanContext = field(default_factory=SpanContext)
    parent_span_id: int = 0
    operation: str = ""
    start: Optional[datetime] = None
    duration: timedelta = timedelta(0)
    tags: dict[str, Any] = field(default_factory=dict)
    logs: list[LogRecord] = field(default_factory=list)

    def size(self) -> int:
        """Approximate size of the span in bytes."""
        total = (
            self.context.size()
            + _ID_FIELDS_SIZE
            + _byte_len(self.operation)
            + _TIMESTAMP_SIZE
            + _DURATION_SIZE
        )
        for key, value in self.tags.items():
            total += _byte_len(key)
            if isinstance(value, str):
                total += _byte_len(value)
        for record in self.logs:
            total += _TIMESTAMP_SIZE + _LOG_FIELD_SIZE * len(record.fields)
        return total