"""Conversion of span data into the collector's report structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping

from .event_handlers import emit_event
from .events import EventUnsupportedValue
from .logencoder import EncodingStats, KeyValue, ValueKind, marshal_fields
from .span_data import LogRecord

SPANS_DROPPED = "spans.dropped"
LOG_ENCODER_ERRORS = "log_encoder.errors"
CHILD_OF = "CHILD_OF"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MASK64 = (1 << 64) - 1
_ONE_MICROSECOND = timedelta(microseconds=1)


def _to_int64(value: int) -> int:
    value &= _MASK64
    return value - (1 << 64) if value >= 1 << 63 else value


@dataclass(frozen=True)
class Timestamp:
    """Seconds and nanoseconds since the Unix epoch."""

    seconds: int
    nanos: int


@dataclass(frozen=True)
class Reference:
    """A relationship from a span to another span."""

    span_id: int
    relationship: str = CHILD_OF


@dataclass(frozen=True)
class EncodedLog:
    """A log record ready to be sent."""

    timestamp: Timestamp
    fields: list[KeyValue] = field(default_factory=list)


@dataclass
class ProtoConverter:
    """Turns tags, logs and times into report structures."""

    verbose: bool = False
    max_log_key_len: int = 0
    max_log_value_len: int = 0

    def to_field(self, key: str, value: Any) -> KeyValue:
        """Encode a tag value according to its type."""
        if isinstance(value, bool):
            return KeyValue(key, ValueKind.BOOL, value)
        if isinstance(value, str):
            return KeyValue(key, ValueKind.STRING, value)
        if isinstance(value, int):
            return KeyValue(key, ValueKind.INT, _to_int64(value))
        if isinstance(value, float):
            return KeyValue(key, ValueKind.DOUBLE, value)
        if isinstance(value, BaseException) or type(value).__str__ is not object.__str__:
            text = str(value)
        else:
            text = repr(value)
            emit_event(EventUnsupportedValue(key, value))
        return KeyValue(key, ValueKind.STRING, text)

    def from_tags(self, tags: Mapping[str, Any]) -> list[KeyValue]:
        """Encode every tag."""
        return [self.to_field(key, value) for key, value in tags.items()]

    def to_fields(self, attributes: Mapping[str, str]) -> list[KeyValue]:
        """Encode reporter attributes."""
        return [self.to_field(key, value) for key, value in attributes.items()]

    def to_log(self, record: LogRecord, stats: EncodingStats) -> EncodedLog:
        """Encode one log record, counting encoding errors in ``stats``."""
        return EncodedLog(
            timestamp=self.to_timestamp(record.timestamp),
            fields=marshal_fields(
                record.fields, stats, self.max_log_key_len, self.max_log_value_len
            ),
        )

    def to_logs(
        self, records: Iterable[LogRecord], stats: EncodingStats
    ) -> list[EncodedLog]:
        """Encode log records in order."""
        return [self.to_log(record, stats) for record in records]

    def to_reference(self, parent_span_id: int) -> list[Reference]:
        """A child-of reference to the parent, or nothing when there is none."""
        if parent_span_id == 0:
            return []
        return [Reference(span_id=parent_span_id)]

    def to_timestamp(self, moment: datetime) -> Timestamp:
        """Seconds and non-negative nanoseconds since the epoch; naive means local time."""
        if moment.tzinfo is None:
            moment = moment.astimezone(timezone.utc)
        delta = moment - _EPOCH
        return Timestamp(
            seconds=delta.days * 86400 + delta.seconds,
            nanos=delta.microseconds * 1000,
        )

    def from_duration(self, duration: timedelta) -> int:
        """Whole microseconds in ``duration``, as an unsigned 64-bit value."""
        return (duration // _ONE_MICROSECOND) & _MASK64

    def from_time_range(self, oldest: datetime, youngest: datetime) -> int:
        """Microseconds from ``oldest`` to ``youngest``."""
        return self.from_duration(youngest - oldest)