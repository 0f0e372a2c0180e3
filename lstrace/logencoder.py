"""Encoding of span log fields into typed key/value pairs."""

from __future__ import annotations

import enum
import json
import struct
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from .event_handlers import emit_event
from .events import EventUnsupportedValue
from .span_data import Field

ELLIPSIS = "…"
JSON_ERROR_VALUE = "<json.Marshal error>"


class ValueKind(enum.Enum):
    """The type of value held by a :class:`KeyValue`."""

    STRING = "string"
    INT = "int"
    DOUBLE = "double"
    BOOL = "bool"
    JSON = "json"


@dataclass(frozen=True)
class KeyValue:
    """A typed key/value pair as sent to the collector."""

    key: str
    kind: ValueKind
    value: Any


@dataclass
class EncodingStats:
    """Counters updated while encoding a report."""

    log_encoder_error_count: int = 0


def _truncate(text: str, limit: int) -> str:
    if limit > 0 and len(text) > limit:
        return text[: limit - 1] + ELLIPSIS
    return text


class LogFieldEncoder:
    """Collects log fields as :class:`KeyValue` pairs, truncating long keys and values."""

    def __init__(
        self, stats: EncodingStats, max_key_len: int = 0, max_value_len: int = 0
    ) -> None:
        self.stats = stats
        self.max_key_len = max_key_len
        self.max_value_len = max_value_len
        self.key_values: list[KeyValue] = []

    def _emit(self, key: str, kind: ValueKind, value: Any) -> None:
        self.key_values.append(KeyValue(_truncate(key, self.max_key_len), kind, value))

    def _emit_safe_string(self, key: str, value: str) -> None:
        self._emit(key, ValueKind.STRING, _truncate(value, self.max_value_len))

    def emit_string(self, key: str, value: str) -> None:
        self._emit_safe_string(key, value)

    def emit_bool(self, key: str, value: bool) -> None:
        self._emit(key, ValueKind.BOOL, bool(value))

    def emit_int(self, key: str, value: int) -> None:
        self._emit(key, ValueKind.INT, int(value))

    def emit_int32(self, key: str, value: int) -> None:
        self._emit(key, ValueKind.INT, int(value))

    def emit_int64(self, key: str, value: int) -> None:
        self._emit(key, ValueKind.INT, int(value))

    # Unsigned integers are sent as strings: the wire format has no unsigned type.
    def emit_uint32(self, key: str, value: int) -> None:
        self._emit(key, ValueKind.STRING, str(int(value)))

    def emit_uint64(self, key: str, value: int) -> None:
        self._emit(key, ValueKind.STRING, str(int(value)))

    def emit_float32(self, key: str, value: float) -> None:
        single = struct.unpack("<f", struct.pack("<f", value))[0]
        self._emit(key, ValueKind.DOUBLE, single)

    def emit_float64(self, key: str, value: float) -> None:
        self._emit(key, ValueKind.DOUBLE, float(value))

    def emit_object(self, key: str, value: Any) -> None:
        """Encode ``value`` as JSON; on failure record an error and a placeholder."""
        try:
            encoded = json.dumps(value, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as exc:
            emit_event(EventUnsupportedValue(key, value, exc))
            self.stats.log_encoder_error_count += 1
            self._emit_safe_string(key, JSON_ERROR_VALUE)
            return
        if self.max_value_len > 0 and len(encoded) > self.max_value_len:
            self._emit(key, ValueKind.STRING, _truncate(encoded, self.max_value_len))
            return
        self._emit(key, ValueKind.JSON, encoded)

    def emit_lazy_logger(self, value: Callable[["LogFieldEncoder"], None]) -> None:
        """Let ``value`` emit its fields through this encoder."""
        value(self)


def marshal_fields(
    fields: Iterable[Field],
    stats: EncodingStats,
    max_key_len: int = 0,
    max_value_len: int = 0,
) -> list[KeyValue]:
    """Encode log ``fields`` into key/value pairs, updating ``stats``."""
    encoder = LogFieldEncoder(stats, max_key_len, max_value_len)
    for item in fields:
        item.marshal(encoder)
    return encoder.key_values