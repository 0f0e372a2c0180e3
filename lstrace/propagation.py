"""Injecting and extracting span contexts through text-map carriers."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any, Callable

from .span_data import SpanContext

PREFIX_BAGGAGE = "ot-baggage-"
TRACER_STATE_FIELD_COUNT = 3

PREFIX_TRACER_STATE = "ot-tracer-"
FIELD_NAME_TRACE_ID = PREFIX_TRACER_STATE + "traceid"
FIELD_NAME_SPAN_ID = PREFIX_TRACER_STATE + "spanid"
FIELD_NAME_SAMPLED = PREFIX_TRACER_STATE + "sampled"

B3_PREFIX = "x-b3-"
B3_FIELD_NAME_TRACE_ID = B3_PREFIX + "traceid"
B3_FIELD_NAME_SPAN_ID = B3_PREFIX + "spanid"
B3_FIELD_NAME_SAMPLED = B3_PREFIX + "sampled"

_HEX = re.compile(r"[0-9a-fA-F]+")
_UINT64_LIMIT = 1 << 64

TraceIDParser = Callable[[str], "tuple[int, int]"]


class PropagationError(Exception):
    """Base of every error raised while injecting or extracting."""


class InvalidSpanContextError(PropagationError):
    """The span context is not one this tracer understands."""

    def __init__(self, message: str = "SpanContext type incompatible with tracer") -> None:
        super().__init__(message)


class InvalidCarrierError(PropagationError):
    """The carrier does not support the requested operation."""

    def __init__(self, message: str = "invalid carrier") -> None:
        super().__init__(message)


class SpanContextNotFoundError(PropagationError):
    """The carrier holds no span context at all."""

    def __init__(self, message: str = "span context not found in Extract carrier") -> None:
        super().__init__(message)


class SpanContextCorruptedError(PropagationError):
    """The carrier holds a span context that cannot be decoded."""

    def __init__(self, message: str = "span context corrupted") -> None:
        super().__init__(message)


def _parse_hex_uint64(value: str) -> int:
    if not _HEX.fullmatch(value):
        raise ValueError(f"invalid hexadecimal number: {value!r}")
    number = int(value, 16)
    if number >= _UINT64_LIMIT:
        raise ValueError(f"value out of range: {value!r}")
    return number


def lightstep_trace_id_parser(value: str) -> tuple[int, int]:
    """Parse a 64-bit hexadecimal trace id into ``(lower, upper)``."""
    return _parse_hex_uint64(value), 0


def b3_trace_id_parser(value: str) -> tuple[int, int]:
    """Parse a 64- or 128-bit hexadecimal B3 trace id into ``(lower, upper)``."""
    if len(value) == 32:
        upper = _parse_hex_uint64(value[:15])
        lower = _parse_hex_uint64(value[16:])
        return lower, upper
    return _parse_hex_uint64(value), 0


def format_trace_id(lower: int, upper: int) -> str:
    """Format a trace id as hexadecimal, prefixed by the upper half when set."""
    if upper == 0:
        return format(lower, "x")
    return format(upper, "x") + format(lower, "x")


class Propagator(ABC):
    """Injects span contexts into carriers and extracts them again."""

    @abstractmethod
    def inject(self, span_context: Any, carrier: Any) -> None:
        """Write ``span_context`` into ``carrier``."""

    @abstractmethod
    def extract(self, carrier: Any) -> SpanContext:
        """Read a span context from ``carrier``."""


@dataclass(frozen=True)
class TextMapPropagator(Propagator):
    """Writes and reads span state under configurable text-map keys."""

    trace_id_key: str = FIELD_NAME_TRACE_ID
    trace_id: str = ""
    span_id_key: str = FIELD_NAME_SPAN_ID
    span_id: str = ""
    sampled_key: str = FIELD_NAME_SAMPLED
    sampled: str = ""
    parse_trace_id: TraceIDParser = lightstep_trace_id_parser

    def inject(self, span_context: Any, carrier: Any) -> None:
        if not isinstance(span_context, SpanContext):
            raise InvalidSpanContextError()
        if not isinstance(carrier, MutableMapping):
            raise InvalidCarrierError()
        carrier[self.trace_id_key] = self.trace_id
        carrier[self.span_id_key] = self.span_id
        carrier[self.sampled_key] = self.sampled or "true"
        for key, value in (span_context.baggage or {}).items():
            carrier[PREFIX_BAGGAGE + key] = value

    def extract(self, carrier: Any) -> SpanContext:
        if not isinstance(carrier, Mapping):
            raise InvalidCarrierError()

        found = 0
        trace_id_lower = trace_id_upper = span_id = 0
        sampled = ""
        baggage: dict[str, str] = {}
        for key, value in carrier.items():
            lowered = key.lower()
            if lowered == self.trace_id_key:
                try:
                    trace_id_lower, trace_id_upper = self.parse_trace_id(value)
                except ValueError as exc:
                    raise SpanContextCorruptedError() from exc
                found += 1
            elif lowered == self.span_id_key:
                try:
                    span_id = _parse_hex_uint64(value)
                except ValueError as exc:
                    raise SpanContextCorruptedError() from exc
                found += 1
            elif lowered == self.sampled_key:
                sampled = value
                found += 1
            elif lowered.startswith(PREFIX_BAGGAGE):
                baggage[lowered[len(PREFIX_BAGGAGE):]] = value

        if found < TRACER_STATE_FIELD_COUNT:
            if found == 0:
                raise SpanContextNotFoundError()
            raise SpanContextCorruptedError()

        return SpanContext(
            trace_id=trace_id_lower,
            trace_id_upper=trace_id_upper,
            span_id=span_id,
            sampled=sampled,
            baggage=baggage,
        )


class LightStepPropagator(Propagator):
    """Propagates context under the ``ot-tracer-*`` keys."""

    def inject(self, span_context: Any, carrier: Any) -> None:
        if not isinstance(span_context, SpanContext):
            raise InvalidSpanContextError()
        TextMapPropagator(
            trace_id_key=FIELD_NAME_TRACE_ID,
            trace_id=format(span_context.trace_id, "x"),
            span_id_key=FIELD_NAME_SPAN_ID,
            span_id=format(span_context.span_id, "x"),
            sampled_key=FIELD_NAME_SAMPLED,
            sampled=span_context.sampled,
        ).inject(span_context, carrier)

    def extract(self, carrier: Any) -> SpanContext:
        return TextMapPropagator(
            trace_id_key=FIELD_NAME_TRACE_ID,
            span_id_key=FIELD_NAME_SPAN_ID,
            sampled_key=FIELD_NAME_SAMPLED,
            parse_trace_id=lightstep_trace_id_parser,
        ).extract(carrier)


class B3Propagator(Propagator):
    """Propagates context under the B3 ``x-b3-*`` keys."""

    def inject(self, span_context: Any, carrier: Any) -> None:
        if not isinstance(span_context, SpanContext):
            raise InvalidSpanContextError()
        sample = (span_context.baggage or {}).get(B3_FIELD_NAME_SAMPLED) or "1"
        TextMapPropagator(
            trace_id_key=B3_FIELD_NAME_TRACE_ID,
            trace_id=format_trace_id(span_context.trace_id, span_context.trace_id_upper),
            span_id_key=B3_FIELD_NAME_SPAN_ID,
            span_id=format(span_context.span_id, "x"),
            sampled_key=B3_FIELD_NAME_SAMPLED,
            sampled=sample,
        ).inject(span_context, carrier)

    def extract(self, carrier: Any) -> SpanContext:
        return TextMapPropagator(
            trace_id_key=B3_FIELD_NAME_TRACE_ID,
            span_id_key=B3_FIELD_NAME_SPAN_ID,
            sampled_key=B3_FIELD_NAME_SAMPLED,
            parse_trace_id=b3_trace_id_parser,
        ).extract(carrier)


class PropagatorStack(Propagator):
    """Several propagators used together for one format."""

    def __init__(self) -> None:
        self.propagators: list[Propagator] = []

    def push_propagator(self, propagator: Propagator) -> None:
        """Add a propagator to the end of the stack."""
        self.propagators.append(propagator)

    def inject(self, span_context: Any, carrier: Any) -> None:
        """Inject with every propagator; their individual failures are ignored."""
        if not self.propagators:
            raise PropagationError("No valid propagator configured")
        for propagator in self.propagators:
            try:
                propagator.inject(span_context, carrier)
            except PropagationError:
                pass

    def extract(self, carrier: Any) -> SpanContext:
        """Return the context from the first propagator that succeeds."""
        if not self.propagators:
            raise PropagationError("No valid propagator configured")
        for propagator in self.propagators:
            try:
                return propagator.extract(carrier)
            except PropagationError:
                continue
        raise PropagationError("No valid propagator configured")