"""Conversion of OpenCensus identifiers and links to span contexts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .span_data import SpanContext

TRACE_ID_SIZE = 16
SPAN_ID_SIZE = 8


@dataclass(frozen=True)
class Link:
    """A reference from one span to another, possibly in another trace."""

    trace_id: bytes
    span_id: bytes
    attributes: dict[str, Any] = field(default_factory=dict)


def convert_trace_id(original: bytes) -> int:
    """The lower 64 bits (last 8 bytes, big endian) of a 16-byte trace id."""
    if len(original) != TRACE_ID_SIZE:
        raise ValueError(f"trace id must be {TRACE_ID_SIZE} bytes, got {len(original)}")
    return int.from_bytes(original[8:], "big")


def convert_span_id(original: bytes) -> int:
    """An 8-byte big-endian span id as an integer."""
    if len(original) != SPAN_ID_SIZE:
        raise ValueError(f"span id must be {SPAN_ID_SIZE} bytes, got {len(original)}")
    return int.from_bytes(original, "big")


def convert_link_to_span_context(link: Link) -> SpanContext:
    """A span context for ``link``; its string attributes become baggage."""
    return SpanContext(
        trace_id=convert_trace_id(link.trace_id),
        span_id=convert_span_id(link.span_id),
        baggage={k: v for k, v in link.attributes.items() if isinstance(v, str)},
    )