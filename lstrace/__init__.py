"""Tracing primitives: span data, context propagators, options, log encoding, events and random ID pools."""

__version__ = "0.1.0"

__all__ = [
    "conversions",
    "converter",
    "event_handlers",
    "events",
    "logencoder",
    "options",
    "propagation",
    "randpool",
    "span_data",
]