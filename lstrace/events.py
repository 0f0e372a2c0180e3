"""Events the tracer reports through the global event handler."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

TRACER_DISABLED = "the tracer has been disabled"


class Event(ABC):
    """Base of every event emitted by the tracer."""

    @abstractmethod
    def __str__(self) -> str:
        """Human-readable description of the event."""


class ErrorEvent(Event, Exception):
    """An event that carries an underlying error; it can also be raised."""

    def __init__(self, err: Optional[BaseException]) -> None:
        Exception.__init__(self, err)
        self.err = err

    def __str__(self) -> str:
        return "" if self.err is None else str(self.err)


class EventStartError(ErrorEvent):
    """The options given to the tracer were invalid and it failed to start."""


class FlushErrorState(str, enum.Enum):
    """Possible causes of a failed flush."""

    TRACER_CLOSED = "flush failed, the tracer is closed."
    TRACER_DISABLED = "flush failed, the tracer is disabled."
    TRANSPORT = "flush failed, could not send report to Collector"
    REPORT = "flush failed, report contained errors"
    TRANSLATE = "flush failed, could not translate report"


class EventFlushError(ErrorEvent):
    """A flush failed to send; ``state`` tells why."""

    def __init__(self, err: Optional[BaseException], state: FlushErrorState) -> None:
        super().__init__(err)
        self.state = state


class EventConnectionError(ErrorEvent):
    """The tracer failed to maintain its connection with the collector."""


@dataclass
class EventStatusReport(Event):
    """Metrics collected since the previous successful flush."""

    start_time: datetime
    finish_time: datetime
    sent_spans: int
    dropped_spans: int
    encoding_errors: int
    flush_duration: timedelta

    def duration(self) -> timedelta:
        """Time between the start and finish of the report buffer."""
        return self.finish_time - self.start_time

    def __str__(self) -> str:
        return (
            f"STATUS REPORT start: {self.start_time}"
            f", end: {self.finish_time}"
            f", send spans: {self.sent_spans}"
            f", dropped spans: {self.dropped_spans}"
            f", encoding errors: {self.encoding_errors}"
        )


class EventUnsupportedTracer(ErrorEvent):
    """A tracer handed to a helper is not one of ours."""

    def __init__(self, tracer: Any) -> None:
        super().__init__(
            TypeError(f"unsupported tracer type: {type(tracer).__qualname__}")
        )
        self.tracer = tracer


class EventUnsupportedValue(ErrorEvent):
    """A tag or log field value could not be serialized."""

    def __init__(
        self, key: str, value: Any, err: Optional[BaseException] = None
    ) -> None:
        if err is None:
            err = TypeError(
                f"value `{value}` of type `{type(value).__name__}` "
                f"for key `{key}` is an unsupported type"
            )
        super().__init__(err)
        self.key = key
        self.value = value


@dataclass(frozen=True)
class EventTracerDisabled(Event):
    """The tracer was disabled by the user or the collector."""

    def __str__(self) -> str:
        return TRACER_DISABLED


class EventSystemMetricsMeasurementFailed(ErrorEvent):
    """Measuring system metrics failed."""


@dataclass
class EventSystemMetricsStatusReport(Event):
    """Emitted each time metrics are sent successfully."""

    start_time: datetime
    finish_time: datetime
    sent_metrics: int

    def __str__(self) -> str:
        return (
            f"METRICS STATUS REPORT start: {self.start_time}"
            f", end: {self.finish_time}"
            f", sent metrics: {self.sent_metrics}"
        )


@dataclass(frozen=True)
class EventMissingService(Event):
    """The tracer was initialized without a service name."""

    default_service: str

    def __str__(self) -> str:
        return (
            "Warning: Service name not specified in initialization of Lightstep tracer."
            f"Using default service {{{self.default_service}}} instead."
        )