"""Global, thread-safe dispatch of tracer events."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable

from .events import ErrorEvent, Event

EventHandler = Callable[[Event], None]

_logger = logging.getLogger("lstrace")
_lock = threading.Lock()
_handler: EventHandler


def set_global_event_handler(handler: EventHandler) -> None:
    """Replace the handler that receives every tracer event.

    The handler is called synchronously, so it must not block.
    """
    global _handler
    with _lock:
        _handler = handler


def emit_event(event: Event) -> None:
    """Pass an event to the current global handler."""
    with _lock:
        handler = _handler
    handler(event)


def _log_on_event(event: Event) -> None:
    if isinstance(event, ErrorEvent):
        _logger.error("LS Tracer error: %s", event)
    else:
        _logger.info("LS Tracer event: %s", event)


def new_event_logger() -> EventHandler:
    """A handler that logs every event."""
    return _log_on_event


def new_event_log_one_error() -> EventHandler:
    """A handler that logs only the first error event it sees."""
    once_lock = threading.Lock()
    done = False

    def on_event(event: Event) -> None:
        nonlocal done
        if not isinstance(event, ErrorEvent):
            return
        with once_lock:
            if done:
                return
            done = True
        _logger.error(
            "LS Tracer error: (%s). NOTE: Set the set_global_event_handler "
            "handler to log events.",
            event,
        )

    return on_event


def new_event_channel(buffer: int) -> tuple[EventHandler, "queue.Queue[Event]"]:
    """Return a handler and the bounded queue it fills.

    Events arriving while the queue is full are dropped. A buffer size below
    one is raised to one.
    """
    events: queue.Queue[Event] = queue.Queue(maxsize=max(buffer, 1))

    def handler(event: Event) -> None:
        try:
            events.put_nowait(event)
        except queue.Full:
            pass

    return handler, events


set_global_event_handler(new_event_log_one_error())