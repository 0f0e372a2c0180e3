import logging
import threading

import pytest

from lstrace.event_handlers import (
    emit_event,
    new_event_channel,
    new_event_log_one_error,
    new_event_logger,
    set_global_event_handler,
)
from lstrace.events import EventStartError, EventTracerDisabled


@pytest.fixture(autouse=True)
def restore_default_handler():
    yield
    set_global_event_handler(new_event_log_one_error())


class CountingHandler:
    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def on_event(self, event):
        with self._lock:
            self.events.append(event)


def test_handler_can_be_updated_with_different_handlers():
    h1 = CountingHandler()
    h2 = CountingHandler()
    set_global_event_handler(h1.on_event)
    emit_event(EventTracerDisabled())
    set_global_event_handler(h2.on_event)
    emit_event(EventTracerDisabled())
    assert len(h1.events) == 1
    assert len(h2.events) == 1


def test_event_channel_drops_when_full():
    handler, events = new_event_channel(2)
    first = EventStartError(ValueError("a"))
    second = EventStartError(ValueError("b"))
    third = EventStartError(ValueError("c"))
    set_global_event_handler(handler)
    for event in (first, second, third):
        emit_event(event)
    assert events.qsize() == 2
    assert events.get_nowait() is first
    assert events.get_nowait() is second
    assert events.empty()


@pytest.mark.parametrize("size", [0, -5])
def test_event_channel_buffer_adjusted_to_one(size):
    handler, events = new_event_channel(size)
    assert events.maxsize == 1
    handler(EventTracerDisabled())
    handler(EventTracerDisabled())
    assert events.qsize() == 1


def test_log_one_error_logs_only_first_error(caplog):
    caplog.set_level(logging.INFO, logger="lstrace")
    handler = new_event_log_one_error()
    handler(EventTracerDisabled())
    handler(EventStartError(ValueError("first")))
    handler(EventStartError(ValueError("second")))
    messages = [r.getMessage() for r in caplog.records]
    assert len(messages) == 1
    assert "(first)" in messages[0]


def test_event_logger_logs_every_event(caplog):
    caplog.set_level(logging.INFO, logger="lstrace")
    handler = new_event_logger()
    handler(EventStartError(ValueError("oops")))
    handler(EventTracerDisabled())
    messages = [r.getMessage() for r in caplog.records]
    assert messages == [
        "LS Tracer error: oops",
        "LS Tracer event: the tracer has been disabled",
    ]
    assert caplog.records[0].levelno == logging.ERROR


def test_default_handler_logs_first_error(caplog):
    caplog.set_level(logging.INFO, logger="lstrace")
    set_global_event_handler(new_event_log_one_error())
    emit_event(EventStartError(ValueError("default")))
    emit_event(EventStartError(ValueError("ignored")))
    messages = [r.getMessage() for r in caplog.records]
    assert len(messages) == 1
    assert "(default)" in messages[0]