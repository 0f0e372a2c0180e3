"""Tracer configuration, endpoints and span start options."""

from __future__ import annotations

import os
import random
import socket
import sys
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Iterable, Optional

from .event_handlers import emit_event
from .events import EventMissingService

DEFAULT_COLLECTOR_PATH = "/_rpc/v1/reports/binary"
DEFAULT_PLAIN_PORT = 80
DEFAULT_SECURE_PORT = 443
DEFAULT_GRPC_COLLECTOR_HOST = "collector-grpc.lightstep.com"

DEFAULT_SYSTEM_METRICS_HOST = "ingest.lightstep.com"

DEFAULT_SYSTEM_METRICS_MEASUREMENT_FREQUENCY = timedelta(seconds=30)
DEFAULT_SYSTEM_METRICS_TIMEOUT = timedelta(seconds=5)

DEFAULT_MAX_REPORTING_PERIOD = timedelta(milliseconds=2500)
DEFAULT_MIN_REPORTING_PERIOD = timedelta(milliseconds=500)
DEFAULT_MAX_SPANS = 1000
DEFAULT_REPORT_TIMEOUT = timedelta(seconds=30)
DEFAULT_RECONNECT_PERIOD = timedelta(minutes=5)

DEFAULT_MAX_LOG_KEY_LEN = 256
DEFAULT_MAX_LOG_VALUE_LEN = 1024
DEFAULT_MAX_LOGS_PER_SPAN = 500

DEFAULT_GRPC_MAX_CALL_SEND_MSG_SIZE_BYTES = 2**31 - 1

COMPONENT_NAME_KEY = "lightstep.component_name"
HOSTNAME_KEY = "lightstep.hostname"
SERVICE_VERSION_KEY = "service.version"

PARENT_SPAN_GUID_KEY = "parent_span_guid"
GUID_KEY = "lightstep.guid"
COMMAND_LINE_KEY = "lightstep.command_line"

TRACER_PLATFORM_KEY = "lightstep.tracer_platform"
TRACER_PLATFORM_VALUE = "python"
TRACER_PLATFORM_VERSION_KEY = "lightstep.tracer_platform_version"
TRACER_VERSION_KEY = "lightstep.tracer_version"

LS_META_EVENT_META_EVENT_KEY = "lightstep.meta_event"
LS_META_EVENT_PROPAGATION_FORMAT_KEY = "lightstep.propagation_format"
LS_META_EVENT_TRACE_ID_KEY = "lightstep.trace_id"
LS_META_EVENT_SPAN_ID_KEY = "lightstep.span_id"
LS_META_EVENT_TRACER_GUID_KEY = "lightstep.tracer_guid"

LS_META_EVENT_EXTRACT_OPERATION = "lightstep.extract_span"
LS_META_EVENT_INJECT_OPERATION = "lightstep.inject_span"
LS_META_EVENT_SPAN_START_OPERATION = "lightstep.span_start"
LS_META_EVENT_SPAN_FINISH_OPERATION = "lightstep.span_finish"
LS_META_EVENT_TRACER_CREATE_OPERATION = "lightstep.tracer_create"

_SECURE_SCHEME = "https"
_PLAINTEXT_SCHEME = "http"


@dataclass
class Endpoint:
    """Host, port and transport security of a collector or API endpoint."""

    scheme: str = ""
    host: str = ""
    port: int = 0
    plaintext: bool = False
    custom_ca_cert_file: str = ""

    def socket_address(self) -> str:
        """Address suitable for dialing a gRPC connection."""
        return f"{self.host}:{self.port}"

    def host_port(self) -> str:
        """Deprecated alias of :meth:`socket_address`."""
        return self.socket_address()

    def url(self) -> str:
        """Address suitable for HTTP reports."""
        return f"{self.url_without_path()}{DEFAULT_COLLECTOR_PATH}"

    def url_without_path(self) -> str:
        """Scheme and socket address, without a path."""
        return f"{self._effective_scheme()}://{self.socket_address()}"

    def _effective_scheme(self) -> str:
        if self.scheme:
            return self.scheme
        return _PLAINTEXT_SCHEME if self.plaintext else _SECURE_SCHEME


@dataclass
class SystemMetricsOptions:
    """Settings for system metrics reporting."""

    disabled: bool = False
    endpoint: Endpoint = field(default_factory=Endpoint)
    measurement_frequency: timedelta = timedelta(0)
    timeout: timedelta = timedelta(0)


@dataclass
class Options:
    """Settings that control how the tracer behaves.

    Zero values mean "unset" and are replaced with defaults by :meth:`initialize`.
    """

    access_token: str = ""
    collector: Endpoint = field(default_factory=Endpoint)
    tags: Optional[dict[str, Any]] = None
    lightstep_api: Endpoint = field(default_factory=Endpoint)
    max_buffered_spans: int = 0
    max_log_key_len: int = 0
    max_log_value_len: int = 0
    max_logs_per_span: int = 0
    grpc_max_call_send_msg_size_bytes: int = 0
    reporting_period: timedelta = timedelta(0)
    min_reporting_period: timedelta = timedelta(0)
    report_timeout: timedelta = timedelta(0)
    drop_span_logs: bool = False
    verbose: bool = False
    use_http: bool = False
    use_grpc: bool = False
    propagators: dict[Any, Any] = field(default_factory=dict)
    custom_collector: Any = None
    reconnect_period: timedelta = timedelta(0)
    dial_options: list[Any] = field(default_factory=list)
    recorder: Any = None
    conn_factory: Any = None
    meta_event_reporting_enabled: bool = False
    system_metrics: SystemMetricsOptions = field(default_factory=SystemMetricsOptions)

    def initialize(self) -> None:
        """Validate the options and fill in defaults for unset values."""
        self.validate()

        if not self.max_buffered_spans:
            self.max_buffered_spans = DEFAULT_MAX_SPANS
        if not self.max_log_key_len:
            self.max_log_key_len = DEFAULT_MAX_LOG_KEY_LEN
        if not self.max_log_value_len:
            self.max_log_value_len = DEFAULT_MAX_LOG_VALUE_LEN
        if not self.max_logs_per_span:
            self.max_logs_per_span = DEFAULT_MAX_LOGS_PER_SPAN
        if not self.grpc_max_call_send_msg_size_bytes:
            self.grpc_max_call_send_msg_size_bytes = DEFAULT_GRPC_MAX_CALL_SEND_MSG_SIZE_BYTES
        if not self.reporting_period:
            self.reporting_period = DEFAULT_MAX_REPORTING_PERIOD
        if not self.min_reporting_period:
            self.min_reporting_period = DEFAULT_MIN_REPORTING_PERIOD
        if not self.report_timeout:
            self.report_timeout = DEFAULT_REPORT_TIMEOUT
        if not self.reconnect_period:
            self.reconnect_period = DEFAULT_RECONNECT_PERIOD
        if self.tags is None:
            self.tags = {}

        argv = sys.argv or [""]
        if COMPONENT_NAME_KEY not in self.tags:
            default_service = os.path.basename(argv[0])
            emit_event(EventMissingService(default_service))
            self.tags[COMPONENT_NAME_KEY] = default_service
        if HOSTNAME_KEY not in self.tags:
            try:
                hostname = socket.gethostname()
            except OSError:
                hostname = ""
            self.tags[HOSTNAME_KEY] = hostname
        if COMMAND_LINE_KEY not in self.tags:
            self.tags[COMMAND_LINE_KEY] = " ".join(argv)

        self.reconnect_period = self.reconnect_period * (1 + 0.2 * random.random())

        if not self.collector.host:
            self.collector.host = DEFAULT_GRPC_COLLECTOR_HOST
        if self.collector.port <= 0:
            self.collector.port = (
                DEFAULT_PLAIN_PORT if self.collector.plaintext else DEFAULT_SECURE_PORT
            )

    def validate(self) -> None:
        """Raise if a required setting is wrong.

        Raises ValueError when the reserved GUID tag is set and
        FileNotFoundError when the custom CA certificate file is missing.
        """
        if self.tags and GUID_KEY in self.tags:
            raise ValueError(
                f"Options invalid: setting the {GUID_KEY} tag is no longer supported"
            )
        ca_file = self.collector.custom_ca_cert_file
        if ca_file:
            try:
                os.stat(ca_file)
            except FileNotFoundError:
                raise
            except OSError:
                pass


@dataclass
class StartSpanOptions:
    """Start options for a span, including explicitly chosen identifiers."""

    options: dict[str, Any] = field(default_factory=dict)
    set_span_id: int = 0
    set_parent_span_id: int = 0
    set_trace_id: int = 0
    set_sampled: str = ""


class SetSpanID(int):
    """Start option that sets an explicit span id; use with :class:`SetTraceID`."""

    def apply_ls(self, sso: StartSpanOptions) -> None:
        sso.set_span_id = int(self)


class SetTraceID(int):
    """Start option that sets an explicit trace id."""

    def apply_ls(self, sso: StartSpanOptions) -> None:
        sso.set_trace_id = int(self)


class SetParentSpanID(int):
    """Start option that sets an explicit parent span id; zero is ignored."""

    def apply_ls(self, sso: StartSpanOptions) -> None:
        sso.set_parent_span_id = int(self)


class SetSampled(str):
    """Start option that sets the sampling decision."""

    def apply_ls(self, sso: StartSpanOptions) -> None:
        sso.set_sampled = str(self)


def new_start_span_options(options: Iterable[Any]) -> StartSpanOptions:
    """Collect start options into a :class:`StartSpanOptions`.

    Options with ``apply_ls`` set the explicit identifiers; any other option
    must have an ``apply`` method, which receives the generic options dict.
    """
    result = StartSpanOptions()
    for option in options:
        apply_ls = getattr(option, "apply_ls", None)
        if callable(apply_ls):
            apply_ls(result)
            continue
        apply = getattr(option, "apply", None)
        if not callable(apply):
            raise TypeError(f"unsupported start span option: {option!r}")
        apply(result.options)
    return result