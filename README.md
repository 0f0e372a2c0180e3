# lstrace

Building blocks for a distributed-tracing client, using only the Python
standard library.

The package contains:

- **Span data** (`lstrace.span_data`): `SpanContext`, `RawSpan`, `LogRecord`
  and typed log `Field`s (`FieldKind`). `SpanContext.with_baggage_item`
  returns a new context, and `size()` estimates a context's or span's size in
  bytes.
- **Context propagation** (`lstrace.propagation`): `LightStepPropagator`
  (`ot-tracer-*` keys), `B3Propagator` (`x-b3-*` keys, 64- and 128-bit trace
  ids), the configurable `TextMapPropagator`, and a `PropagatorStack` that
  tries several formats in turn.
- **Options** (`lstrace.options`): `Options`, `Endpoint` and
  `SystemMetricsOptions` with defaults and validation, plus the start-span
  options `SetTraceID`, `SetSpanID`, `SetParentSpanID` and `SetSampled`,
  gathered by `new_start_span_options`.
- **Report encoding** (`lstrace.logencoder`, `lstrace.converter`):
  `marshal_fields` and `LogFieldEncoder` turn log fields into typed `KeyValue`
  records and shorten long keys and values. `ProtoConverter` encodes tags, log
  records, timestamps, durations and parent references.
- **Events** (`lstrace.events`, `lstrace.event_handlers`): status and error
  events, which are passed to a global event handler.
- **Random numbers** (`lstrace.randpool`): `LockedRand`, a thread-safe seeded
  generator, and `Pool`, a power-of-two sized set of generators that are picked
  in round-robin order.
- **ID conversions** (`lstrace.conversions`): `convert_trace_id` turns a
  16-byte trace id into an integer and `convert_span_id` turns an 8-byte span
  id into an integer. `convert_link_to_span_context` turns a `Link` into a
  `SpanContext`.

## Installation

```
pip install .
```

## Propagating a span context

```python
from lstrace.span_data import SpanContext
from lstrace.propagation import PropagatorStack, LightStepPropagator, B3Propagator

stack = PropagatorStack()
stack.push_propagator(LightStepPropagator())
stack.push_propagator(B3Propagator())

context = SpanContext(trace_id=506100417967962170, span_id=6397081719746291766,
                      sampled="true", baggage={"checked": "baggage"})
headers = {}
stack.inject(context, headers)
# headers["ot-tracer-traceid"] == "70607a611a8383a"
# headers["x-b3-sampled"] == "1"

restored = stack.extract(headers)
assert restored.span_id == context.span_id
```

Failed operations raise a subclass of `PropagationError`:

- `SpanContextNotFoundError`
- `SpanContextCorruptedError`
- `InvalidCarrierError`
- `InvalidSpanContextError`

A `PropagatorStack` with no propagators raises `PropagationError` itself. It
also raises `PropagationError` when none of its propagators can extract.

## Encoding log fields

```python
from lstrace.span_data import Field, FieldKind
from lstrace.logencoder import EncodingStats, marshal_fields

stats = EncodingStats()
pairs = marshal_fields(
    [Field("answer", FieldKind.INT, 42), Field("note", FieldKind.STRING, "xxxxxxxxxx")],
    stats,
    max_value_len=5,
)
# pairs[1].value == "xxxx…"
```

Unsigned integers are encoded as strings. Objects are encoded as JSON. When an
object cannot be encoded as JSON, the encoder does three things:

- it increments `stats.log_encoder_error_count`
- it emits an `EventUnsupportedValue`
- it stores the placeholder `"<json.Marshal error>"`

## Handling tracer events

By default, only the first error event is logged, through the `lstrace`
logger. To receive every event, install another handler:

```python
from lstrace.event_handlers import set_global_event_handler, new_event_channel

handler, events = new_event_channel(16)
set_global_event_handler(handler)
# events is a queue.Queue; events that arrive while it is full are dropped
```

`new_event_logger()` logs error events at error level and other events at info
level. `new_event_log_one_error()` restores the default behaviour.

## Options

```python
from lstrace.options import Options

opts = Options(access_token="token")
opts.initialize()       # validates the options and fills in defaults
opts.collector.url()    # "https://collector-grpc.lightstep.com:443/_rpc/v1/reports/binary"
```

`validate()` raises `ValueError` if the reserved `lightstep.guid` tag is set.
It raises `FileNotFoundError` if the custom CA certificate file does not exist.

## What this package does not do

The package provides the pieces listed above, but not a tracer that uses them
together:

- It does not start spans and does not buffer finished spans.
- It has no transport that sends reports to a collector, over HTTP or gRPC.
- It has no binary-format propagator.
- It has no command-line program.

## Running the tests

```
pip install ".[test]"
pytest
```