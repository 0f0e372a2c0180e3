import pytest

from lstrace.event_handlers import (
    new_event_channel,
    new_event_log_one_error,
    set_global_event_handler,
)
from lstrace.events import EventUnsupportedValue
from lstrace.logencoder import (
    ELLIPSIS,
    EncodingStats,
    KeyValue,
    LogFieldEncoder,
    ValueKind,
    marshal_fields,
)
from lstrace.span_data import Field, FieldKind

MAX_INT32 = 2**31 - 1
MIN_INT32 = -(2**31)
MAX_INT64 = 2**63 - 1
MIN_INT64 = -(2**63)
MAX_UINT32 = 2**32 - 1
MAX_UINT64 = 2**64 - 1

_KINDS = {
    "string": ValueKind.STRING,
    "int": ValueKind.INT,
    "bool": ValueKind.BOOL,
    "json": ValueKind.JSON,
}


@pytest.fixture
def events():
    handler, channel = new_event_channel(10)
    set_global_event_handler(handler)
    yield channel
    set_global_event_handler(new_event_log_one_error())


def _fmt(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def check(field, expected_num_fields=1, check_empty_key=True):
    stats = EncodingStats()
    out = marshal_fields([field], stats, 0, 0)
    assert stats.log_encoder_error_count == 0
    assert len(out) == expected_num_fields
    for comp in out:
        if field.key == "" and check_empty_key:
            assert comp.key == ""
            return
        vtype, expect = comp.key.split(":", 1)
        assert comp.kind is _KINDS[vtype]
        assert _fmt(comp.value) == expect


def lazy(fn):
    return Field("", FieldKind.LAZY_LOGGER, fn)


@pytest.mark.parametrize(
    "field",
    [
        Field("", FieldKind.STRING, ""),
        Field("", FieldKind.INT, 0),
    ],
)
def test_empty_keys(field):
    check(field)


@pytest.mark.parametrize(
    "field",
    [
        Field("string:Hello", FieldKind.STRING, "Hello"),
        Field("string:", FieldKind.STRING, ""),
        Field("bool:false", FieldKind.BOOL, False),
        Field("bool:true", FieldKind.BOOL, True),
        Field("int:1", FieldKind.INT, 1),
        Field("int:-1", FieldKind.INT, -1),
        Field("int:2147483647", FieldKind.INT32, MAX_INT32),
        Field("int:0", FieldKind.INT32, 0),
        Field("int:10", FieldKind.INT32, 10),
        Field("int:-10", FieldKind.INT32, -10),
        Field("int:-2147483648", FieldKind.INT32, MIN_INT32),
        Field("int:2147483647", FieldKind.INT64, MAX_INT32),
        Field("int:-2147483648", FieldKind.INT64, MIN_INT32),
        Field("int:9223372036854775807", FieldKind.INT64, MAX_INT64),
        Field("int:-9223372036854775808", FieldKind.INT64, MIN_INT64),
        Field("string:0", FieldKind.UINT32, 0),
        Field("string:10", FieldKind.UINT32, 10),
        Field("string:2147483647", FieldKind.UINT32, MAX_INT32),
        Field("string:4294967295", FieldKind.UINT32, MAX_UINT32),
        Field("string:0", FieldKind.UINT64, 0),
        Field("string:10", FieldKind.UINT64, 10),
        Field("string:2147483647", FieldKind.UINT64, MAX_INT32),
        Field("string:2147483648", FieldKind.UINT64, MAX_INT32 + 1),
        Field("string:4294967295", FieldKind.UINT64, MAX_UINT32),
        Field("string:18446744073709551615", FieldKind.UINT64, MAX_UINT64),
        Field("json:{}", FieldKind.OBJECT, {}),
    ],
)
def test_typed_fields(field):
    check(field)


def test_lazy_with_no_fields():
    check(lazy(lambda enc: None), expected_num_fields=0, check_empty_key=False)


def test_lazy_with_one_field():
    check(
        lazy(lambda enc: enc.emit_int("int:1", 1)),
        expected_num_fields=1,
        check_empty_key=False,
    )


def test_lazy_with_two_fields():
    def emit(enc):
        enc.emit_int("int:1", 1)
        enc.emit_int("int:2", 2)

    check(lazy(emit), expected_num_fields=2, check_empty_key=False)


def test_key_is_truncated():
    out = marshal_fields([Field("abcdef", FieldKind.INT, 1)], EncodingStats(), 4, 0)
    assert out == [KeyValue("abc" + ELLIPSIS, ValueKind.INT, 1)]


def test_string_value_is_truncated():
    out = marshal_fields(
        [Field("k", FieldKind.STRING, "abcdef")], EncodingStats(), 0, 3
    )
    assert out[0].value == "ab" + ELLIPSIS
    assert out[0].kind is ValueKind.STRING


def test_long_json_becomes_truncated_string():
    out = marshal_fields(
        [Field("k", FieldKind.OBJECT, {"a": 1})], EncodingStats(), 0, 4
    )
    assert out[0].kind is ValueKind.STRING
    assert out[0].value == '{"a' + ELLIPSIS


def test_short_values_are_untouched():
    out = marshal_fields(
        [Field("key", FieldKind.STRING, "val")], EncodingStats(), 3, 3
    )
    assert out == [KeyValue("key", ValueKind.STRING, "val")]


def test_unserializable_object_counts_error(events):
    stats = EncodingStats()
    value = object()
    out = marshal_fields([Field("obj", FieldKind.OBJECT, value)], stats, 0, 0)
    assert stats.log_encoder_error_count == 1
    assert out == [KeyValue("obj", ValueKind.STRING, "<json.Marshal error>")]
    event = events.get_nowait()
    assert isinstance(event, EventUnsupportedValue)
    assert event.key == "obj"
    assert event.value is value


def test_error_field_is_encoded_as_string():
    out = marshal_fields(
        [Field("error", FieldKind.ERROR, ValueError("boom"))], EncodingStats()
    )
    assert out == [KeyValue("error", ValueKind.STRING, "boom")]


def test_float_fields():
    encoder = LogFieldEncoder(EncodingStats())
    encoder.emit_float64("f64", 0.1)
    encoder.emit_float32("f32", 0.5)
    assert encoder.key_values[0] == KeyValue("f64", ValueKind.DOUBLE, 0.1)
    assert encoder.key_values[1] == KeyValue("f32", ValueKind.DOUBLE, 0.5)


def test_noop_field_emits_nothing():
    assert marshal_fields([Field("x", FieldKind.NOOP)], EncodingStats()) == []