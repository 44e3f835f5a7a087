"""Byte layout written by the builder."""

from __future__ import annotations

import decimal
import struct

import pytest

from spud import BinaryBlob, Date, DateTime, SpudBuilder, Time, types
from spud.encoder import add_value_length, decimal_to_bytes, encode_value
from spud.errors import InvalidPathError, ValidationError
from spud.header import read_header
from spud.values import F32, F64, I8, I128, U8, U16, U32, U64, U128

from .conftest import single_field_body


def payload(body: bytes) -> bytes:
    # [12 12][oid][02 id] ... [13 13]
    assert body[:2] == types.OBJECT_START_MARKER
    assert body[12] == types.T_FIELD_NAME_ID
    assert body[-2:] == types.OBJECT_END_MARKER
    return body[14:-2]


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, bytes([types.T_NULL])),
        (True, bytes([types.T_BOOL, 1])),
        (False, bytes([types.T_BOOL, 0])),
        (U8(42), bytes([types.T_U8, 42])),
        (U16(256), bytes([types.T_U16, 0, 1])),
        (U32(65536), bytes([types.T_U32, 0, 0, 1, 0])),
        (U64(4_294_967_296), bytes([types.T_U64, 0, 0, 0, 0, 1, 0, 0, 0])),
        (U128(1 << 64), bytes([types.T_U128]) + bytes(8) + b"\x01" + bytes(7)),
        (I8(-1), bytes([types.T_I8, 0xFF])),
        (I128(-1), bytes([types.T_I128]) + b"\xff" * 16),
        (F32(3.15), bytes([types.T_F32]) + struct.pack("<f", 3.15)),
        (F64(3.15), bytes([types.T_F64]) + struct.pack("<d", 3.15)),
        (2.5, bytes([types.T_F64]) + struct.pack("<d", 2.5)),
        (3, bytes([types.T_U8, 3])),
        (-300, bytes([types.T_I16]) + struct.pack("<h", -300)),
        ("Hello, SPUD!", bytes([types.T_STRING, types.T_U8, 12]) + b"Hello, SPUD!"),
        (BinaryBlob(b"\x01\x02\x03\x04\x05"), bytes([types.T_BINARY_BLOB, types.T_U8, 5, 1, 2, 3, 4, 5])),
        (b"\x00", bytes([types.T_BINARY_BLOB, types.T_U8, 1, 0])),
        ([U8(1), U8(2), U8(3)], bytes([types.T_ARRAY_START, 9, 1, 9, 2, 9, 3, types.T_ARRAY_END])),
        (Date.from_str("2023-10-01"), bytes([types.T_DATE]) + struct.pack("<HBB", 2023, 10, 1)),
        (Time.from_str("12:34:56.7890"), bytes([types.T_TIME]) + struct.pack("<BBBI", 12, 34, 56, 789_000_000)),
        (
            DateTime.from_str("2023-10-01 12:34:56.7890"),
            bytes([types.T_DATE_TIME]) + struct.pack("<HBB", 2023, 10, 1) + struct.pack("<BBBI", 12, 34, 56, 789_000_000),
        ),
    ],
)
def test_value_layout(value, expected) -> None:
    assert payload(single_field_body(value)) == expected


def test_decimal_layout() -> None:
    raw = decimal_to_bytes(decimal.Decimal("1.50"))

    assert raw[:4] == b"\x00\x00\x02\x00"
    assert raw[4:] == (150).to_bytes(12, "little")
    assert decimal_to_bytes(decimal.Decimal("-1"))[:4] == b"\x00\x00\x00\x80"
    assert decimal_to_bytes(decimal.Decimal("1E+3"))[4:] == (1000).to_bytes(12, "little")
    assert payload(single_field_body(decimal.Decimal("1.50"))) == bytes([types.T_DECIMAL]) + raw


@pytest.mark.parametrize(
    "value",
    [decimal.Decimal("NaN"), decimal.Decimal("Infinity"), decimal.Decimal(1 << 96), decimal.Decimal("1E-29")],
)
def test_decimal_out_of_range(value) -> None:
    with pytest.raises(ValidationError):
        decimal_to_bytes(value)


@pytest.mark.parametrize("length, tag", [(0, types.T_U8), (200, types.T_U8), (255, types.T_U8),
                                         (256, types.T_U16), (300, types.T_U16), (70000, types.T_U32)])
def test_length_tag_is_minimal(length, tag) -> None:
    out = bytearray()
    add_value_length(out, length)
    assert out[0] == tag

    framed = bytearray()
    encode_value("a" * length, framed, None)
    assert framed[1] == tag
    assert len(framed) == 1 + len(out) + length


def test_same_field_name_shares_one_id_across_nested_objects(builder) -> None:
    root = builder.object()
    root.add_value("name", "root")
    child = root.object("child")
    child.add_value("name", "child")

    name_id = builder.registry.resolve("name")
    field_names, _ = read_header(builder.encode())
    body = builder.flush()
    token = bytes([types.T_FIELD_NAME_ID, name_id])
    child_fields = body.index(child.oid.raw) + len(child.oid.raw)

    assert len(builder.registry) == 2
    assert field_names[name_id] == "name"
    assert list(field_names.values()).count("name") == 1
    assert body[12:14] == token
    assert body[child_fields:child_fields + 2] == token


def test_builder_object_writes_markers_and_identity(builder) -> None:
    obj = builder.object()

    body = builder.flush()

    assert body == types.OBJECT_START_MARKER + obj.oid.raw + types.OBJECT_END_MARKER
    assert list(builder.objects) == [obj.oid]


def test_add_value_chains_and_callbacks_receive_the_object(builder) -> None:
    seen = []
    obj = builder.object(seen.append)

    assert seen == [obj]
    assert obj.add_value("a", 1).add_value("b", 2) is obj
    child = obj.object("c", lambda c: c.add_value("d", None))
    assert obj.children == {child.oid: child}


def test_nested_children_close_at_flush_in_insertion_order(builder) -> None:
    root = builder.object()
    first = root.object("first")
    second = root.object("second")
    root.add_value("after", U8(1))
    first.add_value("late", U8(2))

    body = builder.flush()
    a, b = builder.registry.resolve("first"), builder.registry.resolve("second")
    after, late = builder.registry.resolve("after"), builder.registry.resolve("late")

    expected = (
        types.OBJECT_START_MARKER + root.oid.raw
        + bytes([types.T_FIELD_NAME_ID, a]) + types.OBJECT_START_MARKER + first.oid.raw
        + bytes([types.T_FIELD_NAME_ID, late, types.T_U8, 2]) + types.OBJECT_END_MARKER
        + bytes([types.T_FIELD_NAME_ID, b]) + types.OBJECT_START_MARKER + second.oid.raw + types.OBJECT_END_MARKER
        + bytes([types.T_FIELD_NAME_ID, after, types.T_U8, 1])
        + types.OBJECT_END_MARKER
    )
    assert body == expected
    assert list(root.children) == [first.oid, second.oid]


def test_flush_is_repeatable(builder) -> None:
    builder.object().add_value("a", "b")

    assert builder.flush() == builder.flush()


def test_failed_add_value_writes_nothing(builder) -> None:
    obj = builder.object()
    before = builder.flush()

    with pytest.raises(ValidationError):
        obj.add_value("bad", [1, object()])
    with pytest.raises(ValidationError):
        obj.add_value("x" * 256, 1)

    assert builder.flush() == before


def test_failed_add_value_registers_no_field_names(builder) -> None:
    obj = builder.object()

    with pytest.raises(ValidationError):
        obj.add_value("ghost", object())
    with pytest.raises(ValidationError):
        obj.add_value("outer", {"inner": 1, "broken": object()})

    assert len(builder.registry) == 0
    assert "ghost" not in builder.registry
    assert read_header(builder.encode())[0] == {}


def test_dict_value_names_register_after_the_field_name(builder) -> None:
    builder.object().add_value("outer", {"inner": 1})

    assert [name for name, _, _ in builder.registry.snapshot()] == ["outer", "inner"]


def nested_list(levels: int):
    value = []
    for _ in range(levels):
        value = [value]
    return value


def test_nesting_limit_on_values(builder) -> None:
    obj = builder.object()

    obj.add_value("ok", nested_list(types.MAX_DEPTH - 2))
    with pytest.raises(ValidationError, match="nesting depth"):
        obj.add_value("deep", nested_list(3000))
    with pytest.raises(ValidationError, match="nesting depth"):
        obj.add_value("deep", nested_list(types.MAX_DEPTH - 1))

    assert "deep" not in builder.registry


def test_nesting_limit_on_child_objects(builder) -> None:
    obj = builder.object()
    for _ in range(types.MAX_DEPTH - 1):
        obj = obj.object("c")

    assert obj.depth == types.MAX_DEPTH
    with pytest.raises(ValidationError, match="nesting depth"):
        obj.object("c")
    with pytest.raises(ValidationError, match="nesting depth"):
        obj.add_value("v", [])


def test_dict_values_are_written_inline(builder) -> None:
    builder.object().add_value("inner", {"k": U8(7)})

    body = builder.flush()

    inner = payload(body)
    assert inner[:2] == types.OBJECT_START_MARKER
    assert inner[12:] == bytes([types.T_FIELD_NAME_ID, builder.registry.resolve("k"), types.T_U8, 7]) + types.OBJECT_END_MARKER


def test_encode_prepends_header(builder) -> None:
    builder.object().add_value("a", None)

    data = builder.encode()

    assert data.startswith(b"SPUD-0.8.1\x01a")
    assert data.endswith(builder.flush())


def test_build_file(tmp_path, builder) -> None:
    builder.object().add_value("a", 1)

    path = builder.build_file(tmp_path, "records")

    assert path == tmp_path / "records.spud"
    assert path.read_bytes() == builder.encode()
    with pytest.raises(InvalidPathError):
        builder.build_file(tmp_path / "missing", "records")


def test_repr_lists_field_names(builder) -> None:
    builder.object().add_value("a", 1)

    assert "'a'" in repr(builder)
