"""Object identity generation and base58 text form."""

from __future__ import annotations

import base58
import pytest

from spud.errors import IdentityError
from spud.object_id import ObjectId


def test_new_ids_are_ten_bytes_and_distinct() -> None:
    ids = [ObjectId.new() for _ in range(10_000)]

    assert all(len(oid.raw) == 10 for oid in ids)
    assert len({oid.raw for oid in ids}) == len(ids)


def test_layout_is_timestamp_instance_counter() -> None:
    a = ObjectId.new(now=1_700_000_000)
    b = ObjectId.new(now=1_700_000_000)

    assert a.timestamp == 1_700_000_000
    assert a.raw[:4] == (1_700_000_000).to_bytes(4, "little")
    assert a.raw[4:7] == b.raw[4:7]
    assert (b.counter - a.counter) % (1 << 24) == 1


def test_base58_round_trip() -> None:
    oid = ObjectId.new()

    text = str(oid)

    assert text == base58.b58encode(oid.raw).decode("ascii")
    assert ObjectId.from_str(text) == oid
    assert hash(ObjectId.from_str(text)) == hash(oid)


def test_ids_order_by_raw_bytes() -> None:
    low = ObjectId(bytes(10))
    high = ObjectId(b"\x00" * 9 + b"\x01")

    assert low < high
    assert sorted([high, low]) == [low, high]


@pytest.mark.parametrize("text", ["0OIl", base58.b58encode(b"\x01" * 9).decode(), base58.b58encode(b"\x01" * 11).decode()])
def test_from_str_rejects_bad_input(text) -> None:
    with pytest.raises(IdentityError):
        ObjectId.from_str(text)


def test_clock_outside_32_bit_range_is_an_error() -> None:
    with pytest.raises(IdentityError):
        ObjectId.new(now=-5)
    with pytest.raises(IdentityError):
        ObjectId.new(now=1 << 32)
