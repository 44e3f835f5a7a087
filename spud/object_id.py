# spud/object_id.py
# 10-byte object identities: u32 LE seconds + 3-byte instance tag + 3-byte counter.

import itertools
import secrets
import struct
import threading
import time
from functools import total_ordering

import base58

from .errors import IdentityError
from .types import OBJECT_ID_SIZE

_instance_tag = None
_counter = itertools.count(secrets.randbits(24))
_lock = threading.Lock()


def instance_tag() -> bytes:
    global _instance_tag
    if _instance_tag is None:
        with _lock:
            if _instance_tag is None:
                _instance_tag = secrets.token_bytes(3)
    return _instance_tag


def _next_count() -> int:
    with _lock:
        return next(_counter) & 0xFFFFFF


@total_ordering
class ObjectId:
    __slots__ = ("raw",)

    def __init__(self, raw: bytes):
        raw = bytes(raw)
        if len(raw) != OBJECT_ID_SIZE:
            raise IdentityError(f"object id must be {OBJECT_ID_SIZE} bytes, got {len(raw)}")
        self.raw = raw

    @classmethod
    def new(cls, now=None) -> "ObjectId":
        seconds = int(time.time() if now is None else now)
        if seconds < 0:
            raise IdentityError("system clock reports a time before the Unix epoch")
        if seconds > 0xFFFFFFFF:
            raise IdentityError("timestamp does not fit in 32 bits")
        count = _next_count()
        return cls(struct.pack("<I", seconds) + instance_tag() + count.to_bytes(4, "little")[:3])

    @classmethod
    def from_str(cls, text: str) -> "ObjectId":
        try:
            raw = base58.b58decode(text)
        except ValueError as e:
            raise IdentityError(f"invalid base58 object id {text!r}: {e}") from e
        return cls(raw)

    @property
    def timestamp(self) -> int:
        return struct.unpack("<I", self.raw[:4])[0]

    @property
    def counter(self) -> int:
        return int.from_bytes(self.raw[7:], "little")

    def __bytes__(self):
        return self.raw

    def __str__(self):
        return base58.b58encode(self.raw).decode("ascii")

    def __repr__(self):
        return f"ObjectId({self})"

    def __eq__(self, other):
        return isinstance(other, ObjectId) and self.raw == other.raw

    def __lt__(self, other):
        if not isinstance(other, ObjectId):
            return NotImplemented
        return self.raw < other.raw

    def __hash__(self):
        return hash(self.raw)
