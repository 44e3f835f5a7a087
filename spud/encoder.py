# spud/encoder.py
# Builder side: type dispatch, length framing and the object tree that flushes to bytes.

import datetime as _dt
import decimal
import logging
import struct
from collections.abc import Mapping
from pathlib import Path

from .errors import InvalidPathError, ValidationError
from .header import write_header
from .object_id import ObjectId
from .registry import FieldRegistry, IdAllocator, make_lock
from .types import (
    LENGTH_TAGS, MAX_DEPTH, NUMBER_TYPES, OBJECT_END_MARKER, OBJECT_START_MARKER,
    T_ARRAY_END, T_ARRAY_START, T_BINARY_BLOB, T_BOOL, T_DATE, T_DATE_TIME,
    T_DECIMAL, T_FIELD_NAME_ID, T_NULL, T_STRING, T_TIME,
)
from .values import F64, BinaryBlob, Date, DateTime, Number, Time, narrowest_int

logger = logging.getLogger(__name__)

_DECIMAL_MAX_SCALE = 28
_DECIMAL_MAX_MANTISSA = (1 << 96) - 1


# Length prefix
def add_value_length(out: bytearray, length: int):
    for tag in LENGTH_TAGS:
        fmt, width = NUMBER_TYPES[tag][:2]
        if length < (1 << (8 * width)):
            out.append(tag); out += struct.pack(fmt, length); return
    raise ValidationError(f"value of {length} bytes is too long to frame")


def encode_number(number: Number, out: bytearray):
    fmt, width, signed, _ = NUMBER_TYPES[number.TAG]
    out.append(number.TAG)
    if fmt is None:
        out += number.value.to_bytes(width, "little", signed=signed)
    else:
        out += struct.pack(fmt, number.value)


def decimal_to_bytes(value: decimal.Decimal) -> bytes:
    """16-byte layout: flags (scale in bits 16..23, sign in bit 31), then lo/mid/hi of the mantissa."""
    if not value.is_finite():
        raise ValidationError(f"decimal {value} is not finite")
    sign, digits, exponent = value.as_tuple()
    mantissa = int("".join(map(str, digits)) or "0")
    if exponent > 0:
        mantissa *= 10 ** exponent
        scale = 0
    else:
        scale = -exponent
    # drop trailing zeros that only exist to carry precision past the limit
    while scale > _DECIMAL_MAX_SCALE and mantissa % 10 == 0:
        mantissa //= 10; scale -= 1
    if scale > _DECIMAL_MAX_SCALE:
        raise ValidationError(f"decimal {value} has scale {scale}, limit is {_DECIMAL_MAX_SCALE}")
    if mantissa > _DECIMAL_MAX_MANTISSA:
        raise ValidationError(f"decimal {value} does not fit in 96 bits")
    flags = (scale << 16) | (0x80000000 if sign else 0)
    return struct.pack("<I", flags) + mantissa.to_bytes(12, "little")


def _encode_bytes(tag, raw: bytes, out: bytearray):
    out.append(tag); add_value_length(out, len(raw)); out += raw


def check_depth(depth: int):
    if depth > MAX_DEPTH:
        raise ValidationError(f"nesting depth {depth} exceeds the limit of {MAX_DEPTH}")


def _encode_mapping(value: Mapping, out: bytearray, resolve_field, depth):
    # dict values have no handle to add to later, so they are closed right away
    out += OBJECT_START_MARKER; out += ObjectId.new().raw
    for key, item in value.items():
        out.append(T_FIELD_NAME_ID); out.append(resolve_field(key))
        encode_value(item, out, resolve_field, depth)
    out += OBJECT_END_MARKER


def encode_value(value, out: bytearray, resolve_field, depth: int = 0):
    """Append ``value`` (tag + payload) to ``out``.

    ``resolve_field`` maps names of nested dict keys to IDs; ``depth`` is the
    nesting level of the object the value is written into.
    """
    if value is None:
        out.append(T_NULL); return
    if isinstance(value, bool):
        out.append(T_BOOL); out.append(1 if value else 0); return
    if isinstance(value, Number):
        encode_number(value, out); return
    if isinstance(value, int):
        encode_number(narrowest_int(value), out); return
    if isinstance(value, float):
        encode_number(F64(value), out); return
    if isinstance(value, decimal.Decimal):
        out.append(T_DECIMAL); out += decimal_to_bytes(value); return
    if isinstance(value, str):
        _encode_bytes(T_STRING, value.encode("utf-8"), out); return
    if isinstance(value, BinaryBlob):
        _encode_bytes(T_BINARY_BLOB, value.data, out); return
    if isinstance(value, (bytes, bytearray, memoryview)):
        _encode_bytes(T_BINARY_BLOB, bytes(value), out); return
    if isinstance(value, _dt.datetime):
        value = DateTime.from_datetime(value)
    elif isinstance(value, _dt.date):
        value = Date.from_date(value)
    elif isinstance(value, _dt.time):
        value = Time.from_time(value)
    if isinstance(value, DateTime):
        out.append(T_DATE_TIME); out += value.to_bytes(); return
    if isinstance(value, Date):
        out.append(T_DATE); out += value.to_bytes(); return
    if isinstance(value, Time):
        out.append(T_TIME); out += value.to_bytes(); return
    if isinstance(value, (list, tuple)):
        check_depth(depth + 1)
        out.append(T_ARRAY_START)
        for item in value:
            encode_value(item, out, resolve_field, depth + 1)
        out.append(T_ARRAY_END)
        return
    if isinstance(value, Mapping):
        check_depth(depth + 1)
        _encode_mapping(value, out, resolve_field, depth + 1); return
    raise ValidationError(f"cannot encode value of type {type(value).__name__}")


def check_path(path_str, file_name) -> Path:
    path = Path(path_str)
    if not path.is_dir():
        raise InvalidPathError(f"path {path} does not exist")
    return path / f"{file_name}.spud"


# Object tree

def _collect_names(names: list):
    """Resolver for a dry run: validates nested keys and writes placeholder IDs."""
    def resolve(name):
        names.append(FieldRegistry.key_for(name))
        return 0
    return resolve


class SpudObject:
    """One object node. Fields are appended in call order; nested objects are
    kept as handles in place and only closed (end markers) when the builder
    flushes, so a child can be filled in after its parent moved on."""

    def __init__(self, builder, depth: int = 1):
        check_depth(depth)
        self._builder = builder
        self.depth = depth
        self.oid = ObjectId.new()
        self.children = {}
        self._parts = [bytearray(OBJECT_START_MARKER + self.oid.raw)]

    @classmethod
    def open(cls, builder, owner_children, depth: int = 1) -> "SpudObject":
        obj = cls(builder, depth)
        with builder._objects_lock:
            owner_children[obj.oid] = obj
        return obj

    def _field_token(self, field_name) -> bytearray:
        return bytearray((T_FIELD_NAME_ID, self._builder.registry.resolve(field_name)))

    def _encode_field(self, field_name, value) -> bytearray:
        # names are only registered once the value is known to encode
        FieldRegistry.key_for(field_name)
        nested = []
        payload = bytearray()
        encode_value(value, payload, _collect_names(nested), self.depth)
        chunk = self._field_token(field_name)
        if nested:
            payload = bytearray()
            encode_value(value, payload, self._builder.registry.resolve, self.depth)
        return chunk + payload

    def _append(self, chunk):
        last = self._parts[-1]
        if isinstance(last, bytearray):
            last += chunk
        else:
            self._parts.append(bytearray(chunk))

    def add_value(self, field_name: str, value) -> "SpudObject":
        chunk = self._encode_field(field_name, value)
        with self._builder._data_lock:
            self._append(chunk)
        return self

    def add_values(self, values: Mapping) -> "SpudObject":
        for field_name, value in values.items():
            self.add_value(field_name, value)
        return self

    def object(self, field_name: str, callback=None) -> "SpudObject":
        check_depth(self.depth + 1)
        token = self._field_token(field_name)
        child = self.open(self._builder, self.children, self.depth + 1)
        with self._builder._data_lock:
            self._append(token)
            self._parts.append(child)
        if callback is not None:
            callback(child)
        return child

    def _write(self, out: bytearray):
        for part in self._parts:
            if isinstance(part, SpudObject):
                part._write(out)
            else:
                out += part
        out += OBJECT_END_MARKER

    def __repr__(self):
        return f"{type(self).__name__}(oid={self.oid}, children={len(self.children)})"


class SpudBuilder:
    """Owns the field registry, the ID tracker and the root objects of one file."""

    object_class = SpudObject

    def __init__(self, threadsafe: bool = False):
        self.threadsafe = threadsafe
        self.registry = FieldRegistry(IdAllocator(threadsafe), threadsafe)
        self.objects = {}
        self._data_lock = make_lock(threadsafe)
        self._objects_lock = make_lock(threadsafe)

    def object(self, callback=None) -> SpudObject:
        obj = self.object_class.open(self, self.objects)
        if callback is not None:
            callback(obj)
        return obj

    def flush(self) -> bytes:
        out = bytearray()
        with self._data_lock:
            for obj in list(self.objects.values()):
                obj._write(out)
        logger.debug("flushed %d root objects into %d bytes", len(self.objects), len(out))
        return bytes(out)

    def encode(self) -> bytes:
        body = self.flush()
        return write_header(self.registry.snapshot(), body)

    def build_file(self, path_str, file_name) -> Path:
        path = check_path(path_str, file_name)
        path.write_bytes(self.encode())
        return path

    def __repr__(self):
        names = {name: field_id for name, _, field_id in self.registry.snapshot()}
        return (f"{type(self).__name__}(field_names={names}, objects={len(self.objects)}, "
                f"seen_ids={self.registry.allocator.used_ids()})")
