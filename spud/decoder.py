# spud/decoder.py
# Decoder side: root-object scanner, per-object tag dispatch, JSON output.

import decimal
import json
import logging
import math
import struct
from pathlib import Path

import base58

from .errors import DecodingError, ValidationError
from .header import read_header
from .types import (
    DATE_SIZE, DATE_TIME_SIZE, DECIMAL_SIZE, LENGTH_TAGS, MAX_DEPTH, NUMBER_TYPES, OBJECT_ID_SIZE,
    T_ARRAY_END, T_ARRAY_START, T_BINARY_BLOB, T_BOOL, T_DATE, T_DATE_TIME, T_DECIMAL,
    T_FIELD_NAME_ID, T_NULL, T_OBJECT_END, T_OBJECT_START, T_STRING, T_TIME, TIME_SIZE,
    tag_name,
)
from .values import Date, DateTime, Time

logger = logging.getLogger(__name__)

_NO_VALUE = object()

# payload sizes for tags the scanner can skip without looking inside
_FIXED_SIZES = {T_NULL: 0, T_BOOL: 1, T_DECIMAL: DECIMAL_SIZE, T_DATE: DATE_SIZE,
                T_TIME: TIME_SIZE, T_DATE_TIME: DATE_TIME_SIZE, T_FIELD_NAME_ID: 1,
                T_ARRAY_START: 0, T_ARRAY_END: 0}
_FIXED_SIZES.update({tag: row[1] for tag, row in NUMBER_TYPES.items()})


def _read_length(data: bytes, pos: int, base: int = 0):
    """Read a ``[width tag][length]`` prefix at ``pos``; return (length, position after it)."""
    if pos >= len(data):
        raise DecodingError("unexpected end of data reading a length prefix", offset=base + pos)
    tag = data[pos]
    if tag not in LENGTH_TAGS:
        raise DecodingError("invalid length prefix", offset=base + pos,
                            expected="U8, U16, U32 or U64", found=tag_name(tag))
    fmt, width = NUMBER_TYPES[tag][:2]
    end = pos + 1 + width
    if end > len(data):
        raise DecodingError("truncated length prefix", offset=base + pos,
                            expected=f"{width} bytes", found=f"{len(data) - pos - 1} bytes")
    return struct.unpack(fmt, data[pos + 1:end])[0], end


def _doubled(data, pos, tag, base):
    if data[pos + 1:pos + 2] != bytes([tag]):
        raise DecodingError(f"single {tag_name(tag)} marker", offset=base + pos,
                            expected=f"doubled {tag_name(tag)}", found=f"single {tag_name(tag)}")


def scan_roots(body: bytes):
    """Split the body into the byte ranges of its root objects.

    Markers only count at token boundaries, so payload bytes that happen to
    look like doubled markers never open or close an object.
    """
    roots = []
    pos = 0
    while pos < len(body):
        if body[pos] != T_OBJECT_START:
            raise DecodingError("expected a root object", offset=pos,
                                expected="ObjectStart", found=tag_name(body[pos]))
        start, depth = pos, 0
        while True:
            if pos >= len(body):
                raise DecodingError("unterminated root object", offset=start,
                                    expected="ObjectEnd", found="end of data")
            tag = body[pos]
            if tag == T_OBJECT_START:
                _doubled(body, pos, tag, 0)
                depth += 1
                pos += 2 + OBJECT_ID_SIZE
            elif tag == T_OBJECT_END:
                _doubled(body, pos, tag, 0)
                depth -= 1
                pos += 2
                if depth == 0:
                    break
            elif tag in (T_STRING, T_BINARY_BLOB):
                length, pos = _read_length(body, pos + 1)
                pos += length
            elif tag in _FIXED_SIZES:
                pos += 1 + _FIXED_SIZES[tag]
            else:
                raise DecodingError("unknown type tag", offset=pos, expected="a type tag",
                                    found=tag_name(tag))
        roots.append((start, body[start:pos]))
    return roots


class DecoderObject:
    """Cursor over the bytes of one root object."""

    def __init__(self, contents: bytes, field_names: dict, base_offset: int = 0):
        self.contents = contents
        self.index = 0
        self.field_names = field_names
        self.current_field = None
        self.base_offset = base_offset
        self.depth = 0
        self._readers = {
            T_FIELD_NAME_ID: self._field_name,
            T_NULL: self._null,
            T_BOOL: self._bool,
            T_DECIMAL: self._decimal,
            T_STRING: self._string,
            T_BINARY_BLOB: self._binary_blob,
            T_DATE: self._date,
            T_TIME: self._time,
            T_DATE_TIME: self._date_time,
            T_ARRAY_START: self._array,
            T_OBJECT_START: self._nested_object,
        }
        for tag in NUMBER_TYPES:
            self._readers[tag] = self._number

    @property
    def offset(self):
        return self.base_offset + self.index

    def _fail(self, message, expected=None, found=None, offset=None):
        return DecodingError(message, offset=self.offset if offset is None else offset,
                             expected=expected, found=found)

    def _read(self, count: int) -> bytes:
        if self.index + count > len(self.contents):
            raise self._fail("unexpected end of object", expected=f"{count} bytes",
                             found=f"{len(self.contents) - self.index} bytes")
        raw = self.contents[self.index:self.index + count]
        self.index += count
        return raw

    def _read_byte(self) -> int:
        return self._read(1)[0]

    def _enter(self, offset):
        self.depth += 1
        if self.depth > MAX_DEPTH:
            raise self._fail("nesting too deep", offset=offset,
                             expected=f"at most {MAX_DEPTH} levels", found=f"{self.depth} levels")

    def decode(self) -> dict:
        result = self._read_object()
        if self.index != len(self.contents):
            raise self._fail("trailing bytes after object end")
        return result

    def _read_object(self) -> dict:
        start = self.offset
        if self.contents[self.index:self.index + 2] != bytes([T_OBJECT_START, T_OBJECT_START]):
            raise self._fail("object does not start with a doubled ObjectStart",
                             expected="ObjectStart ObjectStart",
                             found=self.contents[self.index:self.index + 2].hex(" ") or "end of data")
        self._enter(start)
        self.index += 2
        result = {"oid": base58.b58encode(self._read(OBJECT_ID_SIZE)).decode("ascii")}
        while True:
            if self.index >= len(self.contents):
                raise self._fail("object is missing its end marker", offset=start,
                                 expected="ObjectEnd", found="end of data")
            tag = self.contents[self.index]
            if tag == T_OBJECT_END:
                _doubled(self.contents, self.index, tag, self.base_offset)
                self.index += 2
                self.depth -= 1
                return result
            value = self._read_token()
            if value is _NO_VALUE:
                continue
            if self.current_field is None:
                raise self._fail("value without a field name")
            result[self.current_field] = value

    def _read_token(self):
        tag = self.contents[self.index]
        reader = self._readers.get(tag)
        if reader is None:
            raise self._fail("unknown type tag", expected="a value tag", found=tag_name(tag))
        self.index += 1
        return reader(tag)

    # readers: called with the cursor just past the tag

    def _field_name(self, tag):
        field_id = self._read_byte()
        name = self.field_names.get(field_id)
        if name is None:
            raise self._fail(f"field name id {field_id} not found in field names map", offset=self.offset - 1)
        self.current_field = name
        return _NO_VALUE

    def _null(self, tag):
        return None

    def _bool(self, tag):
        raw = self._read_byte()
        if raw not in (0, 1):
            raise self._fail("invalid bool value", expected="0 or 1", found=raw, offset=self.offset - 1)
        return raw == 1

    def _number(self, tag):
        fmt, width, signed, is_float = NUMBER_TYPES[tag]
        raw = self._read(width)
        if fmt is None:
            return int.from_bytes(raw, "little", signed=signed)
        value = struct.unpack(fmt, raw)[0]
        if is_float and not math.isfinite(value):
            raise self._fail(f"invalid {tag_name(tag)} value: cannot be NaN or infinity", offset=self.offset - width)
        return value

    def _decimal(self, tag):
        raw = self._read(DECIMAL_SIZE)
        flags = struct.unpack("<I", raw[:4])[0]
        scale = (flags >> 16) & 0xFF
        if flags & 0x7F00FFFF or scale > 28:
            raise self._fail("invalid decimal flags", expected="scale <= 28", found=f"0x{flags:08X}",
                             offset=self.offset - DECIMAL_SIZE)
        mantissa = int.from_bytes(raw[4:], "little")
        sign = 1 if flags & 0x80000000 else 0
        value = decimal.Decimal((sign, tuple(int(d) for d in str(mantissa)), -scale))
        return format(value, "f")

    def _bytes(self):
        length, self.index = _read_length(self.contents, self.index, self.base_offset)
        return self._read(length)

    def _string(self, tag):
        start = self.offset
        raw = self._bytes()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise self._fail(f"string is not valid UTF-8: {e}", offset=start) from e

    def _binary_blob(self, tag):
        return list(self._bytes())

    def _typed(self, cls, size):
        start = self.offset
        raw = self._read(size)
        try:
            return str(cls.from_bytes(raw))
        except ValidationError as e:
            raise self._fail(f"invalid {cls.__name__}: {e}", offset=start) from e

    def _date(self, tag):
        return self._typed(Date, DATE_SIZE)

    def _time(self, tag):
        return self._typed(Time, TIME_SIZE)

    def _date_time(self, tag):
        return self._typed(DateTime, DATE_TIME_SIZE)

    def _array(self, tag):
        self._enter(self.offset - 1)
        items = []
        while True:
            if self.index >= len(self.contents):
                raise self._fail("array is missing its end marker", expected="ArrayEnd", found="end of data")
            tag = self.contents[self.index]
            if tag == T_ARRAY_END:
                self.index += 1
                self.depth -= 1
                return items
            if tag == T_FIELD_NAME_ID:
                raise self._fail("field name inside an array", expected="a value tag", found=tag_name(tag))
            items.append(self._read_token())

    def _nested_object(self, tag):
        self.index -= 1
        parent_field = self.current_field
        self.current_field = None
        value = self._read_object()
        self.current_field = parent_field
        return value


class SpudDecoder:
    def __init__(self, data: bytes):
        self.field_names, self.body = read_header(data)
        self.output_json = ""

    @classmethod
    def load(cls, data: bytes) -> "SpudDecoder":
        return cls(data)

    @classmethod
    def from_path(cls, path) -> "SpudDecoder":
        return cls(Path(path).read_bytes())

    def decode_objects(self):
        objects = [DecoderObject(raw, self.field_names, start).decode()
                   for start, raw in scan_roots(self.body)]
        logger.debug("decoded %d root objects", len(objects))
        return objects

    def decode(self, pretty: bool = False, want_array: bool = False) -> str:
        objects = self.decode_objects()
        result = objects[0] if len(objects) == 1 and not want_array else objects
        if pretty:
            self.output_json = json.dumps(result, indent=2, ensure_ascii=False)
        else:
            self.output_json = json.dumps(result, separators=(",", ":"), ensure_ascii=False)
        return self.output_json

    def build_file(self, path) -> Path:
        path = Path(path)
        path.write_text(self.output_json, encoding="utf-8")
        return path
