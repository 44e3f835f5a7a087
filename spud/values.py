# spud/values.py
# Typed wrappers for values whose wire type cannot be inferred from a Python builtin.

import calendar
import datetime as _dt
import re
import struct

from .errors import ValidationError
from .types import (
    T_F32, T_F64, T_I8, T_I16, T_I32, T_I64, T_I128,
    T_U8, T_U16, T_U32, T_U64, T_U128,
)


class Number:
    TAG = None
    __slots__ = ("value",)

    def __init__(self, value):
        self.value = self._check(value)

    def _check(self, value):
        return value

    def __eq__(self, other):
        return type(self) is type(other) and self.value == other.value

    def __hash__(self):
        return hash((type(self).__name__, self.value))

    def __repr__(self):
        return f"{type(self).__name__}({self.value!r})"


class _Integer(Number):
    BITS = 0
    SIGNED = False

    @classmethod
    def bounds(cls):
        if cls.SIGNED:
            return -(1 << (cls.BITS - 1)), (1 << (cls.BITS - 1)) - 1
        return 0, (1 << cls.BITS) - 1

    def _check(self, value):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{type(self).__name__} needs an int, got {type(value).__name__}")
        lo, hi = self.bounds()
        if not lo <= value <= hi:
            raise ValidationError(f"{value} out of range for {type(self).__name__} [{lo}, {hi}]")
        return value


class I8(_Integer):
    TAG, BITS, SIGNED = T_I8, 8, True

class I16(_Integer):
    TAG, BITS, SIGNED = T_I16, 16, True

class I32(_Integer):
    TAG, BITS, SIGNED = T_I32, 32, True

class I64(_Integer):
    TAG, BITS, SIGNED = T_I64, 64, True

class I128(_Integer):
    TAG, BITS, SIGNED = T_I128, 128, True

class U8(_Integer):
    TAG, BITS = T_U8, 8

class U16(_Integer):
    TAG, BITS = T_U16, 16

class U32(_Integer):
    TAG, BITS = T_U32, 32

class U64(_Integer):
    TAG, BITS = T_U64, 64

class U128(_Integer):
    TAG, BITS = T_U128, 128


class _Float(Number):
    FORMAT = "<d"

    def _check(self, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"{type(self).__name__} needs a number, got {type(value).__name__}")
        value = float(value)
        if value != value or value in (float("inf"), float("-inf")):
            raise ValidationError(f"{type(self).__name__} cannot hold NaN or infinity")
        try:
            struct.pack(self.FORMAT, value)
        except (OverflowError, struct.error):
            raise ValidationError(f"{value} out of range for {type(self).__name__}") from None
        return value


class F32(_Float):
    TAG, FORMAT = T_F32, "<f"

class F64(_Float):
    TAG, FORMAT = T_F64, "<d"


# Narrowest-first lists used to pick a width for a plain int
UNSIGNED_INTS = (U8, U16, U32, U64, U128)
SIGNED_INTS = (I8, I16, I32, I64, I128)


def narrowest_int(value: int) -> Number:
    for cls in (UNSIGNED_INTS if value >= 0 else SIGNED_INTS):
        lo, hi = cls.bounds()
        if lo <= value <= hi:
            return cls(value)
    raise ValidationError(f"{value} does not fit in 128 bits")


class BinaryBlob:
    __slots__ = ("data",)

    def __init__(self, data):
        self.data = bytes(data)

    def __eq__(self, other):
        return isinstance(other, BinaryBlob) and self.data == other.data

    def __hash__(self):
        return hash(self.data)

    def __len__(self):
        return len(self.data)

    def __repr__(self):
        return f"BinaryBlob({self.data!r})"


# Date / time

_DATE_RE = re.compile(r"^(\d{1,5})-(\d{1,2})-(\d{1,2})$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{1,2}):(\d{1,2})(?:\.(\d{1,9}))?$")


def _days_in_month(year, month):
    if month == 2:
        return 29 if calendar.isleap(year) else 28
    return 30 if month in (4, 6, 9, 11) else 31


class Date:
    __slots__ = ("year", "month", "day")

    def __init__(self, year: int, month: int, day: int):
        if not 0 <= year <= 0xFFFF:
            raise ValidationError(f"year {year} out of range [0, 65535]")
        if not 1 <= month <= 12:
            raise ValidationError(f"month {month} out of range [1, 12]")
        if not 1 <= day <= _days_in_month(year, month):
            raise ValidationError(f"day {day} out of range for {year:04}-{month:02}")
        self.year, self.month, self.day = year, month, day

    @classmethod
    def from_str(cls, text: str) -> "Date":
        m = _DATE_RE.match(text.strip())
        if not m:
            raise ValidationError(f"invalid date {text!r}, expected YYYY-MM-DD")
        return cls(*(int(g) for g in m.groups()))

    @classmethod
    def from_date(cls, value: _dt.date) -> "Date":
        return cls(value.year, value.month, value.day)

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Date":
        return cls(*struct.unpack("<HBB", raw))

    def to_bytes(self) -> bytes:
        return struct.pack("<HBB", self.year, self.month, self.day)

    def __eq__(self, other):
        return isinstance(other, Date) and self.to_bytes() == other.to_bytes()

    def __hash__(self):
        return hash(self.to_bytes())

    def __str__(self):
        return f"{self.year:04}-{self.month:02}-{self.day:02}"

    def __repr__(self):
        return f"Date({self})"


class Time:
    __slots__ = ("hour", "minute", "second", "nanosecond")

    def __init__(self, hour: int, minute: int, second: int, nanosecond: int = 0):
        if not 0 <= hour <= 23:
            raise ValidationError(f"hour {hour} out of range [0, 23]")
        if not 0 <= minute <= 59:
            raise ValidationError(f"minute {minute} out of range [0, 59]")
        if not 0 <= second <= 59:
            raise ValidationError(f"second {second} out of range [0, 59]")
        if not 0 <= nanosecond <= 999_999_999:
            raise ValidationError(f"nanosecond {nanosecond} out of range [0, 999999999]")
        self.hour, self.minute, self.second, self.nanosecond = hour, minute, second, nanosecond

    @classmethod
    def from_str(cls, text: str) -> "Time":
        m = _TIME_RE.match(text.strip())
        if not m:
            raise ValidationError(f"invalid time {text!r}, expected HH:MM:SS[.fraction]")
        hour, minute, second, frac = m.groups()
        nanos = int((frac or "0").ljust(9, "0"))
        return cls(int(hour), int(minute), int(second), nanos)

    @classmethod
    def from_time(cls, value: _dt.time) -> "Time":
        return cls(value.hour, value.minute, value.second, value.microsecond * 1000)

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Time":
        return cls(*struct.unpack("<BBBI", raw))

    def to_bytes(self) -> bytes:
        return struct.pack("<BBBI", self.hour, self.minute, self.second, self.nanosecond)

    def __eq__(self, other):
        return isinstance(other, Time) and self.to_bytes() == other.to_bytes()

    def __hash__(self):
        return hash(self.to_bytes())

    def __str__(self):
        return f"{self.hour:02}:{self.minute:02}:{self.second:02}.{self.nanosecond:09}"

    def __repr__(self):
        return f"Time({self})"


class DateTime:
    __slots__ = ("date", "time")

    def __init__(self, date: Date, time: Time):
        self.date, self.time = date, time

    @classmethod
    def from_str(cls, text: str) -> "DateTime":
        parts = re.split(r"[ T]", text.strip(), maxsplit=1)
        if len(parts) != 2:
            raise ValidationError(f"invalid datetime {text!r}, expected 'YYYY-MM-DD HH:MM:SS[.fraction]'")
        return cls(Date.from_str(parts[0]), Time.from_str(parts[1]))

    @classmethod
    def from_datetime(cls, value: _dt.datetime) -> "DateTime":
        return cls(Date.from_date(value.date()), Time.from_time(value.time()))

    @classmethod
    def from_bytes(cls, raw: bytes) -> "DateTime":
        return cls(Date.from_bytes(raw[:4]), Time.from_bytes(raw[4:]))

    def to_bytes(self) -> bytes:
        return self.date.to_bytes() + self.time.to_bytes()

    def __eq__(self, other):
        return isinstance(other, DateTime) and self.to_bytes() == other.to_bytes()

    def __hash__(self):
        return hash(self.to_bytes())

    def __str__(self):
        return f"{self.date} {self.time}"

    def __repr__(self):
        return f"DateTime({self})"
