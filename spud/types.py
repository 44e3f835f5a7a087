# spud/types.py
# Type tags: one byte in front of every value on the wire.

import os

# Identifiers and metadata
T_FIELD_NAME_LIST_END = 0x01
T_FIELD_NAME_ID = 0x02

# Core data types
T_NULL = 0x03
T_BOOL = 0x04
T_I8 = 0x05
T_I16 = 0x06
T_I32 = 0x07
T_I64 = 0x08
T_U8 = 0x09
T_U16 = 0x0A
T_U32 = 0x0B
T_U64 = 0x0C
T_F32 = 0x0D
T_F64 = 0x0E
T_I128 = 0x19
T_U128 = 0x1A
T_DECIMAL = 0x15

# Variable-length types
T_STRING = 0x0F
T_BINARY_BLOB = 0x14

# Date and time types
T_DATE = 0x16
T_TIME = 0x17
T_DATE_TIME = 0x18

# Composite delimiters
T_ARRAY_START = 0x10
T_ARRAY_END = 0x11
T_OBJECT_START = 0x12
T_OBJECT_END = 0x13

TAG_NAMES = {
    T_FIELD_NAME_LIST_END: "FieldNameListEnd",
    T_FIELD_NAME_ID: "FieldNameId",
    T_NULL: "Null",
    T_BOOL: "Bool",
    T_I8: "I8",
    T_I16: "I16",
    T_I32: "I32",
    T_I64: "I64",
    T_I128: "I128",
    T_U8: "U8",
    T_U16: "U16",
    T_U32: "U32",
    T_U64: "U64",
    T_U128: "U128",
    T_F32: "F32",
    T_F64: "F64",
    T_DECIMAL: "Decimal",
    T_STRING: "String",
    T_BINARY_BLOB: "BinaryBlob",
    T_DATE: "Date",
    T_TIME: "Time",
    T_DATE_TIME: "DateTime",
    T_ARRAY_START: "ArrayStart",
    T_ARRAY_END: "ArrayEnd",
    T_OBJECT_START: "ObjectStart",
    T_OBJECT_END: "ObjectEnd",
}

# Numeric sub-vocabulary: tag -> (struct format or None for 128-bit, width, signed, is_float)
NUMBER_TYPES = {
    T_I8: ("<b", 1, True, False),
    T_I16: ("<h", 2, True, False),
    T_I32: ("<i", 4, True, False),
    T_I64: ("<q", 8, True, False),
    T_I128: (None, 16, True, False),
    T_U8: ("<B", 1, False, False),
    T_U16: ("<H", 2, False, False),
    T_U32: ("<I", 4, False, False),
    T_U64: ("<Q", 8, False, False),
    T_U128: (None, 16, False, False),
    T_F32: ("<f", 4, True, True),
    T_F64: ("<d", 8, True, True),
}

# Length prefixes for strings and blobs, narrowest first
LENGTH_TAGS = (T_U8, T_U16, T_U32, T_U64)

# Fixed payload sizes (bytes after the tag)
DECIMAL_SIZE = 16
DATE_SIZE = 4
TIME_SIZE = 7
DATE_TIME_SIZE = DATE_SIZE + TIME_SIZE
OBJECT_ID_SIZE = 10

OBJECT_START_MARKER = bytes([T_OBJECT_START, T_OBJECT_START])
OBJECT_END_MARKER = bytes([T_OBJECT_END, T_OBJECT_END])

# Deepest allowed nesting of objects and arrays, the root object counting as 1
MAX_DEPTH = int(os.environ.get("SPUD_MAX_DEPTH", "128"))


def from_u8(value: int):
    """Return the tag for a byte, or None when the byte is not a known tag."""
    return value if value in TAG_NAMES else None


def is_number(tag) -> bool:
    return tag in NUMBER_TYPES


def tag_name(value: int) -> str:
    return TAG_NAMES.get(value, f"0x{value:02X}")
