# spud/header.py
# Container header: version string + field-name table + terminator, ahead of the body.

import logging

from .errors import DecodingError, VersionMismatchError
from .types import OBJECT_START_MARKER, T_FIELD_NAME_LIST_END

logger = logging.getLogger(__name__)

SPUD_VERSION = "SPUD-0.8.1"
VERSION_BYTES = SPUD_VERSION.encode("ascii")


def write_header(entries, body: bytes) -> bytes:
    """``entries`` is an iterable of (name, name_length, id) in insertion order."""
    out = bytearray(VERSION_BYTES)
    for name, length, field_id in entries:
        out.append(length); out += name.encode("utf-8"); out.append(field_id)
    out.append(T_FIELD_NAME_LIST_END)
    out += body
    return bytes(out)


def _is_terminator(data, pos) -> bool:
    # 0x01 at an entry boundary is either the list end or the length of a
    # one-byte name; the list end is always followed by the body.
    if data[pos] != T_FIELD_NAME_LIST_END:
        return False
    rest = data[pos + 1:pos + 3]
    return len(rest) == 0 or rest == OBJECT_START_MARKER


def read_header(data: bytes):
    """Return ``({id: name}, body)``; raises DecodingError on any malformed header."""
    data = bytes(data)
    if data[:len(VERSION_BYTES)] != VERSION_BYTES:
        found = data[:len(VERSION_BYTES)].decode("ascii", "replace")
        raise VersionMismatchError("invalid SPUD file: version mismatch", offset=0,
                                   expected=repr(SPUD_VERSION), found=repr(found))
    pos = len(VERSION_BYTES)
    field_names = {}
    while True:
        if pos >= len(data):
            raise DecodingError("invalid SPUD file: missing field name list end byte", offset=pos)
        if _is_terminator(data, pos):
            pos += 1
            break
        length = data[pos]
        name_start = pos + 1
        id_pos = name_start + length
        if id_pos >= len(data):
            raise DecodingError("truncated field name entry", offset=pos,
                                expected=f"{length + 2} bytes", found=f"{len(data) - pos} bytes")
        try:
            name = data[name_start:id_pos].decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodingError(f"field name is not valid UTF-8: {e}", offset=name_start) from e
        field_id = data[id_pos]
        if field_id in field_names:
            raise DecodingError(f"duplicate field name id {field_id}", offset=id_pos)
        field_names[field_id] = name
        pos = id_pos + 1
    logger.debug("read header with %d field names, body is %d bytes", len(field_names), len(data) - pos)
    return field_names, data[pos:]
