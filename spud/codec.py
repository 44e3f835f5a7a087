# spud/codec.py
# One-call conversion between JSON-like Python values and SPUD bytes.

import base64
import json
from collections.abc import Mapping

from .decoder import SpudDecoder
from .encoder import SpudBuilder
from .errors import ValidationError


def encode_spud(pyobj, builder=None) -> bytes:
    """A dict becomes one root object; a list of dicts becomes sibling roots."""
    if builder is None:
        builder = SpudBuilder()
    if isinstance(pyobj, Mapping):
        records = [pyobj]
    elif isinstance(pyobj, (list, tuple)) and all(isinstance(x, Mapping) for x in pyobj):
        records = pyobj
    else:
        raise ValidationError("top-level value must be an object or a list of objects")
    for record in records:
        builder.object().add_values(record)
    return builder.encode()


def decode_spud(byts: bytes, want_array: bool = False):
    objects = SpudDecoder(byts).decode_objects()
    if len(objects) == 1 and not want_array:
        return objects[0]
    return objects


def json_to_spud(text: str) -> bytes:
    return encode_spud(json.loads(text))


def strip_oids(value):
    """Drop the synthetic ``oid`` keys, e.g. to compare a decode with its source."""
    if isinstance(value, dict):
        return {k: strip_oids(v) for k, v in value.items() if k != "oid"}
    if isinstance(value, list):
        return [strip_oids(v) for v in value]
    return value


def to_base64(byts: bytes):
    return base64.b64encode(byts).decode('ascii')
