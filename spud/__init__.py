# spud/__init__.py
# SPUD: self-describing binary object format with a shared field-name header.

from .aio import AsyncSpudBuilder, AsyncSpudObject
from .codec import decode_spud, encode_spud, json_to_spud, strip_oids, to_base64
from .decoder import DecoderObject, SpudDecoder, scan_roots
from .encoder import SpudBuilder, SpudObject, encode_value
from .errors import (
    DecodingError, IdentityError, InvalidPathError, RegistryExhaustedError,
    SpudError, ValidationError, VersionMismatchError,
)
from .header import SPUD_VERSION, read_header, write_header
from .object_id import ObjectId
from .values import (
    F32, F64, I8, I16, I32, I64, I128, U8, U16, U32, U64, U128,
    BinaryBlob, Date, DateTime, Time,
)

__version__ = "0.8.1"
