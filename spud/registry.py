# spud/registry.py
# Field-name table and one-byte ID allocation shared by every object in a builder.

import logging
import os
import secrets
import threading
from contextlib import nullcontext

from .errors import RegistryExhaustedError, ValidationError

logger = logging.getLogger(__name__)

MAX_ID_RETRIES = int(os.environ.get("SPUD_MAX_ID_RETRIES", "512"))
RESERVED_IDS = (0x00, 0x01)
MAX_FIELD_NAME_BYTES = 0xFF


def make_lock(threadsafe: bool):
    return threading.Lock() if threadsafe else nullcontext()


class IdAllocator:
    """256-slot used/free tracker handing out random unused byte values.

    Random draws are capped at ``max_retries``; after that the remaining free
    slots are scanned in order, so allocation always terminates.
    """

    def __init__(self, threadsafe=False, max_retries=None):
        self.seen = [False] * 256
        for reserved in RESERVED_IDS:
            self.seen[reserved] = True
        self.max_retries = MAX_ID_RETRIES if max_retries is None else max_retries
        self._lock = make_lock(threadsafe)

    def free_count(self) -> int:
        return self.seen.count(False)

    def allocate(self) -> int:
        with self._lock:
            if all(self.seen):
                raise RegistryExhaustedError("all 254 field-name IDs are in use")
            for _ in range(self.max_retries):
                candidate = secrets.randbelow(256)
                if not self.seen[candidate]:
                    self.seen[candidate] = True
                    return candidate
            logger.warning("no free ID after %d random draws, scanning for a free slot", self.max_retries)
            candidate = self.seen.index(False)
            self.seen[candidate] = True
            return candidate

    def used_ids(self):
        return [i for i, used in enumerate(self.seen) if used]


class FieldRegistry:
    """Maps ``(name, byte length)`` to a one-byte ID, in insertion order."""

    def __init__(self, allocator=None, threadsafe=False):
        self.allocator = allocator if allocator is not None else IdAllocator(threadsafe)
        self.entries = {}
        self._lock = make_lock(threadsafe)

    @staticmethod
    def key_for(name: str):
        if not isinstance(name, str):
            raise ValidationError(f"field name must be str, got {type(name).__name__}")
        raw = name.encode("utf-8")
        if len(raw) > MAX_FIELD_NAME_BYTES:
            raise ValidationError(f"field name is {len(raw)} bytes long, limit is {MAX_FIELD_NAME_BYTES}")
        return (name, len(raw))

    def resolve(self, name: str) -> int:
        key = self.key_for(name)
        # lock order is always registry -> allocator
        with self._lock:
            field_id = self.entries.get(key)
            if field_id is None:
                field_id = self.allocator.allocate()
                self.entries[key] = field_id
                logger.debug("assigned field id %d to %r", field_id, name)
            return field_id

    def snapshot(self):
        with self._lock:
            return [(name, length, field_id) for (name, length), field_id in self.entries.items()]

    def __len__(self):
        return len(self.entries)

    def __contains__(self, name):
        return self.key_for(name) in self.entries
