# spud/aio.py
# asyncio flavour of the builder: same wire output, resources guarded by asyncio.Lock.

import asyncio
import inspect
import logging
from pathlib import Path

from .decoder import SpudDecoder
from .encoder import SpudBuilder, SpudObject, check_depth, check_path
from .header import write_header

logger = logging.getLogger(__name__)


class AsyncSpudObject(SpudObject):

    @classmethod
    async def open_async(cls, builder, owner_children, depth: int = 1) -> "AsyncSpudObject":
        obj = cls(builder, depth)
        async with builder._objects_lock:
            owner_children[obj.oid] = obj
        return obj

    async def add_value(self, field_name: str, value) -> "AsyncSpudObject":
        async with self._builder._field_lock:
            chunk = self._encode_field(field_name, value)
        async with self._builder._data_lock:
            self._append(chunk)
        return self

    async def add_values(self, values) -> "AsyncSpudObject":
        for field_name, value in values.items():
            await self.add_value(field_name, value)
        return self

    async def object(self, field_name: str, callback=None) -> "AsyncSpudObject":
        check_depth(self.depth + 1)
        async with self._builder._field_lock:
            token = self._field_token(field_name)
        child = await self.open_async(self._builder, self.children, self.depth + 1)
        async with self._builder._data_lock:
            self._append(token)
            self._parts.append(child)
        await _run_callback(callback, child)
        return child


async def _run_callback(callback, obj):
    if callback is None:
        return
    result = callback(obj)
    if inspect.isawaitable(result):
        await result


class AsyncSpudBuilder(SpudBuilder):
    """Every lock acquisition is a suspension point; no two locks are held at once."""

    object_class = AsyncSpudObject

    def __init__(self):
        super().__init__(threadsafe=False)
        self._field_lock = asyncio.Lock()
        self._data_lock = asyncio.Lock()
        self._objects_lock = asyncio.Lock()

    async def object(self, callback=None) -> AsyncSpudObject:
        obj = await self.object_class.open_async(self, self.objects)
        await _run_callback(callback, obj)
        return obj

    async def flush(self) -> bytes:
        out = bytearray()
        async with self._data_lock:
            for obj in list(self.objects.values()):
                obj._write(out)
        logger.debug("flushed %d root objects into %d bytes", len(self.objects), len(out))
        return bytes(out)

    async def encode(self) -> bytes:
        body = await self.flush()
        async with self._field_lock:
            entries = self.registry.snapshot()
        return write_header(entries, body)

    async def build_file(self, path_str, file_name) -> Path:
        path = check_path(path_str, file_name)
        await asyncio.to_thread(path.write_bytes, await self.encode())
        return path


async def load_path(path) -> SpudDecoder:
    data = await asyncio.to_thread(Path(path).read_bytes)
    return SpudDecoder(data)


async def build_json_file(decoder: SpudDecoder, path) -> Path:
    return await asyncio.to_thread(decoder.build_file, path)
