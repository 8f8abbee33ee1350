"""Positioned little-endian reader/writer over a binary file object"""

import io
import struct
from typing import BinaryIO, Union

from .errors import FileCorrupt


class ByteStream:
    """
    Sequential byte access with position and EOF state.

    Wraps any seekable binary file object (open file, io.BytesIO). The
    underlying object is never closed here; whoever opened it owns it.
    """

    def __init__(self, source: Union[BinaryIO, bytes, bytearray]):
        if isinstance(source, (bytes, bytearray)):
            source = io.BytesIO(bytes(source))
        self._f = source

    @property
    def position(self) -> int:
        return self._f.tell()

    def seek(self, offset: int):
        self._f.seek(offset)

    def skip(self, count: int):
        self._f.seek(self._f.tell() + count)

    def length(self) -> int:
        here = self._f.tell()
        end = self._f.seek(0, io.SEEK_END)
        self._f.seek(here)
        return end

    def eof(self) -> bool:
        return self.position >= self.length()

    # Reading

    def read(self, count: int) -> bytes:
        """Up to `count` bytes; shorter at end of stream"""
        if count <= 0:
            return b""
        return self._f.read(count)

    def read_exact(self, count: int, what: str = "data") -> bytes:
        data = self.read(count)
        if len(data) != count:
            raise FileCorrupt(
                f"Unexpected end of stream reading {what}: expected {count} bytes, got {len(data)}"
            )
        return data

    def _unpack(self, fmt: str, size: int, what: str) -> int:
        return struct.unpack(fmt, self.read_exact(size, what))[0]

    def get_u8(self, what: str = "u8") -> int:
        return self._unpack('<B', 1, what)

    def get_u16(self, what: str = "u16") -> int:
        return self._unpack('<H', 2, what)

    def get_u32(self, what: str = "u32") -> int:
        return self._unpack('<I', 4, what)

    def get_i32(self, what: str = "i32") -> int:
        return self._unpack('<i', 4, what)

    # Writing

    def write(self, data: bytes):
        self._f.write(data)

    def put_u16(self, value: int):
        self._f.write(struct.pack('<H', value))

    def put_u32(self, value: int):
        self._f.write(struct.pack('<I', value))

    def put_i32(self, value: int):
        self._f.write(struct.pack('<i', value))


def padding_for(length: int) -> int:
    """Filler bytes that bring `length` up to a multiple of 4 (0 when aligned)"""
    return (4 - length % 4) % 4


def skip_padding(stream: ByteStream, length: int):
    """
    Consume the 4-byte alignment filler that follows a payload of `length` bytes.

    Filler missing at the very end of the stream is tolerated.
    """
    pad = padding_for(length)
    if pad:
        stream.read(pad)


def write_padding(stream: ByteStream, length: int):
    pad = padding_for(length)
    if pad:
        stream.write(b"\x00" * pad)
