"""Byte builders shared by the texcompat tests"""

import io
import struct

from PIL import Image

from texcompat.byte_stream import ByteStream


def u32(*values) -> bytes:
    return struct.pack(f'<{len(values)}I', *values)


def pad(data: bytes) -> bytes:
    return data + b"\x00" * ((4 - len(data) % 4) % 4)


def raw_payload(width, height, mipmaps, v2_format, data, tag=True) -> bytes:
    """Tagged (or untagged) raw V2 image payload with padding"""
    body = u32(width, height, mipmaps, v2_format, len(data)) + pad(data)
    return (u32(1) if tag else b"") + body


def stream_texture_header(width, height, data_format, flags=0, magic=b"GDST") -> bytes:
    return magic + struct.pack('<4H', width, 0, height, 0) + u32(flags, data_format)


def png_bytes(mode, size, color) -> bytes:
    out = io.BytesIO()
    Image.new(mode, size, color).save(out, format="PNG")
    return out.getvalue()


def webp_bytes(mode, size, color) -> bytes:
    out = io.BytesIO()
    Image.new(mode, size, color).save(out, format="WEBP", lossless=True)
    return out.getvalue()


def stream_of(data: bytes) -> ByteStream:
    return ByteStream(io.BytesIO(data))
