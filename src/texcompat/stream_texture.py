"""
V3 stream texture containers.

GDST layout (little-endian):
    'GDST'
    u16 width, u16 custom width, u16 height, u16 custom height
    u32 texture flags
    u32 data format (V3 pixel format in the low 20 bits + DataFormatBits)
    payload:
        raw:        the full mip chain as laid out by image_data_size()
        compressed: u32 mip count, then per mip u32 size + PNG/WebP blob

The GD3T / GDAT layered containers and the magic based container
recognition live here as well.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum, IntFlag
from pathlib import Path
from typing import List, Optional, Union

from .byte_stream import ByteStream
from .errors import FileCorrupt, InvalidParameter, Unavailable, UnsupportedFormat
from .format_enums import (
    V3Format,
    V4Format,
    FormatVersion,
    describe,
    is_v3_deprecated,
    v3_to_v4,
    v4_to_v3,
)
from .image_buffer import ImageBuffer, image_data_size, mipmap_offset, required_mipmaps
from .single_image import CodecHooks, NO_HOOKS, convert_to

logger = logging.getLogger(__name__)

STREAM_TEXTURE_MAGIC = b"GDST"
TEXTURE_3D_MAGIC = b"GD3T"
TEXTURE_ARRAY_MAGIC = b"GDAT"
V4_TEXTURE_2D_MAGIC = b"GST2"
V4_TEXTURE_LAYERED_MAGIC = b"GSTL"
RESOURCE_MAGICS = (b"RSRC", b"RSCC")

# GSTL files with these extensions hold layers, anything else is a 3D texture
V4_LAYERED_EXTENSIONS = ("ctexarray", "ccube", "ccubearray")

# Texture::FLAG_MIPMAPS in the V3 texture flags
TEXTURE_FLAG_MIPMAPS = 1

MAX_DIMENSION = 0xFFFF


class DataFormatBits(IntFlag):
    IMAGE_FORMAT_MASK = (1 << 20) - 1
    LOSSLESS = 1 << 20
    LOSSY = 1 << 21
    STREAM = 1 << 22
    HAS_MIPMAPS = 1 << 23
    DETECT_3D = 1 << 24
    DETECT_SRGB = 1 << 25
    DETECT_NORMAL = 1 << 26
    DETECT_ROUGHNESS = 1 << 27

    # Older names for the compression bits
    PNG = LOSSLESS
    WEBP = LOSSY


class LayeredCompression(Enum):
    LOSSLESS = 0
    VRAM = 1
    UNCOMPRESSED = 2


class TextureVersionType(Enum):
    NOT_TEXTURE = "not a texture"
    V3_STREAM_TEXTURE_2D = "V3 StreamTexture"
    V3_STREAM_TEXTURE_3D = "V3 StreamTexture3D"
    V3_STREAM_TEXTURE_ARRAY = "V3 StreamTextureArray"
    V4_COMPRESSED_TEXTURE_2D = "V4 CompressedTexture2D"
    V4_COMPRESSED_TEXTURE_3D = "V4 CompressedTexture3D"
    V4_COMPRESSED_TEXTURE_LAYERED = "V4 CompressedTextureLayered"
    BINARY_RESOURCE = "binary resource"


@dataclass
class StreamTextureHeader:
    magic: bytes = STREAM_TEXTURE_MAGIC
    width: int = 0
    custom_width: int = 0
    height: int = 0
    custom_height: int = 0
    flags: int = 0
    data_format: int = 0

    @property
    def v3_format(self) -> int:
        return int(self.data_format & DataFormatBits.IMAGE_FORMAT_MASK)

    @property
    def is_lossless(self) -> bool:
        return bool(self.data_format & DataFormatBits.LOSSLESS)

    @property
    def is_lossy(self) -> bool:
        return bool(self.data_format & DataFormatBits.LOSSY)

    @property
    def is_compressed(self) -> bool:
        return self.is_lossless or self.is_lossy

    @property
    def has_mipmaps(self) -> bool:
        return bool(self.data_format & DataFormatBits.HAS_MIPMAPS)

    @property
    def encoding_name(self) -> str:
        if self.is_lossless:
            return "lossless"
        if self.is_lossy:
            return "lossy"
        return "raw"


@dataclass
class StreamTexture:
    header: StreamTextureHeader
    image: ImageBuffer


@dataclass
class LayeredTexture:
    """Decoded GD3T/GDAT container: one ImageBuffer per layer (or depth slice)"""
    width: int
    height: int
    depth: int
    flags: int
    format: V4Format
    compression: int
    layers: List[ImageBuffer] = field(default_factory=list)

    @property
    def has_mipmaps(self) -> bool:
        return any(layer.has_mipmaps for layer in self.layers)


def recognize_texture(magic: bytes, extension: str = "") -> TextureVersionType:
    """
    Identify a texture container from its first four bytes.

    Args:
        magic: Leading bytes of the file (only the first 4 are used)
        extension: File extension without the dot; separates the two GSTL kinds

    Returns:
        The container kind, NOT_TEXTURE when the magic is unknown
    """
    magic = bytes(magic[:4])
    if magic == STREAM_TEXTURE_MAGIC:
        return TextureVersionType.V3_STREAM_TEXTURE_2D
    if magic == TEXTURE_3D_MAGIC:
        return TextureVersionType.V3_STREAM_TEXTURE_3D
    if magic == TEXTURE_ARRAY_MAGIC:
        return TextureVersionType.V3_STREAM_TEXTURE_ARRAY
    if magic == V4_TEXTURE_LAYERED_MAGIC:
        if extension.lower().lstrip(".") in V4_LAYERED_EXTENSIONS:
            return TextureVersionType.V4_COMPRESSED_TEXTURE_LAYERED
        return TextureVersionType.V4_COMPRESSED_TEXTURE_3D
    if magic == V4_TEXTURE_2D_MAGIC:
        return TextureVersionType.V4_COMPRESSED_TEXTURE_2D
    if magic in RESOURCE_MAGICS:
        return TextureVersionType.BINARY_RESOURCE
    return TextureVersionType.NOT_TEXTURE


def recognize_texture_file(path: Union[str, Path]) -> TextureVersionType:
    path = Path(path)
    with open(path, 'rb') as f:
        magic = f.read(4)
    return recognize_texture(magic, path.suffix)


def read_stream_texture_header(stream: ByteStream) -> StreamTextureHeader:
    magic = stream.read(4)
    if magic != STREAM_TEXTURE_MAGIC:
        raise FileCorrupt(f"Not a V3 stream texture: magic {magic!r}, expected {STREAM_TEXTURE_MAGIC!r}")

    header = StreamTextureHeader(
        magic=magic,
        width=stream.get_u16("texture width"),
        custom_width=stream.get_u16("texture custom width"),
        height=stream.get_u16("texture height"),
        custom_height=stream.get_u16("texture custom height"),
        flags=stream.get_u32("texture flags"),
        data_format=stream.get_u32("texture data format"),
    )
    logger.debug("Stream texture %dx%d flags=0x%x format=0x%x (%s)",
                 header.width, header.height, header.flags, header.data_format, header.encoding_name)
    return header


def _exceeds(width: int, height: int, size_limit: int) -> bool:
    return size_limit > 0 and (width > size_limit or height > size_limit)


def _read_raw_payload(stream: ByteStream, header: StreamTextureHeader, size_limit: int) -> ImageBuffer:
    v3_fmt = header.v3_format
    fmt = v3_to_v4(v3_fmt)
    if fmt is V4Format.MAX:
        if is_v3_deprecated(v3_fmt):
            raise UnsupportedFormat(
                f"Support for deprecated texture format {describe(FormatVersion.V3, v3_fmt)} is unimplemented."
            )
        raise FileCorrupt(f"Texture is in an invalid format: {v3_fmt}")

    width, height = header.width, header.height

    if not header.has_mipmaps:
        size = image_data_size(width, height, fmt, False)
        data = stream.read_exact(size, f"{fmt.name} texture data")
        return ImageBuffer(width, height, fmt, data, False)

    mipmaps = required_mipmaps(width, height, fmt)
    total = image_data_size(width, height, fmt, True)
    sw, sh = width, height
    idx = 0
    while mipmaps > 1 and _exceeds(sw, sh, size_limit):
        sw = max(1, sw >> 1)
        sh = max(1, sh >> 1)
        mipmaps -= 1
        idx += 1

    ofs = mipmap_offset(width, height, fmt, idx)
    expected = total - ofs
    if expected <= 0:
        raise FileCorrupt(f"Failed to create image of format {fmt.name} from texture")

    if idx:
        logger.debug("Size limit %d: skipping %d mip levels (%d bytes)", size_limit, idx, ofs)
    stream.skip(ofs)

    data = stream.read(expected)
    if len(data) < expected:
        # Older exporters wrote fewer mip levels than the full chain
        logger.warning("Mip chain is %d bytes short (expected %d, got %d); zero-filling; "
                       "re-importing the texture is recommended",
                       expected - len(data), expected, len(data))
        data += b"\x00" * (expected - len(data))

    return ImageBuffer(sw, sh, fmt, data, True)


def _unpacker_for(header: StreamTextureHeader, hooks: CodecHooks):
    if header.is_lossless:
        unpacker, kind = hooks.png_unpack, "PNG"
    else:
        unpacker, kind = hooks.webp_unpack, "WebP"
    if unpacker is None:
        raise Unavailable(f"No {kind} decoder available for a {header.encoding_name} stream texture")
    return unpacker, kind


def _read_compressed_payload(stream: ByteStream, header: StreamTextureHeader,
                             hooks: CodecHooks, size_limit: int) -> ImageBuffer:
    unpacker, kind = _unpacker_for(header, hooks)

    sw, sh = header.width, header.height
    mipmaps = stream.get_u32("mipmap count")
    size = stream.get_u32("mipmap blob size")

    # Blobs are individually length-prefixed after a single mip count (see DESIGN.md)
    while mipmaps > 1 and _exceeds(sw, sh, size_limit):
        stream.skip(size)
        size = stream.get_u32("mipmap blob size")
        sw = max(1, sw >> 1)
        sh = max(1, sh >> 1)
        mipmaps -= 1

    levels = []
    for i in range(mipmaps):
        if i:
            size = stream.get_u32("mipmap blob size")
        blob = stream.read_exact(size, f"{kind} mipmap {i}")
        level = unpacker(blob)
        if level is None or level.is_empty:
            raise FileCorrupt(f"Failed to decode {kind} mipmap {i} ({size} bytes)")
        if levels and level.format != levels[0].format:
            # Opaque small mips decode without alpha
            logger.debug("Converting mipmap %d from %s to %s", i, level.format_name, levels[0].format_name)
            level = convert_to(level, levels[0].format)
        levels.append(level)

    if not levels:
        raise FileCorrupt("Compressed stream texture holds no mipmaps")
    if len(levels) == 1:
        return levels[0]

    data = b"".join(level.data for level in levels)
    try:
        return ImageBuffer(sw, sh, levels[0].format, data, True)
    except InvalidParameter as e:
        raise FileCorrupt(f"Compressed mip chain does not form a full chain: {e}") from e


def read_stream_texture(stream: ByteStream, hooks: CodecHooks = NO_HOOKS,
                        size_limit: int = 0) -> StreamTexture:
    """
    Decode a V3 stream texture (GDST).

    Args:
        stream: Stream positioned at the magic
        hooks: PNG/WebP decoders for compressed payloads
        size_limit: Skip mip levels while either dimension exceeds this; 0 loads everything

    Returns:
        StreamTexture with the header as stored and the decoded image

    Raises:
        FileCorrupt: Bad magic, invalid format, truncated or undecodable payload
        UnsupportedFormat: Deprecated PVRTC formats
        Unavailable: The PNG/WebP decoder needed for the payload is absent
    """
    header = read_stream_texture_header(stream)
    try:
        if header.is_compressed:
            image = _read_compressed_payload(stream, header, hooks, size_limit)
        else:
            image = _read_raw_payload(stream, header, size_limit)
    except InvalidParameter as e:
        raise FileCorrupt(f"Invalid stream texture payload: {e}") from e

    if image.is_empty:
        raise FileCorrupt("Stream texture decoded to an empty image")
    return StreamTexture(header, image)


def load_stream_texture(path: Union[str, Path], hooks: CodecHooks = NO_HOOKS,
                        size_limit: int = 0) -> StreamTexture:
    with open(path, 'rb') as f:
        return read_stream_texture(ByteStream(f), hooks, size_limit)


def write_stream_texture(stream: ByteStream, image: ImageBuffer, flags: int = 0,
                         lossless: bool = False, hooks: Optional[CodecHooks] = None):
    """
    Write an image as a GDST container.

    Raw payloads store the whole chain; lossless payloads store one PNG of
    the base level. Lossy output is not supported.

    Raises:
        InvalidParameter: Empty image or dimensions beyond 16 bits
        UnsupportedFormat: Format has no V3 ordinal
        Unavailable: lossless requested without a PNG packer
    """
    if image.is_empty:
        raise InvalidParameter("Can't write an empty image as a stream texture")
    if image.width > MAX_DIMENSION or image.height > MAX_DIMENSION:
        raise InvalidParameter(f"{image.width}x{image.height} exceeds the 16-bit stream texture header")

    v3_fmt = v4_to_v3(image.format)
    if v3_fmt is V3Format.MAX:
        raise UnsupportedFormat(f"Can't convert {image.format_name} image to a V3 texture format")

    payload = None
    data_format = int(v3_fmt)
    if lossless:
        if hooks is None or hooks.png_pack is None:
            raise Unavailable("No PNG encoder available for a lossless stream texture")
        payload = hooks.png_pack(image)
        data_format |= int(DataFormatBits.LOSSLESS)
    elif image.has_mipmaps:
        data_format |= int(DataFormatBits.HAS_MIPMAPS)

    stream.write(STREAM_TEXTURE_MAGIC)
    stream.put_u16(image.width)
    stream.put_u16(0)
    stream.put_u16(image.height)
    stream.put_u16(0)
    stream.put_u32(flags)
    stream.put_u32(data_format)

    if payload is None:
        stream.write(image.data)
    else:
        stream.put_u32(1)
        stream.put_u32(len(payload))
        stream.write(payload)


def read_layered_texture_v3(stream: ByteStream, hooks: CodecHooks = NO_HOOKS) -> LayeredTexture:
    """
    Decode a V3 3D texture (GD3T) or texture array (GDAT).

    Layout: magic, u32 width, height, depth, flags, V3 format, compression,
    then `depth` layers. Lossless layers are a u32 mip count followed by
    size-prefixed PNG blobs; other layers are raw data whose chain length
    follows the mipmaps texture flag.
    """
    magic = stream.read(4)
    if magic not in (TEXTURE_3D_MAGIC, TEXTURE_ARRAY_MAGIC):
        raise FileCorrupt(f"Not a V3 layered texture: magic {magic!r}")

    width = stream.get_u32("layer width")
    height = stream.get_u32("layer height")
    depth = stream.get_u32("layer count")
    flags = stream.get_u32("texture flags")
    v3_fmt = stream.get_u32("layer format")
    fmt = v3_to_v4(v3_fmt)
    if fmt is V4Format.MAX:
        raise FileCorrupt(
            f"Texture layer is in an invalid or deprecated format {describe(FormatVersion.V3, v3_fmt)}"
        )
    compression = stream.get_u32("layer compression")

    logger.debug("Layered texture %s %dx%dx%d format=%s compression=%d",
                 magic.decode('ascii'), width, height, depth, fmt.name, compression)

    layers = []
    for layer in range(depth):
        if compression == LayeredCompression.LOSSLESS.value:
            layers.append(_read_lossless_layer(stream, width, height, fmt, hooks, layer))
        else:
            mipmaps = bool(flags & TEXTURE_FLAG_MIPMAPS)
            size = image_data_size(width, height, fmt, mipmaps)
            data = stream.read_exact(size, f"layer {layer} data")
            try:
                layers.append(ImageBuffer(width, height, fmt, data, mipmaps))
            except InvalidParameter as e:
                raise FileCorrupt(f"Layer {layer} is invalid: {e}") from e

    return LayeredTexture(width, height, depth, flags, fmt, compression, layers)


def _read_lossless_layer(stream: ByteStream, width: int, height: int, fmt: V4Format,
                         hooks: CodecHooks, layer: int) -> ImageBuffer:
    if hooks.png_unpack is None:
        raise Unavailable("No PNG decoder available for a lossless layered texture")

    mipmaps = stream.get_u32("layer mipmap count")
    levels = []
    for i in range(mipmaps):
        size = stream.get_u32("layer mipmap size")
        blob = stream.read_exact(size, f"layer {layer} mipmap {i}")
        level = hooks.png_unpack(blob)
        if level is None or level.is_empty or level.format != fmt:
            raise FileCorrupt(f"Layer {layer} mipmap {i} is not a valid {fmt.name} PNG")
        levels.append(level)

    if not levels:
        raise FileCorrupt(f"Layer {layer} holds no mipmaps")
    if len(levels) == 1:
        return levels[0]

    try:
        return ImageBuffer(width, height, fmt, b"".join(level.data for level in levels), True)
    except InvalidParameter as e:
        raise FileCorrupt(f"Layer {layer} mip chain is incomplete: {e}") from e


def load_layered_texture_v3(path: Union[str, Path], hooks: CodecHooks = NO_HOOKS) -> LayeredTexture:
    with open(os.fspath(path), 'rb') as f:
        return read_layered_texture_v3(ByteStream(f), hooks)
