"""
Pixel buffer value and the per-format size arithmetic it is validated against.

Mipmap chains are stored consecutively, largest level first. Block-compressed
formats pad each level up to a multiple of the block size before computing
its byte size, so a 1x1 DXT1 level still occupies one 4x4 block.
"""

from dataclasses import dataclass
from typing import Tuple

from .errors import InvalidParameter
from .format_enums import V4Format, UNCOMPRESSED_CEILING, FormatVersion, to_name


# Bytes per pixel (per texel for block formats, before the right shift)
FORMAT_PIXEL_SIZE = {
    V4Format.L8: 1,
    V4Format.LA8: 2,
    V4Format.R8: 1,
    V4Format.RG8: 2,
    V4Format.RGB8: 3,
    V4Format.RGBA8: 4,
    V4Format.RGBA4444: 2,
    V4Format.RGB565: 2,
    V4Format.RF: 4,
    V4Format.RGF: 8,
    V4Format.RGBF: 12,
    V4Format.RGBAF: 16,
    V4Format.RH: 2,
    V4Format.RGH: 4,
    V4Format.RGBH: 6,
    V4Format.RGBAH: 8,
    V4Format.RGBE9995: 4,
}

# 4 bits per texel instead of 8
HALF_BYTE_FORMATS = frozenset({
    V4Format.DXT1,
    V4Format.RGTC_R,
    V4Format.ETC,
    V4Format.ETC2_R11,
    V4Format.ETC2_R11S,
    V4Format.ETC2_RGB8,
    V4Format.ETC2_RGB8A1,
})

BLOCK_FORMATS = frozenset(f for f in V4Format if V4Format.DXT1 <= f < V4Format.MAX)


def format_pixel_size(fmt: V4Format) -> int:
    # Every block format stores one byte per texel before the shift
    return FORMAT_PIXEL_SIZE.get(V4Format(fmt), 1)


def format_pixel_rshift(fmt: V4Format) -> int:
    return 1 if V4Format(fmt) in HALF_BYTE_FORMATS else 0


def format_block_size(fmt: V4Format) -> int:
    return 4 if V4Format(fmt) in BLOCK_FORMATS else 1


def is_compressed(fmt: V4Format) -> bool:
    return V4Format(fmt) > UNCOMPRESSED_CEILING


def _level_size(width: int, height: int, fmt: V4Format) -> int:
    block = format_block_size(fmt)
    bw = width + (block - width % block) if width % block else width
    bh = height + (block - height % block) if height % block else height
    return (bw * bh * format_pixel_size(fmt)) >> format_pixel_rshift(fmt)


def _chain_size(width: int, height: int, fmt: V4Format, last_level: int) -> Tuple[int, int]:
    """
    Sum the byte sizes of mip levels.

    last_level < 0 walks the whole chain down to 1x1; otherwise levels
    0..last_level are summed. Returns (size, mipmap_count) where the count
    excludes the base level.
    """
    size = 0
    w, h = width, height
    mm = 0
    while True:
        size += _level_size(w, h, fmt)
        if last_level < 0 and w == 1 and h == 1:
            break
        w = max(1, w >> 1)
        h = max(1, h >> 1)
        if 0 <= last_level == mm:
            break
        mm += 1
    return size, mm


def image_data_size(width: int, height: int, fmt: V4Format, mipmaps: bool) -> int:
    """
    Total bytes for an image of this geometry.

    Args:
        width: Base level width
        height: Base level height
        fmt: Canonical pixel format
        mipmaps: Whether the full chain down to 1x1 is included

    Returns:
        Byte count of the base level alone, or of the whole chain
    """
    size, _ = _chain_size(width, height, fmt, -1 if mipmaps else 0)
    return size


def required_mipmaps(width: int, height: int, fmt: V4Format) -> int:
    """
    Number of mip levels below the base level for a full chain.

    Formula matches floor(log2(max(width, height))):
        1024x1024 -> 10
        256x64 -> 8
        1x1 -> 0
    """
    _, count = _chain_size(width, height, fmt, -1)
    return count


def mipmap_offset(width: int, height: int, fmt: V4Format, level: int) -> int:
    """Byte offset of mip `level` from the start of the chain"""
    if level <= 0:
        return 0
    size, _ = _chain_size(width, height, fmt, level - 1)
    return size


def mipmap_dimensions(width: int, height: int, level: int) -> Tuple[int, int]:
    for _ in range(level):
        width = max(1, width >> 1)
        height = max(1, height >> 1)
    return width, height


@dataclass(frozen=True)
class ImageBuffer:
    """A fully validated pixel buffer; either complete or never constructed"""
    width: int = 0
    height: int = 0
    format: V4Format = V4Format.L8
    data: bytes = b""
    has_mipmaps: bool = False

    def __post_init__(self):
        object.__setattr__(self, "data", bytes(self.data))
        try:
            fmt = V4Format(self.format)
        except ValueError:
            raise InvalidParameter(f"Unknown canonical format #{self.format}")
        if fmt is V4Format.MAX:
            raise InvalidParameter("V4Format.MAX is a sentinel, not a pixel format")
        object.__setattr__(self, "format", fmt)

        if self.width == 0 and self.height == 0 and not self.data:
            # The empty image
            object.__setattr__(self, "has_mipmaps", False)
            return

        if self.width <= 0 or self.height <= 0:
            raise InvalidParameter(f"Invalid image dimensions: {self.width}x{self.height}")

        if self.has_mipmaps and required_mipmaps(self.width, self.height, fmt) == 0:
            # A 1x1 chain is its base level; encoders write no mip count for it
            object.__setattr__(self, "has_mipmaps", False)

        expected = image_data_size(self.width, self.height, fmt, self.has_mipmaps)
        if len(self.data) != expected:
            raise InvalidParameter(
                f"Image data for {self.width}x{self.height} {to_name(FormatVersion.V4, fmt)}"
                f"{' with mipmaps' if self.has_mipmaps else ''} must be {expected} bytes, "
                f"got {len(self.data)}"
            )

    @classmethod
    def empty(cls) -> "ImageBuffer":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    @property
    def mipmap_count(self) -> int:
        if not self.has_mipmaps or self.is_empty:
            return 0
        return required_mipmaps(self.width, self.height, self.format)

    @property
    def format_name(self) -> str:
        return to_name(FormatVersion.V4, self.format)

    def base_level(self) -> "ImageBuffer":
        """The largest level alone, without the rest of the chain"""
        if not self.has_mipmaps:
            return self
        size = image_data_size(self.width, self.height, self.format, False)
        return ImageBuffer(self.width, self.height, self.format, self.data[:size], False)

    def mipmap_level(self, level: int) -> "ImageBuffer":
        if level == 0:
            return self.base_level()
        if not 0 < level <= self.mipmap_count:
            raise InvalidParameter(f"Mip level {level} out of range 0..{self.mipmap_count}")
        w, h = mipmap_dimensions(self.width, self.height, level)
        start = mipmap_offset(self.width, self.height, self.format, level)
        size = image_data_size(w, h, self.format, False)
        return ImageBuffer(w, h, self.format, self.data[start:start + size], False)
