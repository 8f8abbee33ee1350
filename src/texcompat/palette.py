"""
Expansion of the legacy indexed formats into direct colour.

Indexed payload layout:
- width*height bytes: one palette index per pixel
- palette entries (3 bytes RGB or 4 bytes RGBA) until the end of the payload,
  normally 256 of them

Intensity payloads have no palette: every byte becomes an opaque-white pixel
with the byte as its alpha. There is no encoder for intensity.

Uses NumPy fancy indexing instead of a per-pixel loop.
"""

import logging

import numpy as np

from .errors import FileCorrupt, InvalidParameter
from .format_enums import V2Format, V4Format, FormatVersion, describe
from .image_buffer import ImageBuffer

logger = logging.getLogger(__name__)

# Palette entry width and resulting canonical format per indexed format
PALETTE_LAYOUT = {
    V2Format.INDEXED: (3, V4Format.RGB8),
    V2Format.INDEXED_ALPHA: (4, V4Format.RGBA8),
}


def expand_palette(data: bytes, width: int, height: int, palette_width: int) -> bytes:
    """
    Replace each index byte with its palette entry.

    Args:
        data: Index plane followed by the palette table
        width: Image width in pixels
        height: Image height in pixels
        palette_width: Bytes per palette entry (3 or 4)

    Returns:
        width*height*palette_width bytes of direct colour

    Raises:
        FileCorrupt: If the payload is shorter than the index plane or an
            index points past the end of the palette
    """
    pixel_count = width * height
    if len(data) < pixel_count:
        raise FileCorrupt(
            f"Indexed payload holds {len(data)} bytes, less than the "
            f"{pixel_count}-byte index plane of a {width}x{height} image"
        )

    arr = np.frombuffer(data, dtype=np.uint8)
    indices = arr[:pixel_count]

    # A trailing partial entry is not a palette entry
    entry_count = (len(data) - pixel_count) // palette_width
    palette = arr[pixel_count:pixel_count + entry_count * palette_width].reshape(entry_count, palette_width)

    if pixel_count and entry_count == 0:
        raise FileCorrupt(f"Indexed payload for a {width}x{height} image has no palette")

    if pixel_count:
        highest = int(indices.max())
        if highest >= entry_count:
            raise FileCorrupt(
                f"Palette index {highest} is out of range for a palette of {entry_count} entries"
            )

    if entry_count != 256:
        logger.debug("Palette has %d entries instead of 256", entry_count)

    return palette[indices].tobytes()


def expand_intensity(data: bytes) -> bytes:
    """Opaque white modulated by each source byte as alpha"""
    alpha = np.frombuffer(data, dtype=np.uint8)
    out = np.full((alpha.size, 4), 255, dtype=np.uint8)
    out[:, 3] = alpha
    return out.tobytes()


def expand_indexed(data: bytes, width: int, height: int, fmt: int,
                   has_mipmaps: bool = False) -> ImageBuffer:
    """
    Convert a legacy INTENSITY / INDEXED / INDEXED_ALPHA payload to an ImageBuffer.

    INTENSITY -> RGBA8, INDEXED -> RGB8, INDEXED_ALPHA -> RGBA8.

    Raises:
        InvalidParameter: If fmt is not one of the three indexed formats
        FileCorrupt: If the payload does not describe a valid image
    """
    if fmt == V2Format.INTENSITY:
        out_format = V4Format.RGBA8
        pixels = expand_intensity(data)
    elif fmt in PALETTE_LAYOUT:
        palette_width, out_format = PALETTE_LAYOUT[V2Format(fmt)]
        pixels = expand_palette(data, width, height, palette_width)
    else:
        raise InvalidParameter(f"{describe(FormatVersion.V2, fmt)} is not an indexed format")

    logger.debug("Expanded %s %dx%d to %s", describe(FormatVersion.V2, fmt), width, height, out_format.name)

    try:
        return ImageBuffer(width, height, out_format, pixels, has_mipmaps)
    except InvalidParameter as e:
        raise FileCorrupt(
            f"Can't convert deprecated image format {describe(FormatVersion.V2, fmt)}: {e}"
        ) from e
