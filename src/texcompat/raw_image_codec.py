"""
Reader/writer for the raw (uncompressed) V2 image payload.

Layout after the encoding tag (little-endian u32 fields):
    width, height, mipmap count, V2 format ordinal, data length,
    data bytes, zero filler up to a multiple of 4
"""

import logging

from .byte_stream import ByteStream, skip_padding, write_padding
from .errors import FileCorrupt, InvalidParameter, UnsupportedFormat
from .format_enums import (
    V2Format,
    V4Format,
    FormatVersion,
    describe,
    is_v2_deprecated,
    is_v2_indexed,
    v2_to_v4,
    v4_to_v2,
)
from .image_buffer import ImageBuffer
from .palette import expand_indexed

logger = logging.getLogger(__name__)


def read_raw_image(stream: ByteStream, convert_indexed: bool = True) -> ImageBuffer:
    """
    Decode a raw image payload (the encoding tag has already been read).

    Args:
        stream: Stream positioned at the width field
        convert_indexed: Expand INTENSITY/INDEXED/INDEXED_ALPHA payloads to
            direct colour instead of rejecting them

    Returns:
        The decoded ImageBuffer

    Raises:
        UnsupportedFormat: Known legacy format with no canonical equivalent
        FileCorrupt: Unknown format ordinal, truncated data or bad size
    """
    width = stream.get_u32("image width")
    height = stream.get_u32("image height")
    mipmaps = stream.get_u32("mipmap count")
    old_format = stream.get_u32("image format")
    fmt = v2_to_v4(old_format)
    datalen = stream.get_u32("image data length")

    logger.debug("Raw image %dx%d mipmaps=%d format=%s len=%d",
                 width, height, mipmaps, describe(FormatVersion.V2, old_format), datalen)

    data = stream.read_exact(datalen, f"{describe(FormatVersion.V2, old_format)} image data")
    skip_padding(stream, datalen)

    # Everything is consumed before any format error so the stream stays aligned
    if convert_indexed and is_v2_indexed(old_format):
        return expand_indexed(data, width, height, old_format, mipmaps > 0)

    if fmt is V4Format.MAX:
        if is_v2_deprecated(old_format):
            raise UnsupportedFormat(
                f"Converting deprecated image format {describe(FormatVersion.V2, old_format)} not implemented."
            )
        raise FileCorrupt(f"Invalid image format {describe(FormatVersion.V2, old_format)}")

    try:
        return ImageBuffer(width, height, fmt, data, mipmaps > 0)
    except InvalidParameter as e:
        raise FileCorrupt(str(e)) from e


def legacy_format_for(image: ImageBuffer) -> V2Format:
    """V2 ordinal a canonical image is written with; raises if there is none"""
    fmt = v4_to_v2(image.format)
    if fmt is V2Format.MAX:
        raise UnsupportedFormat(f"Can't convert {image.format_name} image to a V2 image format")
    return fmt


def write_raw_image(stream: ByteStream, image: ImageBuffer):
    """
    Encode a raw image payload (without the encoding tag).

    Raises:
        UnsupportedFormat: If the format has no V2 equivalent; nothing is written
    """
    fmt = legacy_format_for(image)
    stream.put_u32(image.width)
    stream.put_u32(image.height)
    stream.put_u32(image.mipmap_count)
    stream.put_u32(fmt)
    stream.put_u32(len(image.data))
    stream.write(image.data)
    write_padding(stream, len(image.data))
