"""
Tagged V2 image payloads: EMPTY / RAW / LOSSLESS / LOSSY.

Older producers sometimes wrote empty images as LOSSY with a zero-length
blob; those decode as empty images. The encoder never produces LOSSY.
"""

import logging

from .byte_stream import ByteStream, skip_padding, write_padding
from .errors import FileCorrupt, Unavailable
from .format_enums import EncodingTag, UNCOMPRESSED_CEILING
from .image_buffer import ImageBuffer
from .raw_image_codec import legacy_format_for, read_raw_image, write_raw_image
from .single_image import CodecHooks, NO_HOOKS

logger = logging.getLogger(__name__)


def unpack_blob(data: bytes, tag: EncodingTag, hooks: CodecHooks) -> ImageBuffer:
    """
    Run a compressed blob through the matching single-image decoder.

    Raises:
        Unavailable: The decoder hook for this tag is absent
        FileCorrupt: The decoder rejected the blob
    """
    if tag == EncodingTag.LOSSLESS:
        unpacker, kind = hooks.png_unpack, "PNG"
    elif tag == EncodingTag.LOSSY:
        unpacker, kind = hooks.webp_unpack, "WebP"
    else:
        raise FileCorrupt(f"Encoding {tag!r} does not carry a compressed blob")

    if unpacker is None:
        raise Unavailable(f"No {kind} decoder available for a {len(data)}-byte {tag.name.lower()} image")

    image = unpacker(data)
    if image is None:
        raise FileCorrupt(f"Failed to decode {len(data)}-byte {kind} image")
    return image


def decode_image(stream: ByteStream, hooks: CodecHooks = NO_HOOKS,
                 convert_indexed: bool = True) -> ImageBuffer:
    """
    Decode one tagged image payload.

    Args:
        stream: Stream positioned at the encoding tag
        hooks: Single-image codecs for LOSSLESS/LOSSY payloads
        convert_indexed: Expand legacy indexed formats in RAW payloads

    Returns:
        The decoded ImageBuffer; empty for EMPTY payloads and zero-length blobs
    """
    raw_tag = stream.get_u32("image encoding")
    try:
        tag = EncodingTag(raw_tag)
    except ValueError:
        raise FileCorrupt(f"Unknown image encoding {raw_tag}")

    if tag is EncodingTag.EMPTY:
        return ImageBuffer.empty()
    if tag is EncodingTag.RAW:
        return read_raw_image(stream, convert_indexed)

    size = stream.get_u32("compressed image length")
    if size == 0:
        logger.debug("Zero-length %s image treated as empty", tag.name)
        return ImageBuffer.empty()

    data = stream.read_exact(size, f"{tag.name.lower()} image data")
    skip_padding(stream, size)
    return unpack_blob(data, tag, hooks)


def choose_encoding(image: ImageBuffer, hooks: CodecHooks = NO_HOOKS,
                    compress_lossless: bool = False) -> EncodingTag:
    """EMPTY, RAW, or LOSSLESS when requested and possible; never LOSSY"""
    if image.is_empty:
        return EncodingTag.EMPTY
    if compress_lossless and hooks.png_pack is not None and image.format <= UNCOMPRESSED_CEILING:
        return EncodingTag.LOSSLESS
    return EncodingTag.RAW


def encode_image(stream: ByteStream, image: ImageBuffer, hooks: CodecHooks = NO_HOOKS,
                 compress_lossless: bool = False) -> EncodingTag:
    """
    Encode one tagged image payload.

    LOSSY is never chosen.

    Returns:
        The encoding that was written

    Raises:
        UnsupportedFormat: RAW was chosen and the format has no V2 equivalent
    """
    tag = choose_encoding(image, hooks, compress_lossless)

    if tag is EncodingTag.RAW:
        # Fail before the tag is written
        legacy_format_for(image)

    stream.put_u32(tag)
    if tag is EncodingTag.RAW:
        write_raw_image(stream, image)
    elif tag is EncodingTag.LOSSLESS:
        data = hooks.png_pack(image)
        stream.put_u32(len(data))
        if data:
            stream.write(data)
            write_padding(stream, len(data))

    logger.debug("Encoded %dx%d %s image as %s", image.width, image.height, image.format_name, tag.name)
    return tag
