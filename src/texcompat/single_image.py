"""
Single-image codec hooks (PNG pack/unpack, legacy WebP unpack) backed by Pillow.

The codecs are passed to decoders and encoders explicitly as a CodecHooks
record. Any hook may be None; callers check for presence before use.
"""

import io
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import InvalidParameter
from .format_enums import V4Format
from .image_buffer import ImageBuffer

logger = logging.getLogger(__name__)

# V2/V3 lossy payloads carry this tag in front of the RIFF stream
LEGACY_WEBP_PREFIX = b"WEBP"

MODE_FOR_FORMAT = {
    V4Format.L8: "L",
    V4Format.LA8: "LA",
    V4Format.RGB8: "RGB",
    V4Format.RGBA8: "RGBA",
}

FORMAT_FOR_MODE = {mode: fmt for fmt, mode in MODE_FOR_FORMAT.items()}


@dataclass(frozen=True)
class CodecHooks:
    """Optional single-image codecs; None means the capability is absent"""
    png_pack: Optional[Callable[[ImageBuffer], bytes]] = None
    png_unpack: Optional[Callable[[bytes], Optional[ImageBuffer]]] = None
    webp_unpack: Optional[Callable[[bytes], Optional[ImageBuffer]]] = None


NO_HOOKS = CodecHooks()


def _to_8bit_channels(image: ImageBuffer):
    """
    Base level as (mode, pixel bytes) in a mode Pillow can write.

    The 8-bit formats pass straight through; R8/RG8 widen to RGB and the
    packed 16-bit formats unpack to 8 bits per channel.
    """
    fmt = image.format
    base = image.base_level().data
    if fmt in MODE_FOR_FORMAT:
        return MODE_FOR_FORMAT[fmt], base

    count = image.width * image.height
    if fmt in (V4Format.R8, V4Format.RG8):
        channels = 1 if fmt is V4Format.R8 else 2
        src = np.frombuffer(base, dtype=np.uint8).reshape(count, channels)
        out = np.zeros((count, 3), dtype=np.uint8)
        out[:, :channels] = src
        return "RGB", out.tobytes()

    packed = np.frombuffer(base, dtype='<u2').astype(np.uint32)
    if fmt is V4Format.RGBA4444:
        out = np.empty((count, 4), dtype=np.uint32)
        out[:, 0] = (packed >> 12) & 0xF
        out[:, 1] = (packed >> 8) & 0xF
        out[:, 2] = (packed >> 4) & 0xF
        out[:, 3] = packed & 0xF
        return "RGBA", (out * 17).astype(np.uint8).tobytes()
    if fmt is V4Format.RGB565:
        r = packed & 0x1F
        g = (packed >> 5) & 0x3F
        b = (packed >> 11) & 0x1F
        out = np.stack([(r * 255 + 15) // 31, (g * 255 + 31) // 63, (b * 255 + 15) // 31], axis=1)
        return "RGB", out.astype(np.uint8).tobytes()

    raise InvalidParameter(f"Cannot pack {image.format_name} as PNG; only uncompressed formats are supported")


def png_pack(image: ImageBuffer) -> bytes:
    """Encode the base level of an uncompressed image as PNG"""
    mode, pixels = _to_8bit_channels(image)
    pil_image = Image.frombytes(mode, (image.width, image.height), pixels)
    out = io.BytesIO()
    pil_image.save(out, format="PNG")
    return out.getvalue()


def from_pil(pil_image: Image.Image) -> ImageBuffer:
    """Convert a decoded Pillow image to an ImageBuffer in the closest 8-bit format"""
    mode = pil_image.mode
    if mode not in FORMAT_FOR_MODE:
        if mode == "P":
            mode = "RGBA" if "transparency" in pil_image.info else "RGB"
        elif mode in ("1", "I", "I;16", "I;16B", "F"):
            mode = "L"
        elif mode == "PA":
            mode = "RGBA"
        else:
            mode = "RGBA" if "A" in mode else "RGB"
        pil_image = pil_image.convert(mode)
    return ImageBuffer(pil_image.width, pil_image.height, FORMAT_FOR_MODE[mode], pil_image.tobytes())


def convert_to(image: ImageBuffer, fmt: V4Format) -> ImageBuffer:
    """Base level of an 8-bit image converted to another 8-bit format; alpha fills opaque"""
    if image.format is fmt:
        return image
    if image.format not in MODE_FOR_FORMAT or fmt not in MODE_FOR_FORMAT:
        raise InvalidParameter(f"Cannot convert {image.format_name} to {V4Format(fmt).name}")
    pil_image = Image.frombytes(MODE_FOR_FORMAT[image.format], (image.width, image.height),
                                image.base_level().data)
    return ImageBuffer(image.width, image.height, fmt, pil_image.convert(MODE_FOR_FORMAT[fmt]).tobytes())


def _decode(data: bytes, kind: str) -> Optional[ImageBuffer]:
    try:
        with Image.open(io.BytesIO(data)) as pil_image:
            pil_image.load()
            return from_pil(pil_image)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning("Error unpacking %s image (%d bytes): %s", kind, len(data), e)
        return None


def png_unpack(data: bytes) -> Optional[ImageBuffer]:
    """Decode a PNG blob; None when the blob is not a readable PNG"""
    return _decode(data, "PNG")


def webp_unpack(data: bytes) -> Optional[ImageBuffer]:
    """
    Decode a V2/V3 lossy blob: the 4-byte WEBP tag followed by a WebP stream.

    Decodes to RGBA8 when the stream has alpha, RGB8 otherwise.
    """
    if len(data) <= len(LEGACY_WEBP_PREFIX) or not data.startswith(LEGACY_WEBP_PREFIX):
        logger.warning("Lossy blob does not start with the WEBP tag")
        return None
    return _decode(data[len(LEGACY_WEBP_PREFIX):], "WEBP")


def default_hooks(enable_png: bool = True, enable_webp: bool = True) -> CodecHooks:
    """The Pillow-backed hook set, optionally with codecs switched off"""
    return CodecHooks(
        png_pack=png_pack if enable_png else None,
        png_unpack=png_unpack if enable_png else None,
        webp_unpack=webp_unpack if enable_webp else None,
    )
