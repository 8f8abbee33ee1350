"""
Pixel format enumerations for the three image generations and the tables
that translate between them.

The V2 <-> V4 switch tables and the V3 -> V4 renumbering are reconstructed
from observed byte streams. The boundary ordinals below are fixed; do not
re-derive them from the enum members.

Conversions are partial: a format with no equivalent maps to the target
version's MAX member, which callers must treat as "unsupported".
"""

from enum import IntEnum
from typing import Dict, Optional, Tuple, Union

from .errors import FormatIndexError


class FormatVersion(IntEnum):
    V2 = 2
    V3 = 3
    V4 = 4


class EncodingTag(IntEnum):
    """Tag that prefixes every V2 image payload"""
    EMPTY = 0
    RAW = 1
    LOSSLESS = 2
    LOSSY = 3


class V2Format(IntEnum):
    GRAYSCALE = 0
    INTENSITY = 1
    GRAYSCALE_ALPHA = 2
    RGB = 3
    RGBA = 4
    INDEXED = 5
    INDEXED_ALPHA = 6
    YUV_422 = 7
    YUV_444 = 8
    BC1 = 9
    BC2 = 10
    BC3 = 11
    BC4 = 12
    BC5 = 13
    PVRTC2 = 14
    PVRTC2_ALPHA = 15
    PVRTC4 = 16
    PVRTC4_ALPHA = 17
    ETC = 18
    ATC = 19
    ATC_ALPHA_EXPLICIT = 20
    ATC_ALPHA_INTERPOLATED = 21
    MAX = 22
    CUSTOM = 30


class V3Format(IntEnum):
    L8 = 0
    LA8 = 1
    R8 = 2
    RG8 = 3
    RGB8 = 4
    RGBA8 = 5
    RGBA4444 = 6
    RGBA5551 = 7
    RF = 8
    RGF = 9
    RGBF = 10
    RGBAF = 11
    RH = 12
    RGH = 13
    RGBH = 14
    RGBAH = 15
    RGBE9995 = 16
    DXT1 = 17
    DXT3 = 18
    DXT5 = 19
    RGTC_R = 20
    RGTC_RG = 21
    BPTC_RGBA = 22
    BPTC_RGBF = 23
    BPTC_RGBFU = 24
    PVRTC2 = 25
    PVRTC2A = 26
    PVRTC4 = 27
    PVRTC4A = 28
    ETC = 29
    ETC2_R11 = 30
    ETC2_R11S = 31
    ETC2_RG11 = 32
    ETC2_RG11S = 33
    ETC2_RGB8 = 34
    ETC2_RGBA8 = 35
    ETC2_RGB8A1 = 36
    MAX = 37


class V4Format(IntEnum):
    """Canonical (current generation) pixel formats"""
    L8 = 0
    LA8 = 1
    R8 = 2
    RG8 = 3
    RGB8 = 4
    RGBA8 = 5
    RGBA4444 = 6
    RGB565 = 7
    RF = 8
    RGF = 9
    RGBF = 10
    RGBAF = 11
    RH = 12
    RGH = 13
    RGBH = 14
    RGBAH = 15
    RGBE9995 = 16
    DXT1 = 17
    DXT3 = 18
    DXT5 = 19
    RGTC_R = 20
    RGTC_RG = 21
    BPTC_RGBA = 22
    BPTC_RGBF = 23
    BPTC_RGBFU = 24
    ETC = 25
    ETC2_R11 = 26
    ETC2_R11S = 27
    ETC2_RG11 = 28
    ETC2_RG11S = 29
    ETC2_RGB8 = 30
    ETC2_RGBA8 = 31
    ETC2_RGB8A1 = 32
    ETC2_RA_AS_RG = 33
    DXT5_RA_AS_RG = 34
    MAX = 35


PixelFormat = Union[V2Format, V3Format, V4Format]

# Highest canonical format that is stored uncompressed; only these may be
# repacked losslessly.
UNCOMPRESSED_CEILING = V4Format.RGB565

# V3 -> V4 renumbering: four PVRTC formats were removed right after BPTC_RGBFU
V3_PASSTHROUGH_LAST = V3Format.BPTC_RGBFU
V3_REMOVED_FIRST = V3Format.PVRTC2
V3_REMOVED_LAST = V3Format.PVRTC4A
V3_REMOVED_WIDTH = 4

# Legacy formats that can be expanded to direct colour instead of converted
V2_INDEXED_FORMATS = (V2Format.INTENSITY, V2Format.INDEXED, V2Format.INDEXED_ALPHA)


V2_FORMAT_NAMES = (
    "Grayscale",
    "Intensity",
    "GrayscaleAlpha",
    "RGB",
    "RGBA",
    "Indexed",
    "IndexedAlpha",
    "YUV422",
    "YUV444",
    "BC1",
    "BC2",
    "BC3",
    "BC4",
    "BC5",
    "PVRTC2",
    "PVRTC2Alpha",
    "PVRTC4",
    "PVRTC4Alpha",
    "ETC",
    "ATC",
    "ATCAlphaExp",
    "ATCAlphaInterp",
)

V2_FORMAT_IDENTIFIERS = (
    "GRAYSCALE",
    "INTENSITY",
    "GRAYSCALE_ALPHA",
    "RGB",
    "RGBA",
    "INDEXED",
    "INDEXED_ALPHA",
    "YUV422",
    "YUV444",
    "BC1",
    "BC2",
    "BC3",
    "BC4",
    "BC5",
    "PVRTC2",
    "PVRTC2_ALPHA",
    "PVRTC4",
    "PVRTC4_ALPHA",
    "ETC",
    "ATC",
    "ATC_ALPHA_EXPLICIT",
    "ATC_ALPHA_INTERPOLATED",
)

V2_CUSTOM_NAME = "Custom"
V2_CUSTOM_IDENTIFIER = "CUSTOM"

V3_FORMAT_NAMES = (
    "Lum8",
    "LumAlpha8",
    "Red8",
    "RedGreen",
    "RGB8",
    "RGBA8",
    "RGBA4444",
    "RGBA5551",
    "RFloat",
    "RGFloat",
    "RGBFloat",
    "RGBAFloat",
    "RHalf",
    "RGHalf",
    "RGBHalf",
    "RGBAHalf",
    "RGBE9995",
    "DXT1 RGB8",
    "DXT3 RGBA8",
    "DXT5 RGBA8",
    "RGTC Red8",
    "RGTC RedGreen8",
    "BPTC_RGBA",
    "BPTC_RGBF",
    "BPTC_RGBFU",
    "PVRTC2",
    "PVRTC2A",
    "PVRTC4",
    "PVRTC4A",
    "ETC",
    "ETC2_R11",
    "ETC2_R11S",
    "ETC2_RG11",
    "ETC2_RG11S",
    "ETC2_RGB8",
    "ETC2_RGBA8",
    "ETC2_RGB8A1",
)

# V3 identifiers are the enum member names
V3_FORMAT_IDENTIFIERS = tuple(f.name for f in V3Format if f is not V3Format.MAX)

V4_FORMAT_NAMES = (
    "Lum8",
    "LumAlpha8",
    "Red8",
    "RedGreen",
    "RGB8",
    "RGBA8",
    "RGBA4444",
    "RGB565",
    "RFloat",
    "RGFloat",
    "RGBFloat",
    "RGBAFloat",
    "RHalf",
    "RGHalf",
    "RGBHalf",
    "RGBAHalf",
    "RGBE9995",
    "DXT1 RGB8",
    "DXT3 RGBA8",
    "DXT5 RGBA8",
    "RGTC Red8",
    "RGTC RedGreen8",
    "BPTC_RGBA",
    "BPTC_RGBF",
    "BPTC_RGBFU",
    "ETC",
    "ETC2_R11",
    "ETC2_R11S",
    "ETC2_RG11",
    "ETC2_RG11S",
    "ETC2_RGB8",
    "ETC2_RGBA8",
    "ETC2_RGB8A1",
    "ETC2_RA_AS_RG",
    "DXT5_RA_AS_RG",
)

V4_FORMAT_IDENTIFIERS = tuple(f.name for f in V4Format if f is not V4Format.MAX)

# Project-config (engine.cfg) dialect of the V2 identifiers
V2_PCFG_IDENTIFIERS = {
    V2Format.GRAYSCALE: "grayscale",
    V2Format.INTENSITY: "intensity",
    V2Format.GRAYSCALE_ALPHA: "grayscale_alpha",
    V2Format.RGB: "rgb",
    V2Format.RGBA: "rgba",
    V2Format.INDEXED: "indexed",
    V2Format.INDEXED_ALPHA: "indexed_alpha",
    V2Format.BC1: "bc1",
    V2Format.BC2: "bc2",
    V2Format.BC3: "bc3",
    V2Format.BC4: "bc4",
    V2Format.BC5: "bc5",
}

# The only formats the V2 and V4 generations have in common
V2_TO_V4 = {
    V2Format.GRAYSCALE: V4Format.L8,
    V2Format.GRAYSCALE_ALPHA: V4Format.LA8,
    V2Format.RGB: V4Format.RGB8,
    V2Format.RGBA: V4Format.RGBA8,
    V2Format.BC1: V4Format.DXT1,
    V2Format.BC2: V4Format.DXT3,
    V2Format.BC3: V4Format.DXT5,
    V2Format.BC4: V4Format.RGTC_R,
    V2Format.BC5: V4Format.RGTC_RG,
    V2Format.ETC: V4Format.ETC,
}

V4_TO_V2 = {v4: v2 for v2, v4 in V2_TO_V4.items()}


_TABLES: Dict[FormatVersion, Tuple[type, Tuple[str, ...], Tuple[str, ...]]] = {
    FormatVersion.V2: (V2Format, V2_FORMAT_NAMES, V2_FORMAT_IDENTIFIERS),
    FormatVersion.V3: (V3Format, V3_FORMAT_NAMES, V3_FORMAT_IDENTIFIERS),
    FormatVersion.V4: (V4Format, V4_FORMAT_NAMES, V4_FORMAT_IDENTIFIERS),
}


def _coerce(enum_cls: type, ordinal: int) -> Optional[PixelFormat]:
    """Map a raw ordinal onto an enum member, or None when it has no member"""
    try:
        return enum_cls(int(ordinal))
    except ValueError:
        return None


def from_name(version: FormatVersion, name: str) -> PixelFormat:
    """
    Look up a format by its declared display name.

    Returns the version's MAX member when nothing matches. The literal
    "CUSTOM" maps straight to V2Format.CUSTOM.
    """
    enum_cls, names, _ = _TABLES[FormatVersion(version)]
    if enum_cls is V2Format and name == V2_CUSTOM_IDENTIFIER:
        return V2Format.CUSTOM
    for ordinal, candidate in enumerate(names):
        if candidate == name:
            return enum_cls(ordinal)
    return enum_cls.MAX


def from_identifier(version: FormatVersion, identifier: str) -> PixelFormat:
    """Look up a format by its wire identifier, returning MAX when unknown"""
    enum_cls, _, identifiers = _TABLES[FormatVersion(version)]
    if enum_cls is V2Format and identifier == V2_CUSTOM_IDENTIFIER:
        return V2Format.CUSTOM
    for ordinal, candidate in enumerate(identifiers):
        if candidate == identifier:
            return enum_cls(ordinal)
    return enum_cls.MAX


def _checked_index(version: FormatVersion, fmt: int, table: Tuple[str, ...]) -> str:
    if not 0 <= int(fmt) < len(table):
        raise FormatIndexError(
            f"Format ordinal {int(fmt)} is outside the V{int(version)} range 0..{len(table) - 1}"
        )
    return table[int(fmt)]


def to_name(version: FormatVersion, fmt: int) -> str:
    version = FormatVersion(version)
    if version is FormatVersion.V2 and int(fmt) == V2Format.CUSTOM:
        return V2_CUSTOM_NAME
    return _checked_index(version, fmt, _TABLES[version][1])


def to_identifier(version: FormatVersion, fmt: int) -> str:
    version = FormatVersion(version)
    if version is FormatVersion.V2 and int(fmt) == V2Format.CUSTOM:
        return V2_CUSTOM_IDENTIFIER
    return _checked_index(version, fmt, _TABLES[version][2])


def v2_pcfg_identifier(fmt: int, image_size: int) -> str:
    """Identifier used by V2 project config files; custom formats carry their size"""
    if int(fmt) == V2Format.CUSTOM:
        return f"custom custom_size={image_size}"
    v2 = _coerce(V2Format, fmt)
    return V2_PCFG_IDENTIFIERS.get(v2, "UNKNOWN_IMAGE_FORMAT")


def describe(version: FormatVersion, fmt: int) -> str:
    """Human-readable label for error messages; never raises"""
    try:
        return f"{to_name(version, fmt)} (V{int(version)} #{int(fmt)})"
    except FormatIndexError:
        return f"unknown V{int(version)} format #{int(fmt)}"


def v2_to_v4(fmt: int) -> V4Format:
    v2 = _coerce(V2Format, fmt)
    if v2 is None:
        return V4Format.MAX
    return V2_TO_V4.get(v2, V4Format.MAX)


def v4_to_v2(fmt: int) -> V2Format:
    v4 = _coerce(V4Format, fmt)
    if v4 is None:
        return V2Format.MAX
    return V4_TO_V2.get(v4, V2Format.MAX)


def v3_to_v4(fmt: int) -> V4Format:
    """
    Renumber a V3 format into the V4 enumeration.

    Ordinals up to BPTC_RGBFU are unchanged; the four PVRTC formats have no
    V4 counterpart; everything after them moved down by four.
    """
    fmt = int(fmt)
    if 0 <= fmt <= V3_PASSTHROUGH_LAST:
        return V4Format(fmt)
    if V3_REMOVED_LAST < fmt < V3Format.MAX:
        return V4Format(fmt - V3_REMOVED_WIDTH)
    return V4Format.MAX


def v4_to_v3(fmt: int) -> V3Format:
    """Inverse of v3_to_v4; formats added after V3 map to V3Format.MAX"""
    fmt = int(fmt)
    if 0 <= fmt <= V3_PASSTHROUGH_LAST:
        return V3Format(fmt)
    shifted = fmt + V3_REMOVED_WIDTH
    if V3_REMOVED_LAST < shifted < V3Format.MAX:
        return V3Format(shifted)
    return V3Format.MAX


def is_v2_indexed(fmt: int) -> bool:
    return int(fmt) in V2_INDEXED_FORMATS


def is_v2_deprecated(fmt: int) -> bool:
    """True for real V2 formats (other than GRAYSCALE) that have no V4 equivalent"""
    return 0 < int(fmt) < V2Format.MAX and v2_to_v4(fmt) is V4Format.MAX


def is_v3_deprecated(fmt: int) -> bool:
    return 0 < int(fmt) < V3Format.MAX and v3_to_v4(fmt) is V4Format.MAX

