"""Shared formatting helpers for the CLI and log messages"""

from .format_enums import V4Format
from .image_buffer import image_data_size, is_compressed


def format_size(bytes_size: int) -> str:
    """Format a byte count in human-readable form"""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if bytes_size < 1024.0:
            return f"{bytes_size:.2f} {unit}"
        bytes_size /= 1024.0
    return f"{bytes_size:.2f} TB"


def describe_geometry(width: int, height: int, fmt: V4Format, has_mipmaps: bool) -> str:
    """One-line summary such as '256x256 DXT5 (compressed), mipmaps, 85.36 KB'"""
    kind = "compressed" if is_compressed(fmt) else "uncompressed"
    mips = ", mipmaps" if has_mipmaps else ""
    size = format_size(image_data_size(width, height, fmt, has_mipmaps))
    return f"{width}x{height} {V4Format(fmt).name} ({kind}){mips}, {size}"
