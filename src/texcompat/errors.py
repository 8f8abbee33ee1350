"""Exception types raised by the texture compatibility core"""

from typing import Optional


class TextureCompatError(Exception):
    """Base class for every error raised while decoding or encoding legacy assets"""


class InvalidParameter(TextureCompatError, ValueError):
    """The caller passed an unsupported format/encoding combination"""


class UnsupportedFormat(TextureCompatError):
    """A legacy format has no modern equivalent (or a modern one no legacy equivalent)"""


class FileCorrupt(TextureCompatError):
    """Magic mismatch, size mismatch, palette index out of range or truncated data"""


class Unavailable(TextureCompatError):
    """A required single-image codec hook is absent"""


class ParseError(TextureCompatError):
    """Malformed text construct; carries the line the tokenizer was on"""

    def __init__(self, message: str, line: Optional[int] = None):
        self.message = message
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class FormatIndexError(TextureCompatError, IndexError):
    """A format ordinal lies outside its version's name/identifier tables"""
