"""
Text form of V2 image values, as found in text resources and project config files.

    Image( <width>, <height>, <mipmap count>, <format>, <byte>, <byte>, ... )
    img( ... )                      (project config dialect)
    Image()                         (the empty image)

<format> is a V2 format identifier (RGBA, GRAYSCALE_ALPHA, ...), written
bare by the serializer. The parser also accepts it quoted and accepts the V2
display names.
"""

import logging

from .errors import FileCorrupt, InvalidParameter, ParseError, UnsupportedFormat
from .format_enums import (
    V2Format,
    V4Format,
    V2_PCFG_IDENTIFIERS,
    FormatVersion,
    describe,
    from_identifier,
    from_name,
    is_v2_indexed,
    to_identifier,
    v2_pcfg_identifier,
    v2_to_v4,
    v4_to_v2,
)
from .image_buffer import ImageBuffer
from .palette import expand_indexed
from .tokenizer import Token, TokenKind, Tokenizer

logger = logging.getLogger(__name__)

CONSTRUCT_NAMES = ("Image", "img")

PCFG_FORMATS = {identifier: fmt for fmt, identifier in V2_PCFG_IDENTIFIERS.items()}


def serialize(image: ImageBuffer, pcfg: bool = False) -> str:
    """
    Write an image in the text construct form.

    Args:
        image: Image to write
        pcfg: Use the project config dialect (img( prefix, lowercase identifiers)

    Raises:
        UnsupportedFormat: If the format has no V2 identifier
    """
    prefix = "img(" if pcfg else "Image("
    if image.is_empty:
        return prefix + ")"

    fmt = v4_to_v2(image.format)
    if fmt is V2Format.MAX:
        raise UnsupportedFormat(f"Can't write {image.format_name} image as a V2 image construct")

    if pcfg:
        identifier = v2_pcfg_identifier(fmt, len(image.data))
    else:
        identifier = to_identifier(FormatVersion.V2, fmt)

    data = ", ".join(str(b) for b in image.data)
    return f"{prefix} {image.width}, {image.height}, {image.mipmap_count}, {identifier}, {data} )"


def _expect(tokens: Tokenizer, kind: TokenKind, message: str) -> Token:
    token = tokens.next_token()
    if token.kind is not kind:
        if token.kind is TokenKind.EOF:
            raise ParseError(f"{message}, got end of file", token.line)
        raise ParseError(f"{message}, got {token.describe()}", token.line)
    return token


def _expect_uint(tokens: Tokenizer, what: str) -> int:
    token = _expect(tokens, TokenKind.NUMBER, f"Expected {what} in Image variant")
    if not isinstance(token.value, int) or token.value < 0:
        raise ParseError(f"Expected a non-negative integer {what}, got {token.value}", token.line)
    return token.value


def _lookup_format(token: Token) -> int:
    """V2 ordinal for a format identifier, pcfg identifier or display name; MAX when unknown"""
    fmt = from_identifier(FormatVersion.V2, token.value)
    if fmt is V2Format.MAX:
        fmt = PCFG_FORMATS.get(token.value, V2Format.MAX)
    if fmt is V2Format.MAX:
        fmt = from_name(FormatVersion.V2, token.value)
    return fmt


def deserialize(tokens: Tokenizer, convert_indexed: bool = True) -> ImageBuffer:
    """
    Parse the remainder of an image construct after the Image/img word.

    Args:
        tokens: Tokenizer positioned right after the construct name
        convert_indexed: Expand indexed formats to direct colour

    Returns:
        The parsed ImageBuffer (empty for "Image()")

    Raises:
        ParseError: Malformed construct, unknown format or mismatched data size
    """
    _expect(tokens, TokenKind.PARENTHESIS_OPEN, "Expected '(' in constructor")
    if tokens.peek().kind is TokenKind.PARENTHESIS_CLOSE:
        tokens.next_token()
        return ImageBuffer.empty()

    width = _expect_uint(tokens, "width")
    _expect(tokens, TokenKind.COMMA, "Expected ',' after width")
    height = _expect_uint(tokens, "height")
    _expect(tokens, TokenKind.COMMA, "Expected ',' after height")
    mipmaps = _expect_uint(tokens, "mipmap count")
    _expect(tokens, TokenKind.COMMA, "Expected ',' after mipmap count")

    format_token = tokens.next_token()
    if format_token.kind not in (TokenKind.STRING, TokenKind.IDENTIFIER):
        raise ParseError(f"Expected format string in Image variant, got {format_token.describe()}",
                         format_token.line)
    old_format = _lookup_format(format_token)
    line = format_token.line

    data = bytearray()
    token = tokens.next_token()
    if token.kind is TokenKind.COMMA:
        token = tokens.next_token()
        while token.kind is not TokenKind.PARENTHESIS_CLOSE:
            if token.kind is not TokenKind.NUMBER:
                raise ParseError(f"Expected int in image data, got {token.describe()}", token.line)
            if not isinstance(token.value, int) or not 0 <= token.value <= 255:
                raise ParseError(f"Image data value {token.value} is not a byte", token.line)
            data.append(token.value)
            token = tokens.next_token()
            if token.kind is TokenKind.COMMA:
                token = tokens.next_token()
            elif token.kind is not TokenKind.PARENTHESIS_CLOSE:
                raise ParseError(f"Expected ',' or ')', got {token.describe()}", token.line)
    elif token.kind is not TokenKind.PARENTHESIS_CLOSE:
        raise ParseError(f"Expected ',' or ')', got {token.describe()}", token.line)

    if convert_indexed and is_v2_indexed(old_format):
        try:
            return expand_indexed(bytes(data), width, height, old_format, mipmaps > 0)
        except FileCorrupt as e:
            raise ParseError(
                f"Failed to convert deprecated image format {describe(FormatVersion.V2, old_format)}: {e}",
                line,
            ) from e

    fmt = v2_to_v4(old_format)
    if fmt is V4Format.MAX:
        raise ParseError(
            f"Converting deprecated image format {format_token.value!r} not implemented.", line
        )

    try:
        image = ImageBuffer(width, height, fmt, bytes(data), mipmaps > 0)
    except InvalidParameter as e:
        raise ParseError(f"Failed to create image: {e}", line) from e

    logger.debug("Parsed %dx%d %s image construct (%d bytes)", width, height, fmt.name, len(data))
    return image


def parse_image_construct(text: str, convert_indexed: bool = True) -> ImageBuffer:
    """Parse a complete "Image( ... )" or "img( ... )" string"""
    tokens = Tokenizer(text)
    head = tokens.next_token()
    if head.kind is not TokenKind.IDENTIFIER or head.value not in CONSTRUCT_NAMES:
        raise ParseError(f"Expected Image or img construct, got {head.describe()}", head.line)
    image = deserialize(tokens, convert_indexed)
    trailing = tokens.next_token()
    if trailing.kind is not TokenKind.EOF:
        raise ParseError(f"Unexpected {trailing.describe()} after image construct", trailing.line)
    return image
