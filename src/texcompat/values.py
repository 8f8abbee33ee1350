"""
Tagged property values at the resource seam.

A Value is one of a closed set of variants. Asking a value for the wrong
kind (as_image() on an IntValue) raises InvalidParameter instead of
returning a default.

Binary layout: u32 property tag followed by the tag's payload. Only the tags
needed to carry legacy images through a resource are handled.
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict

from .byte_stream import ByteStream, padding_for, skip_padding, write_padding
from .errors import InvalidParameter, ParseError
from .format_enums import V4Format
from .image_buffer import ImageBuffer
from .image_codec import decode_image, encode_image
from .single_image import CodecHooks, NO_HOOKS
from .text_construct import CONSTRUCT_NAMES, deserialize, serialize
from .tokenizer import TokenKind, Tokenizer

logger = logging.getLogger(__name__)

# Length fields of dictionaries share their top bit with a flag
SHARED_BIT = 0x80000000

# fmt, mipmaps, width, height, data length
IMAGE_VARIANT_HEADER_SIZE = 5 * 4


class PropertyTag(IntEnum):
    NIL = 1
    BOOL = 2
    INT = 3
    STRING = 5
    IMAGE = 21
    DICTIONARY = 26
    RAW_ARRAY = 31


@dataclass(frozen=True)
class Value:
    """Base of the value variants; every accessor fails unless overridden"""

    @property
    def kind(self) -> str:
        return type(self).__name__

    def _mismatch(self, wanted: str) -> InvalidParameter:
        return InvalidParameter(f"Expected {wanted} value, got {self.kind}")

    def as_image(self) -> ImageBuffer:
        raise self._mismatch("image")

    def as_bytes(self) -> bytes:
        raise self._mismatch("bytes")

    def as_dict(self) -> Dict["Value", "Value"]:
        raise self._mismatch("dictionary")

    def as_bool(self) -> bool:
        raise self._mismatch("bool")

    def as_int(self) -> int:
        raise self._mismatch("int")

    def as_str(self) -> str:
        raise self._mismatch("string")

    @property
    def is_null(self) -> bool:
        return False


@dataclass(frozen=True)
class NullValue(Value):

    @property
    def is_null(self) -> bool:
        return True


@dataclass(frozen=True)
class BoolValue(Value):
    value: bool = False

    def as_bool(self) -> bool:
        return self.value


@dataclass(frozen=True)
class IntValue(Value):
    value: int = 0

    def as_int(self) -> int:
        return self.value


@dataclass(frozen=True)
class StringValue(Value):
    value: str = ""

    def as_str(self) -> str:
        return self.value


@dataclass(frozen=True)
class BytesValue(Value):
    value: bytes = b""

    def as_bytes(self) -> bytes:
        return self.value


@dataclass(frozen=True)
class ImageValue(Value):
    value: ImageBuffer = field(default_factory=ImageBuffer.empty)

    def as_image(self) -> ImageBuffer:
        return self.value


@dataclass(frozen=True, eq=False)
class DictValue(Value):
    value: Dict[Value, Value] = field(default_factory=dict)

    def __eq__(self, other):
        return isinstance(other, DictValue) and self.value == other.value

    __hash__ = None

    def as_dict(self) -> Dict[Value, Value]:
        return self.value


# Binary property values

def _read_string(stream: ByteStream) -> str:
    length = stream.get_u32("string length")
    if not length:
        return ""
    raw = stream.read_exact(length, "string data")
    return raw.split(b"\x00", 1)[0].decode('utf-8', errors='replace')


def _write_string(stream: ByteStream, text: str):
    raw = text.encode('utf-8') + b"\x00"
    stream.put_u32(len(raw))
    stream.write(raw)


def read_property_value(stream: ByteStream, hooks: CodecHooks = NO_HOOKS,
                        convert_indexed: bool = True) -> Value:
    """
    Read one tagged property value.

    Raises:
        InvalidParameter: Tag outside the supported set
    """
    raw_tag = stream.get_u32("property tag")
    try:
        tag = PropertyTag(raw_tag)
    except ValueError:
        raise InvalidParameter(f"Unsupported property tag {raw_tag}")

    if tag is PropertyTag.NIL:
        return NullValue()
    if tag is PropertyTag.BOOL:
        return BoolValue(bool(stream.get_u32("bool")))
    if tag is PropertyTag.INT:
        return IntValue(stream.get_i32("int"))
    if tag is PropertyTag.STRING:
        return StringValue(_read_string(stream))
    if tag is PropertyTag.IMAGE:
        return ImageValue(decode_image(stream, hooks, convert_indexed))
    if tag is PropertyTag.DICTIONARY:
        count = stream.get_u32("dictionary size") & ~SHARED_BIT
        items = {}
        for _ in range(count):
            key = read_property_value(stream, hooks, convert_indexed)
            items[key] = read_property_value(stream, hooks, convert_indexed)
        return DictValue(items)

    length = stream.get_u32("byte array length")
    data = stream.read_exact(length, "byte array")
    skip_padding(stream, length)
    return BytesValue(data)


def write_property_value(stream: ByteStream, value: Value, hooks: CodecHooks = NO_HOOKS,
                         compress_lossless: bool = False):
    if isinstance(value, NullValue):
        stream.put_u32(PropertyTag.NIL)
    elif isinstance(value, BoolValue):
        stream.put_u32(PropertyTag.BOOL)
        stream.put_u32(1 if value.value else 0)
    elif isinstance(value, IntValue):
        stream.put_u32(PropertyTag.INT)
        stream.put_i32(value.value)
    elif isinstance(value, StringValue):
        stream.put_u32(PropertyTag.STRING)
        _write_string(stream, value.value)
    elif isinstance(value, ImageValue):
        stream.put_u32(PropertyTag.IMAGE)
        encode_image(stream, value.value, hooks, compress_lossless)
    elif isinstance(value, DictValue):
        stream.put_u32(PropertyTag.DICTIONARY)
        stream.put_u32(len(value.value))
        for key, item in value.value.items():
            write_property_value(stream, key, hooks, compress_lossless)
            write_property_value(stream, item, hooks, compress_lossless)
    elif isinstance(value, BytesValue):
        stream.put_u32(PropertyTag.RAW_ARRAY)
        stream.put_u32(len(value.value))
        stream.write(value.value)
        write_padding(stream, len(value.value))
    else:
        raise InvalidParameter(f"Can't write {value.kind} as a property value")


def image_variant_length(buf: bytes) -> int:
    """
    Encoded length of a V2 binary-variant image without decoding it.

    The variant stores u32 format, mipmaps, width, height and data length,
    then the data padded to 4 bytes.
    """
    if len(buf) < IMAGE_VARIANT_HEADER_SIZE:
        raise InvalidParameter(
            f"Image variant needs at least {IMAGE_VARIANT_HEADER_SIZE} bytes, got {len(buf)}"
        )
    stream = ByteStream(bytes(buf[:IMAGE_VARIANT_HEADER_SIZE]))
    fmt = stream.get_u32("image variant format")
    if fmt >= V4Format.MAX:
        raise InvalidParameter(f"Image variant format {fmt} is out of range")
    stream.skip(12)
    datalen = stream.get_u32("image variant data length")
    return IMAGE_VARIANT_HEADER_SIZE + datalen + padding_for(datalen)


# Text values

def parse_text_value(tokens: Tokenizer, convert_indexed: bool = True) -> Value:
    token = tokens.next_token()
    if token.kind is TokenKind.NUMBER:
        if not isinstance(token.value, int):
            raise ParseError(f"Expected an integer, got {token.value}", token.line)
        return IntValue(token.value)
    if token.kind is TokenKind.STRING:
        return StringValue(token.value)
    if token.kind is TokenKind.CURLY_BRACKET_OPEN:
        return _parse_text_dict(tokens, convert_indexed)
    if token.kind is TokenKind.IDENTIFIER:
        if token.value in ("null", "nil"):
            return NullValue()
        if token.value == "true":
            return BoolValue(True)
        if token.value == "false":
            return BoolValue(False)
        if token.value in CONSTRUCT_NAMES:
            return ImageValue(deserialize(tokens, convert_indexed))
        raise ParseError(f"Unexpected identifier '{token.value}'", token.line)
    raise ParseError(f"Expected a value, got {token.describe()}", token.line)


def _parse_text_dict(tokens: Tokenizer, convert_indexed: bool) -> DictValue:
    items = {}
    while True:
        if tokens.peek().kind is TokenKind.CURLY_BRACKET_CLOSE:
            tokens.next_token()
            return DictValue(items)
        key = parse_text_value(tokens, convert_indexed)
        token = tokens.next_token()
        if token.kind is not TokenKind.COLON:
            raise ParseError(f"Expected ':' in dictionary, got {token.describe()}", token.line)
        items[key] = parse_text_value(tokens, convert_indexed)

        token = tokens.next_token()
        if token.kind is TokenKind.CURLY_BRACKET_CLOSE:
            return DictValue(items)
        if token.kind is not TokenKind.COMMA:
            raise ParseError(f"Expected ',' or '}}' in dictionary, got {token.describe()}", token.line)


def _quote(text: str) -> str:
    escaped = text.replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n').replace('\t', '\\t')
    return f'"{escaped}"'


def write_text_value(value: Value, pcfg: bool = False) -> str:
    if isinstance(value, NullValue):
        return "null"
    if isinstance(value, BoolValue):
        return "true" if value.value else "false"
    if isinstance(value, IntValue):
        return str(value.value)
    if isinstance(value, StringValue):
        return _quote(value.value)
    if isinstance(value, ImageValue):
        return serialize(value.value, pcfg)
    if isinstance(value, DictValue):
        if not value.value:
            return "{}"
        pairs = ",\n".join(
            f"{write_text_value(k, pcfg)}: {write_text_value(v, pcfg)}" for k, v in value.value.items()
        )
        return "{\n" + pairs + "\n}"
    raise InvalidParameter(f"Can't write {value.kind} as a text value")
