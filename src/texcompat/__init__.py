"""Compatibility core for legacy (V2/V3) image and texture payloads"""

from .errors import (
    TextureCompatError,
    InvalidParameter,
    UnsupportedFormat,
    FileCorrupt,
    Unavailable,
    ParseError,
    FormatIndexError,
)
from .format_enums import (
    FormatVersion,
    EncodingTag,
    V2Format,
    V3Format,
    V4Format,
    from_name,
    from_identifier,
    to_name,
    to_identifier,
    v2_pcfg_identifier,
    v2_to_v4,
    v4_to_v2,
    v3_to_v4,
    v4_to_v3,
    is_v2_indexed,
)
from .image_buffer import (
    ImageBuffer,
    image_data_size,
    required_mipmaps,
    mipmap_offset,
)
from .byte_stream import ByteStream, padding_for
from .palette import expand_indexed
from .raw_image_codec import read_raw_image, write_raw_image
from .image_codec import decode_image, encode_image
from .single_image import CodecHooks, NO_HOOKS, default_hooks, png_pack, png_unpack, webp_unpack
from .stream_texture import (
    DataFormatBits,
    StreamTextureHeader,
    StreamTexture,
    LayeredTexture,
    TextureVersionType,
    read_stream_texture,
    write_stream_texture,
    load_stream_texture,
    read_layered_texture_v3,
    load_layered_texture_v3,
    recognize_texture,
    recognize_texture_file,
)
from .tokenizer import Token, TokenKind, Tokenizer
from .text_construct import serialize, deserialize, parse_image_construct
from .values import (
    Value,
    NullValue,
    BoolValue,
    IntValue,
    StringValue,
    BytesValue,
    ImageValue,
    DictValue,
    PropertyTag,
    read_property_value,
    write_property_value,
    parse_text_value,
    write_text_value,
    image_variant_length,
)
from .settings import CompatSettings, load_settings, save_settings
from .file_scanner import FileScanner

__all__ = [
    # Errors
    'TextureCompatError',
    'InvalidParameter',
    'UnsupportedFormat',
    'FileCorrupt',
    'Unavailable',
    'ParseError',
    'FormatIndexError',
    # Format enumerations
    'FormatVersion',
    'EncodingTag',
    'V2Format',
    'V3Format',
    'V4Format',
    'from_name',
    'from_identifier',
    'to_name',
    'to_identifier',
    'v2_pcfg_identifier',
    'v2_to_v4',
    'v4_to_v2',
    'v3_to_v4',
    'v4_to_v3',
    'is_v2_indexed',
    # Pixel buffers
    'ImageBuffer',
    'image_data_size',
    'required_mipmaps',
    'mipmap_offset',
    'ByteStream',
    'padding_for',
    # V2 image payloads
    'expand_indexed',
    'read_raw_image',
    'write_raw_image',
    'decode_image',
    'encode_image',
    # Single-image codecs
    'CodecHooks',
    'NO_HOOKS',
    'default_hooks',
    'png_pack',
    'png_unpack',
    'webp_unpack',
    # Texture containers
    'DataFormatBits',
    'StreamTextureHeader',
    'StreamTexture',
    'LayeredTexture',
    'TextureVersionType',
    'read_stream_texture',
    'write_stream_texture',
    'load_stream_texture',
    'read_layered_texture_v3',
    'load_layered_texture_v3',
    'recognize_texture',
    'recognize_texture_file',
    # Text constructs
    'Token',
    'TokenKind',
    'Tokenizer',
    'serialize',
    'deserialize',
    'parse_image_construct',
    # Tagged values
    'Value',
    'NullValue',
    'BoolValue',
    'IntValue',
    'StringValue',
    'BytesValue',
    'ImageValue',
    'DictValue',
    'PropertyTag',
    'read_property_value',
    'write_property_value',
    'parse_text_value',
    'write_text_value',
    'image_variant_length',
    # Settings and file discovery
    'CompatSettings',
    'load_settings',
    'save_settings',
    'FileScanner',
]
