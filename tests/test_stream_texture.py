import io
import logging

import pytest

from helpers import png_bytes, stream_of, stream_texture_header, u32, webp_bytes
from texcompat.byte_stream import ByteStream
from texcompat.errors import FileCorrupt, InvalidParameter, Unavailable, UnsupportedFormat
from texcompat.format_enums import V3Format, V4Format
from texcompat.image_buffer import ImageBuffer, image_data_size
from texcompat.single_image import NO_HOOKS
from texcompat.stream_texture import (
    DataFormatBits,
    TextureVersionType,
    read_layered_texture_v3,
    read_stream_texture,
    recognize_texture,
    recognize_texture_file,
    write_stream_texture,
)

LOSSLESS = int(DataFormatBits.LOSSLESS)
LOSSY = int(DataFormatBits.LOSSY)
HAS_MIPMAPS = int(DataFormatBits.HAS_MIPMAPS)


def _compressed_chain(blobs):
    return u32(len(blobs)) + b"".join(u32(len(b)) + b for b in blobs)


def test_raw_texture_without_mipmaps():
    data = bytes(range(16))
    stream = stream_of(stream_texture_header(2, 2, V3Format.RGBA8, flags=7) + data)
    texture = read_stream_texture(stream)
    assert texture.header.flags == 7
    assert texture.header.encoding_name == "raw"
    assert texture.image == ImageBuffer(2, 2, V4Format.RGBA8, data)


def test_raw_texture_with_full_mip_chain():
    data = bytes(range(21))
    stream = stream_of(stream_texture_header(4, 4, V3Format.L8 | HAS_MIPMAPS) + data)
    image = read_stream_texture(stream).image
    assert image.has_mipmaps
    assert image.data == data


def test_v3_formats_after_pvrtc_are_renumbered():
    stream = stream_of(stream_texture_header(4, 4, V3Format.ETC) + bytes(8))
    assert read_stream_texture(stream).image.format is V4Format.ETC


def test_short_mip_chain_is_zero_filled(caplog):
    total = image_data_size(4, 4, V4Format.RGBA8, True)
    data = bytes([0xEE]) * (total - 10)
    stream = stream_of(stream_texture_header(4, 4, V3Format.RGBA8 | HAS_MIPMAPS) + data)
    with caplog.at_level(logging.WARNING, logger="texcompat.stream_texture"):
        image = read_stream_texture(stream).image
    assert len(image.data) == total
    assert image.data[:-10] == data
    assert image.data[-10:] == bytes(10)
    assert "10 bytes short" in caplog.text


def test_short_texture_without_mipmaps_is_corrupt():
    stream = stream_of(stream_texture_header(2, 2, V3Format.RGBA8) + bytes(15))
    with pytest.raises(FileCorrupt):
        read_stream_texture(stream)


def test_raw_size_limit_skips_large_levels():
    # 8x8 + 4x4 + 2x2 + 1x1
    data = bytes([1]) * 64 + bytes([2]) * 16 + bytes([3]) * 4 + bytes([4])
    stream = stream_of(stream_texture_header(8, 8, V3Format.L8 | HAS_MIPMAPS) + data)
    image = read_stream_texture(stream, size_limit=2).image
    assert (image.width, image.height) == (2, 2)
    assert image.data == bytes([3, 3, 3, 3, 4])


def test_raw_size_limit_ignored_without_mipmaps():
    data = bytes(64)
    stream = stream_of(stream_texture_header(8, 8, V3Format.L8) + data)
    image = read_stream_texture(stream, size_limit=2).image
    assert (image.width, image.height) == (8, 8)


def test_deprecated_pvrtc_is_unsupported():
    stream = stream_of(stream_texture_header(4, 4, V3Format.PVRTC4) + bytes(8))
    with pytest.raises(UnsupportedFormat, match="PVRTC4"):
        read_stream_texture(stream)


def test_invalid_format_is_corrupt():
    stream = stream_of(stream_texture_header(4, 4, 60) + bytes(8))
    with pytest.raises(FileCorrupt):
        read_stream_texture(stream)


def test_magic_mismatch_is_corrupt():
    stream = stream_of(stream_texture_header(2, 2, V3Format.L8, magic=b"GDSX") + bytes(4))
    with pytest.raises(FileCorrupt, match="magic"):
        read_stream_texture(stream)


def test_lossless_single_mip(hooks):
    blob = png_bytes("RGB", (2, 2), (5, 6, 7))
    stream = stream_of(stream_texture_header(2, 2, LOSSLESS) + _compressed_chain([blob]))
    texture = read_stream_texture(stream, hooks)
    assert texture.header.is_lossless
    assert texture.image == ImageBuffer(2, 2, V4Format.RGB8, bytes([5, 6, 7]) * 4)


def test_lossless_mip_chain_is_concatenated(hooks):
    blobs = [png_bytes("L", size, value) for size, value in (((4, 4), 1), ((2, 2), 2), ((1, 1), 3))]
    stream = stream_of(stream_texture_header(4, 4, LOSSLESS) + _compressed_chain(blobs))
    image = read_stream_texture(stream, hooks).image
    assert image.has_mipmaps
    assert image.data == bytes([1]) * 16 + bytes([2]) * 4 + bytes([3])


def test_compressed_size_limit_skips_leading_blobs(hooks):
    blobs = [png_bytes("L", size, value) for size, value in (((4, 4), 1), ((2, 2), 2), ((1, 1), 3))]
    stream = stream_of(stream_texture_header(4, 4, LOSSLESS) + _compressed_chain(blobs))
    image = read_stream_texture(stream, hooks, size_limit=2).image
    assert (image.width, image.height) == (2, 2)
    assert image.data == bytes([2, 2, 2, 2, 3])


def test_lossy_texture_uses_webp_hook(hooks):
    blob = b"WEBP" + webp_bytes("RGBA", (2, 2), (9, 8, 7, 200))
    stream = stream_of(stream_texture_header(2, 2, LOSSY) + _compressed_chain([blob]))
    image = read_stream_texture(stream, hooks).image
    assert image.format is V4Format.RGBA8
    assert image.data[:4] == bytes([9, 8, 7, 200])


def test_compressed_without_hook_is_unavailable():
    stream = stream_of(stream_texture_header(2, 2, LOSSY) + _compressed_chain([b"WEBPxxxx"]))
    with pytest.raises(Unavailable):
        read_stream_texture(stream, NO_HOOKS)


def test_undecodable_mip_is_corrupt(hooks):
    stream = stream_of(stream_texture_header(2, 2, LOSSLESS) + _compressed_chain([b"garbage!"]))
    with pytest.raises(FileCorrupt):
        read_stream_texture(stream, hooks)


def test_opaque_mip_is_converted_to_first_mip_format(hooks):
    blobs = [png_bytes("RGBA", (2, 2), (1, 2, 3, 4)), png_bytes("RGB", (1, 1), (5, 6, 7))]
    stream = stream_of(stream_texture_header(2, 2, LOSSLESS) + _compressed_chain(blobs))
    image = read_stream_texture(stream, hooks).image
    assert image.format is V4Format.RGBA8
    assert image.has_mipmaps
    assert image.data == bytes([1, 2, 3, 4]) * 4 + bytes([5, 6, 7, 255])


def test_write_raw_round_trip():
    image = ImageBuffer(4, 4, V4Format.DXT5, bytes(range(16)) + bytes(32), True)
    buf = io.BytesIO()
    write_stream_texture(ByteStream(buf), image, flags=3)
    texture = read_stream_texture(stream_of(buf.getvalue()))
    assert texture.header.flags == 3
    assert texture.header.has_mipmaps
    assert texture.image == image


def test_write_uses_v3_numbering():
    image = ImageBuffer(4, 4, V4Format.ETC2_RGBA8, bytes(16))
    buf = io.BytesIO()
    write_stream_texture(ByteStream(buf), image)
    header = read_stream_texture(stream_of(buf.getvalue())).header
    assert header.v3_format == V3Format.ETC2_RGBA8


def test_write_lossless_round_trip(hooks):
    image = ImageBuffer(3, 3, V4Format.RGBA8, bytes(range(36)))
    buf = io.BytesIO()
    write_stream_texture(ByteStream(buf), image, lossless=True, hooks=hooks)
    texture = read_stream_texture(stream_of(buf.getvalue()), hooks)
    assert texture.header.is_lossless
    assert texture.image == image


def test_write_rejects_formats_unknown_to_v3():
    image = ImageBuffer(4, 4, V4Format.DXT5_RA_AS_RG, bytes(16))
    with pytest.raises(UnsupportedFormat):
        write_stream_texture(ByteStream(io.BytesIO()), image)


def test_write_rejects_empty_and_lossless_without_packer():
    with pytest.raises(InvalidParameter):
        write_stream_texture(ByteStream(io.BytesIO()), ImageBuffer.empty())
    with pytest.raises(Unavailable):
        write_stream_texture(ByteStream(io.BytesIO()), ImageBuffer(1, 1, V4Format.L8, b"\x00"),
                             lossless=True, hooks=NO_HOOKS)


@pytest.mark.parametrize("magic, extension, expected", [
    (b"GDST", "", TextureVersionType.V3_STREAM_TEXTURE_2D),
    (b"GD3T", "", TextureVersionType.V3_STREAM_TEXTURE_3D),
    (b"GDAT", "", TextureVersionType.V3_STREAM_TEXTURE_ARRAY),
    (b"GST2", "", TextureVersionType.V4_COMPRESSED_TEXTURE_2D),
    (b"GSTL", ".ctexarray", TextureVersionType.V4_COMPRESSED_TEXTURE_LAYERED),
    (b"GSTL", "ccube", TextureVersionType.V4_COMPRESSED_TEXTURE_LAYERED),
    (b"GSTL", ".ctex3d", TextureVersionType.V4_COMPRESSED_TEXTURE_3D),
    (b"RSRC", "", TextureVersionType.BINARY_RESOURCE),
    (b"RSCC", "", TextureVersionType.BINARY_RESOURCE),
    (b"\x89PNG", "", TextureVersionType.NOT_TEXTURE),
    (b"GD", "", TextureVersionType.NOT_TEXTURE),
])
def test_recognize_texture(magic, extension, expected):
    assert recognize_texture(magic, extension) is expected


def test_recognize_texture_file(tmp_path):
    path = tmp_path / "icon.stex"
    path.write_bytes(stream_texture_header(1, 1, V3Format.L8) + b"\x00")
    assert recognize_texture_file(path) is TextureVersionType.V3_STREAM_TEXTURE_2D

    layered = tmp_path / "sky.ccubearray"
    layered.write_bytes(b"GSTL" + bytes(12))
    assert recognize_texture_file(layered) is TextureVersionType.V4_COMPRESSED_TEXTURE_LAYERED


def _layered_header(magic, width, height, depth, flags, v3_format, compression):
    return magic + u32(width, height, depth, flags, v3_format, compression)


def test_layered_uncompressed():
    data = _layered_header(b"GDAT", 2, 2, 2, 0, V3Format.L8, 2) + bytes([1] * 4) + bytes([2] * 4)
    texture = read_layered_texture_v3(stream_of(data))
    assert texture.depth == 2
    assert texture.format is V4Format.L8
    assert [layer.data for layer in texture.layers] == [bytes([1] * 4), bytes([2] * 4)]
    assert not texture.has_mipmaps


def test_layered_uncompressed_with_mipmap_flag():
    data = _layered_header(b"GD3T", 2, 2, 1, 1, V3Format.L8, 1) + bytes(5)
    texture = read_layered_texture_v3(stream_of(data))
    assert texture.layers[0].has_mipmaps


def test_layered_lossless(hooks):
    layer = png_bytes("L", (2, 2), 9)
    data = _layered_header(b"GD3T", 2, 2, 1, 0, V3Format.L8, 0) + u32(1, len(layer)) + layer
    texture = read_layered_texture_v3(stream_of(data), hooks)
    assert texture.layers == [ImageBuffer(2, 2, V4Format.L8, bytes([9] * 4))]


def test_layered_lossless_format_mismatch_is_corrupt(hooks):
    layer = png_bytes("RGB", (2, 2), (1, 2, 3))
    data = _layered_header(b"GD3T", 2, 2, 1, 0, V3Format.L8, 0) + u32(1, len(layer)) + layer
    with pytest.raises(FileCorrupt):
        read_layered_texture_v3(stream_of(data), hooks)


def test_layered_short_layer_is_corrupt():
    data = _layered_header(b"GDAT", 2, 2, 2, 0, V3Format.L8, 2) + bytes(6)
    with pytest.raises(FileCorrupt):
        read_layered_texture_v3(stream_of(data))


def test_layered_bad_magic_and_format():
    with pytest.raises(FileCorrupt):
        read_layered_texture_v3(stream_of(_layered_header(b"GDST", 1, 1, 1, 0, 0, 2)))
    with pytest.raises(FileCorrupt):
        read_layered_texture_v3(stream_of(_layered_header(b"GDAT", 1, 1, 1, 0, V3Format.PVRTC2, 2)))
