import pytest

from texcompat.errors import FileCorrupt, InvalidParameter
from texcompat.format_enums import V2Format, V4Format
from texcompat.palette import expand_indexed, expand_intensity, expand_palette


def test_indexed_expansion_example():
    data = bytes([1, 0]) + bytes([10, 20, 30, 40, 50, 60])
    image = expand_indexed(data, 2, 1, V2Format.INDEXED)
    assert image.format is V4Format.RGB8
    assert (image.width, image.height) == (2, 1)
    assert image.data == bytes([40, 50, 60, 10, 20, 30])


def test_indexed_alpha_expansion():
    data = bytes([0, 1, 1, 0]) + bytes([1, 2, 3, 4, 5, 6, 7, 8])
    image = expand_indexed(data, 2, 2, V2Format.INDEXED_ALPHA)
    assert image.format is V4Format.RGBA8
    assert image.data == bytes([1, 2, 3, 4, 5, 6, 7, 8, 5, 6, 7, 8, 1, 2, 3, 4])


def test_full_256_entry_palette():
    palette = b"".join(bytes([i, 255 - i, i // 2]) for i in range(256))
    data = bytes([0, 255, 128, 7]) + palette
    pixels = expand_palette(data, 4, 1, 3)
    assert pixels == bytes([0, 255, 0, 255, 0, 127, 128, 127, 64, 7, 248, 3])


def test_trailing_partial_entry_is_ignored():
    data = bytes([0]) + bytes([9, 8, 7]) + bytes([1, 2])
    assert expand_palette(data, 1, 1, 3) == bytes([9, 8, 7])


def test_index_out_of_range():
    data = bytes([2, 0]) + bytes([10, 20, 30, 40, 50, 60])
    with pytest.raises(FileCorrupt, match="index 2"):
        expand_indexed(data, 2, 1, V2Format.INDEXED)


def test_payload_shorter_than_index_plane():
    with pytest.raises(FileCorrupt):
        expand_indexed(bytes([0, 0, 0]), 2, 2, V2Format.INDEXED)


def test_missing_palette():
    with pytest.raises(FileCorrupt):
        expand_indexed(bytes([0, 0]), 2, 1, V2Format.INDEXED)


def test_intensity_expands_to_white_with_alpha():
    assert expand_intensity(bytes([0, 128])) == bytes([255, 255, 255, 0, 255, 255, 255, 128])

    image = expand_indexed(bytes([10, 20, 30, 40]), 2, 2, V2Format.INTENSITY)
    assert image.format is V4Format.RGBA8
    assert image.data[3::4] == bytes([10, 20, 30, 40])
    assert set(image.data[0::4]) == {255}


def test_non_indexed_format_is_rejected():
    with pytest.raises(InvalidParameter):
        expand_indexed(bytes(4), 2, 2, V2Format.RGBA)


def test_indexed_with_mipmaps_fails_size_check():
    data = bytes([0, 0, 0, 0]) + bytes([1, 2, 3])
    with pytest.raises(FileCorrupt):
        expand_indexed(data, 2, 2, V2Format.INDEXED, has_mipmaps=True)
