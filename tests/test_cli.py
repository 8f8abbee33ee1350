import io
import json
import logging

import pytest
from PIL import Image

from helpers import raw_payload, stream_texture_header, u32
from texcompat.byte_stream import ByteStream
from texcompat.cli import build_parser, main
from texcompat.format_enums import V2Format, V3Format, V4Format
from texcompat.image_buffer import ImageBuffer
from texcompat.stream_texture import write_stream_texture


@pytest.fixture
def stex(tmp_path):
    # 4x4 + 2x2 + 1x1 grayscale chain
    image = ImageBuffer(4, 4, V4Format.L8, bytes([10]) * 16 + bytes([20]) * 4 + bytes([30]), True)
    buf = io.BytesIO()
    write_stream_texture(ByteStream(buf), image, flags=1)
    path = tmp_path / "icon.stex"
    path.write_bytes(buf.getvalue())
    return path


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_info_stream_texture(stex, capsys):
    assert main(["info", str(stex)]) == 0
    out = capsys.readouterr().out
    assert "V3 StreamTexture" in out
    assert "4x4 (custom 0x0)" in out
    assert "0x00000001" in out
    assert "4x4 L8 (uncompressed), mipmaps, 21.00 B" in out


def test_info_layered_texture(tmp_path, capsys):
    path = tmp_path / "volume.tex3d"
    path.write_bytes(b"GD3T" + u32(2, 2, 3, 0, V3Format.L8, 2) + bytes(12))
    assert main(["info", str(path)]) == 0
    out = capsys.readouterr().out
    assert "V3 StreamTexture3D" in out
    assert "Layers:       3" in out
    assert "2x2 L8 (uncompressed), 4.00 B" in out


def test_info_other_file(tmp_path, capsys):
    path = tmp_path / "level.res"
    path.write_bytes(b"RSRC" + bytes(4))
    assert main(["info", str(path)]) == 0
    out = capsys.readouterr().out
    assert "binary resource" in out
    assert "8.00 B" in out


def test_convert_stream_texture(stex, tmp_path, capsys):
    output = tmp_path / "icon.png"
    assert main(["convert", str(stex), str(output)]) == 0
    assert "Wrote" in capsys.readouterr().out
    with Image.open(output) as png:
        assert png.size == (4, 4)
        assert png.mode == "L"
        assert png.getpixel((0, 0)) == 10


def test_convert_with_size_limit(stex, tmp_path):
    output = tmp_path / "small.png"
    assert main(["convert", str(stex), str(output), "--size-limit", "2"]) == 0
    with Image.open(output) as png:
        assert png.size == (2, 2)
        assert png.getpixel((0, 0)) == 20


def test_convert_size_limit_from_settings(stex, tmp_path):
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"size_limit": 2}), encoding='utf-8')
    output = tmp_path / "small.png"
    assert main(["--settings", str(settings), "convert", str(stex), str(output)]) == 0
    with Image.open(output) as png:
        assert png.size == (2, 2)

    # An explicit limit of 0 overrides the settings file
    assert main(["--settings", str(settings), "convert", str(stex), str(output), "--size-limit", "0"]) == 0
    with Image.open(output) as png:
        assert png.size == (4, 4)


def test_convert_image_payload(tmp_path):
    payload = tmp_path / "image.bin"
    payload.write_bytes(raw_payload(1, 1, 0, V2Format.RGB, bytes([1, 2, 3])))
    output = tmp_path / "image.png"
    assert main(["convert", str(payload), str(output), "--image-payload"]) == 0
    with Image.open(output) as png:
        assert png.getpixel((0, 0)) == (1, 2, 3)


def test_convert_rejects_other_containers(tmp_path, caplog):
    path = tmp_path / "volume.tex3d"
    path.write_bytes(b"GD3T" + bytes(24))
    with caplog.at_level(logging.ERROR):
        assert main(["convert", str(path), str(tmp_path / "out.png")]) == 1
    assert "only V3 stream textures" in caplog.text


def test_convert_corrupt_texture_fails(tmp_path, caplog):
    path = tmp_path / "bad.stex"
    path.write_bytes(stream_texture_header(4, 4, V3Format.PVRTC4) + bytes(8))
    with caplog.at_level(logging.ERROR):
        assert main(["convert", str(path), str(tmp_path / "out.png")]) == 1
    assert "PVRTC4" in caplog.text


def test_missing_file_fails(tmp_path):
    assert main(["info", str(tmp_path / "missing.stex")]) == 1


def test_scan(stex, tmp_path, capsys):
    (tmp_path / ".import").mkdir()
    (tmp_path / ".import" / "copy.stex").write_bytes(stex.read_bytes())
    (tmp_path / "notes.tex").write_bytes(b"text")

    assert main(["scan", str(tmp_path), "--blacklist", ".import"]) == 0
    out = capsys.readouterr().out
    assert "icon.stex: V3 StreamTexture" in out
    assert "copy.stex" not in out
    assert "1 texture container(s) found" in out


def test_text_prints_construct(stex, capsys):
    assert main(["text", str(stex)]) == 0
    out = capsys.readouterr().out.strip()
    assert out.startswith("Image( 4, 4, 2, GRAYSCALE, 10, 10, ")
    assert out.endswith(", 20, 30 )")


def test_text_pcfg_from_settings(tmp_path, capsys):
    payload = tmp_path / "image.bin"
    payload.write_bytes(raw_payload(1, 1, 0, V2Format.RGBA, bytes([1, 2, 3, 4])))
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"pcfg_style": True}), encoding='utf-8')
    assert main(["--settings", str(settings), "text", str(payload), "--image-payload"]) == 0
    assert capsys.readouterr().out.strip() == "img( 1, 1, 0, rgba, 1, 2, 3, 4 )"


def test_pack_raw_and_lossless(tmp_path):
    png = tmp_path / "icon.png"
    Image.new("RGB", (2, 1), (5, 6, 7)).save(png)

    raw = tmp_path / "raw.bin"
    assert main(["pack", str(png), str(raw)]) == 0
    assert raw.read_bytes() == raw_payload(2, 1, 0, V2Format.RGB, bytes([5, 6, 7]) * 2)

    packed = tmp_path / "packed.bin"
    assert main(["pack", str(png), str(packed), "--lossless"]) == 0
    assert packed.read_bytes()[:4] == u32(2)

    output = tmp_path / "back.png"
    assert main(["convert", str(packed), str(output), "--image-payload"]) == 0
    with Image.open(output) as back:
        assert back.getpixel((1, 0)) == (5, 6, 7)


def test_pack_rejects_non_png(tmp_path, caplog):
    path = tmp_path / "notes.txt"
    path.write_bytes(b"hello")
    with caplog.at_level(logging.ERROR):
        assert main(["pack", str(path), str(tmp_path / "out.bin")]) == 1
    assert "not a readable PNG" in caplog.text
