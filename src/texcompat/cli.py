"""
texcompat - inspect and convert legacy texture containers.

Reads V3 stream textures (GDST), V3 layered textures (GD3T/GDAT) and raw
tagged V2 image payloads, exports their base level as PNG or as a text
construct, and packs PNG files back into tagged V2 image payloads.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .byte_stream import ByteStream
from .errors import TextureCompatError
from .image_buffer import ImageBuffer
from .image_codec import decode_image, encode_image
from .settings import CompatSettings, load_settings
from .single_image import png_pack, png_unpack
from .file_scanner import FileScanner
from .stream_texture import (
    TextureVersionType,
    load_layered_texture_v3,
    load_stream_texture,
    recognize_texture_file,
)
from .text_construct import serialize
from .utils import describe_geometry, format_size

logger = logging.getLogger(__name__)

LAYERED_KINDS = (
    TextureVersionType.V3_STREAM_TEXTURE_3D,
    TextureVersionType.V3_STREAM_TEXTURE_ARRAY,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="texcompat",
        description="Inspect and convert legacy texture containers.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show header fields and decoded geometry:
  texcompat info icon.stex

  # Export the base level of a stream texture, dropping mips above 512px:
  texcompat convert icon.stex icon.png --size-limit 512

  # Export a raw tagged image payload cut out of a binary resource:
  texcompat convert image.bin image.png --image-payload

  # List texture containers under a project, skipping imported copies:
  texcompat scan path/to/project --blacklist .import

  # Print an image in the project config text form:
  texcompat text icon.stex --pcfg

  # Pack a PNG as a losslessly compressed V2 image payload:
  texcompat pack icon.png image.bin --lossless
"""
    )
    parser.add_argument('--settings', metavar='FILE', help='Load settings from a JSON file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Show debug output')

    sub = parser.add_subparsers(dest='command', required=True)

    info = sub.add_parser('info', help='Describe a texture container')
    info.add_argument('file', help='Texture file')

    convert = sub.add_parser('convert', help='Export the base level as PNG')
    convert.add_argument('file', help='Texture file')
    convert.add_argument('output', help='PNG file to write')
    convert.add_argument('--size-limit', type=int, metavar='N',
                         help='Skip mip levels larger than N pixels (overrides settings)')
    convert.add_argument('--image-payload', action='store_true',
                         help='Input is a tagged V2 image payload, not a container')

    scan = sub.add_parser('scan', help='List texture containers in a directory')
    scan.add_argument('directory', help='Directory to search')
    scan.add_argument('--whitelist', nargs='*', metavar='PART', help='Path components that must be present')
    scan.add_argument('--blacklist', nargs='*', metavar='PART', help='Path components to exclude')

    text = sub.add_parser('text', help='Print an image as an Image( ... ) construct')
    text.add_argument('file', help='Texture file')
    text.add_argument('--image-payload', action='store_true',
                      help='Input is a tagged V2 image payload, not a container')
    text.add_argument('--pcfg', action='store_true', default=None,
                      help='Use the project config dialect (overrides settings)')

    pack = sub.add_parser('pack', help='Write a PNG as a tagged V2 image payload')
    pack.add_argument('file', help='PNG file')
    pack.add_argument('output', help='Payload file to write')
    pack.add_argument('--lossless', action='store_true', default=None,
                      help='Store a PNG blob instead of raw pixels (overrides settings)')

    return parser


def read_image_payload(path: Path, settings: CompatSettings) -> ImageBuffer:
    with open(path, 'rb') as f:
        return decode_image(ByteStream(f), settings.hooks(), settings.convert_indexed)


def cmd_info(args, settings: CompatSettings) -> int:
    path = Path(args.file)
    kind = recognize_texture_file(path)
    print(f"{path}: {kind.value}")

    if kind is TextureVersionType.V3_STREAM_TEXTURE_2D:
        texture = load_stream_texture(path, settings.hooks(), settings.size_limit)
        header = texture.header
        image = texture.image
        print(f"  Header size:  {header.width}x{header.height} "
              f"(custom {header.custom_width}x{header.custom_height})")
        print(f"  Flags:        0x{header.flags:08x}")
        print(f"  Data format:  0x{header.data_format:08x} ({header.encoding_name})")
        print(f"  Image:        {describe_geometry(image.width, image.height, image.format, image.has_mipmaps)}")
    elif kind in LAYERED_KINDS:
        texture = load_layered_texture_v3(path, settings.hooks())
        print(f"  Layers:       {texture.depth}")
        print(f"  Layer:        {describe_geometry(texture.width, texture.height, texture.format, texture.has_mipmaps)}")
    else:
        print(f"  File size:    {format_size(path.stat().st_size)}")
    return 0


def load_image(path: Path, image_payload: bool, settings: CompatSettings,
               size_limit: int) -> Optional[ImageBuffer]:
    """Decode the input of convert/text; None when the container kind can't be converted"""
    if image_payload:
        return read_image_payload(path, settings)

    kind = recognize_texture_file(path)
    if kind is not TextureVersionType.V3_STREAM_TEXTURE_2D:
        logger.error("%s is a %s; only V3 stream textures can be converted", path, kind.value)
        return None
    return load_stream_texture(path, settings.hooks(), size_limit).image


def cmd_convert(args, settings: CompatSettings) -> int:
    path = Path(args.file)
    size_limit = settings.size_limit if args.size_limit is None else args.size_limit

    image = load_image(path, args.image_payload, settings, size_limit)
    if image is None:
        return 1
    if image.is_empty:
        logger.error("%s holds an empty image", path)
        return 1

    output = Path(args.output)
    with open(output, 'wb') as f:
        f.write(png_pack(image))
    print(f"Wrote {output} ({image.width}x{image.height} {image.format_name}, "
          f"{format_size(output.stat().st_size)})")
    return 0


def cmd_text(args, settings: CompatSettings) -> int:
    image = load_image(Path(args.file), args.image_payload, settings, settings.size_limit)
    if image is None:
        return 1
    pcfg = settings.pcfg_style if args.pcfg is None else args.pcfg
    print(serialize(image, pcfg))
    return 0


def cmd_pack(args, settings: CompatSettings) -> int:
    path = Path(args.file)
    image = png_unpack(path.read_bytes())
    if image is None:
        logger.error("%s is not a readable PNG", path)
        return 1

    lossless = settings.compress_lossless if args.lossless is None else args.lossless
    output = Path(args.output)
    with open(output, 'wb') as f:
        tag = encode_image(ByteStream(f), image, settings.hooks(), lossless)
    print(f"Wrote {output} ({image.width}x{image.height} {image.format_name}, "
          f"{tag.name.lower()}, {format_size(output.stat().st_size)})")
    return 0


def cmd_scan(args, settings: CompatSettings) -> int:
    whitelist = settings.path_whitelist if args.whitelist is None else args.whitelist
    blacklist = settings.path_blacklist if args.blacklist is None else args.blacklist
    scanner = FileScanner(whitelist, blacklist)

    root = Path(args.directory)
    textures = scanner.find_textures(root)
    for path, kind in textures.items():
        print(f"{path.relative_to(root)}: {kind.value}")
    print(f"\n{len(textures)} texture container(s) found")
    return 0


COMMANDS = {
    'info': cmd_info,
    'convert': cmd_convert,
    'scan': cmd_scan,
    'text': cmd_text,
    'pack': cmd_pack,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.settings) if args.settings else CompatSettings()
        return COMMANDS[args.command](args, settings)
    except (TextureCompatError, OSError, ValueError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
