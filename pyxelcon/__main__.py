"""
Main entry point for pyxelcon converter.
"""

import argparse
import sys
from pathlib import Path

from . import __version__
from .converter import PyxelConverter
from .errors import ConversionError
from .logging_config import setup_logging
from .tileset_composer import COMPOSERS, get_composer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pyxelcon",
        description="Convert PyxelEdit tile maps (*.pyxel) to Tiled format (*.tmx)",
        epilog="Examples: pyxelcon -f map.pyxel | pyxelcon -f map.pyxel -o output.tmx"
    )
    parser.add_argument(
        "-f", "--filename",
        required=True,
        help="Input PyxelEdit project file in *.pyxel format"
    )
    parser.add_argument(
        "-o", "--output",
        default=None,
        help="Custom filename for output *.tmx file (default: <input name>.tmx)"
    )
    parser.add_argument(
        "--composer",
        choices=sorted(COMPOSERS),
        default="pillow",
        help="How tileset.png is built: in-process with Pillow, or ImageMagick montage (default: pillow)"
    )
    parser.add_argument(
        "--index-zero-is-tile",
        action="store_true",
        help="Treat tile index 0 as the first tileset tile instead of an empty cell"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed progress information"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Show debug information (implies verbose)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logger = setup_logging(args.verbose, args.debug)
    logger.info(f"Pyxel -> Tmx converter v{__version__}")

    input_path = Path(args.filename)
    if not input_path.exists():
        logger.error(f"{input_path} does not exist!")
        return 1

    converter = PyxelConverter(
        input_path,
        args.output,
        composer=get_composer(args.composer),
        index_zero_is_tile=args.index_zero_is_tile,
    )

    try:
        result = converter.convert()
    except ConversionError as e:
        logger.error(str(e))
        return 1

    print(f"Written tilemap file: {result.document_path}")
    if not result.tileset_written:
        logger.error(f"Tilemap written but tileset image failed: {result.tileset_error}")
        return 2

    print(f"Written tileset image: {result.tileset_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
