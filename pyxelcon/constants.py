"""
Constants for the PyxelEdit and Tiled formats.

Keeps entry names, file names and bit layouts in one place so the
converter modules don't carry magic numbers.
"""

import re

# PyxelEdit archive layout
METADATA_ENTRY = "docData.json"
TILE_IMAGE_PATTERN = re.compile(r"^tile(\d+)(\.png)$")
TILE_ORDINAL_WIDTH = 8  # 00000001.png .. sorts lexicographically == numerically

# PyxelEdit layer defaults
DEFAULT_ALPHA = 255
MAX_ROTATION = 3

# Output files
OUTPUT_EXTENSION = ".tmx"
TILESET_IMAGE_NAME = "tileset.png"
TILESET_IMAGE_SOURCE = f"./{TILESET_IMAGE_NAME}"
TILESET_NAME = "tiles"
FIRST_GID = 1

# Fixed <map> attributes
TMX_MAP_OPTIONS = {
    "version": "1.4",
    "tiledversion": "1.4.1",
    "orientation": "orthogonal",
    "renderorder": "right-down",
}

# Tiled GID flag bits (top byte of the 32-bit tile value)
FLIPPED_HORIZONTALLY_FLAG = 0x80000000
FLIPPED_VERTICALLY_FLAG = 0x40000000
FLIPPED_DIAGONALLY_FLAG = 0x20000000
GID_MASK = 0x1FFFFFFF

# Layer data encoding
LAYER_ENCODING = "base64"
LAYER_COMPRESSION = "zlib"
