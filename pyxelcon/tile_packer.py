"""
Tile packer - PyxelEdit tile reference -> Tiled 32-bit GID.

PyxelEdit stores a tile as (index, rot, flipX). Tiled packs the 1-based tile
id in the low 29 bits and three flip flags in the top bits:

    bit 31: horizontal flip
    bit 30: vertical flip
    bit 29: diagonal flip (swap x/y)

A clockwise quarter turn is a diagonal flip followed by a horizontal flip,
so every (flipX, rot) pair maps to one fixed flag combination.
"""

from .constants import (
    FLIPPED_HORIZONTALLY_FLAG as H,
    FLIPPED_VERTICALLY_FLAG as V,
    FLIPPED_DIAGONALLY_FLAG as D,
)
from .document import TileRef

# FLIP_TABLE[flip_x][rot]
FLIP_TABLE = (
    (0, D | H, H | V, V | D),       # 0x00000000, 0xa0000000, 0xc0000000, 0x60000000
    (H, H | V | D, V, D),           # 0x80000000, 0xe0000000, 0x40000000, 0x20000000
)


def tile_ordinal(index: int, index_zero_is_tile: bool = False) -> int:
    """
    1-based Tiled tile id for a PyxelEdit tile index, 0 for an empty cell.

    By default index 0 counts as empty. With index_zero_is_tile, index 0 is
    the first tileset tile and only negative indices are empty.
    """
    if index > 0 or (index_zero_is_tile and index == 0):
        return index + 1
    return 0


def pack_tile(ref: TileRef, index_zero_is_tile: bool = False) -> int:
    """Pack a tile reference into a Tiled GID (ordinal | flip flags)."""
    return tile_ordinal(ref.index, index_zero_is_tile) | FLIP_TABLE[1 if ref.flip_x else 0][ref.rot]
