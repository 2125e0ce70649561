"""
Layer rasterizer - sparse tileRefs -> dense row-major GID grid.
"""

from typing import List

from .document import Layer
from .errors import DataIntegrityError
from .tile_packer import pack_tile


def rasterize(layer: Layer, width: int, height: int, index_zero_is_tile: bool = False) -> List[int]:
    """
    Build the dense tile grid for one layer.

    Args:
        layer: Source layer
        width: Map width in tiles
        height: Map height in tiles
        index_zero_is_tile: Forwarded to pack_tile

    Returns:
        width*height packed GIDs, row-major from the top-left cell; 0 = empty

    Raises:
        DataIntegrityError: A tileRefs key is outside [0, width*height)
    """
    size = width * height
    grid = [0] * size

    for key, ref in layer.tile_refs.items():
        if not 0 <= key < size:
            raise DataIntegrityError(layer.name, key, f"outside the {width}x{height} grid (max {size - 1})")
        grid[key] = pack_tile(ref, index_zero_is_tile)

    return grid
