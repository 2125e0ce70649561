"""Builders for small PyxelEdit projects used across the test modules."""

import io
import json
import zipfile
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from PIL import Image


def tile_ref(index: int, rot: int = 0, flip_x: bool = False) -> dict:
    return {"index": index, "rot": rot, "flipX": flip_x}


def layer_data(name: str, tile_refs: Optional[dict] = None, alpha: int = 255, hidden: bool = False) -> dict:
    return {
        "name": name,
        "alpha": alpha,
        "hidden": hidden,
        "blendMode": "normal",
        "tileRefs": tile_refs or {},
    }


def doc_data(
    layers: Iterable[dict] = (),
    width: int = 64,
    height: int = 64,
    tile_width: int = 32,
    tile_height: int = 32,
    num_tiles: int = 6,
    tiles_wide: int = 8
) -> dict:
    layers = list(layers)
    return {
        "name": "test",
        "canvas": {
            "width": width,
            "height": height,
            "tileWidth": tile_width,
            "tileHeight": tile_height,
            "numLayers": len(layers),
            "layers": {str(i): layer for i, layer in enumerate(layers)},
        },
        "tileset": {
            "tileWidth": tile_width,
            "tileHeight": tile_height,
            "numTiles": num_tiles,
            "tilesWide": tiles_wide,
            "fixedWidth": True,
        },
    }


def scenario_a_doc() -> dict:
    """64x64 canvas, 32x32 tiles, one half-transparent layer with tile 5 at cell 0."""
    return doc_data([layer_data("Layer 0", {"0": tile_ref(5)}, alpha=128)])


def png_bytes(size: Tuple[int, int] = (32, 32), color=(255, 0, 0, 255)) -> bytes:
    buffer = io.BytesIO()
    Image.new('RGBA', size, color).save(buffer, 'PNG')
    return buffer.getvalue()


def write_pyxel(
    path: Path,
    doc: Optional[dict] = None,
    tiles: Optional[Dict[int, bytes]] = None,
    extra_entries: Optional[Dict[str, bytes]] = None,
    tile_order: Optional[Iterable[int]] = None,
    compression: int = zipfile.ZIP_DEFLATED
) -> Path:
    """
    Write a .pyxel archive. Tile entries are written in tile_order (default:
    dict order) ahead of docData.json, like PyxelEdit does.
    """
    tiles = tiles or {}
    order = list(tile_order) if tile_order is not None else list(tiles)
    with zipfile.ZipFile(path, 'w', compression) as zf:
        for ordinal in order:
            zf.writestr(f"tile{ordinal}.png", tiles[ordinal])
        for name, data in (extra_entries or {}).items():
            zf.writestr(name, data)
        if doc is not None:
            zf.writestr("docData.json", json.dumps(doc))
    return path


def flip_byte(path: Path, marker: bytes) -> Path:
    """Corrupt an archive in place by changing the first byte of `marker`."""
    data = bytearray(path.read_bytes())
    offset = data.index(marker)
    data[offset] ^= 0xFF
    path.write_bytes(bytes(data))
    return path
