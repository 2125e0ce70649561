"""
PyxelEdit project document - data model and docData.json parser.

docData.json looks like:

    {
      "canvas": {
        "width": 64, "height": 64, "tileWidth": 32, "tileHeight": 32,
        "numLayers": 1,
        "layers": {
          "0": {"name": "Layer 0", "alpha": 255, "hidden": false,
                "tileRefs": {"0": {"index": 5, "rot": 0, "flipX": false}}}
        }
      },
      "tileset": {"tileWidth": 32, "tileHeight": 32, "numTiles": 6, "tilesWide": 8}
    }

tileRefs keys are linear row-major cell offsets in tile units; cells without
a key are empty.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .constants import DEFAULT_ALPHA, GID_MASK, MAX_ROTATION
from .errors import DataIntegrityError, MalformedMetadataError
from .logging_config import get_logger

logger = get_logger('document')


@dataclass(frozen=True)
class TileRef:
    """One placed tile: tileset index plus orientation."""
    index: int
    rot: int = 0        # quarter turns, 0-3
    flip_x: bool = False


@dataclass
class Layer:
    name: str
    alpha: int = DEFAULT_ALPHA
    hidden: bool = False
    tile_refs: Dict[int, TileRef] = field(default_factory=dict)

    @property
    def opacity(self) -> float:
        """Alpha byte (0-255) as Tiled opacity (0.0-1.0)."""
        return self.alpha / 255


@dataclass
class Canvas:
    width: int
    height: int
    layers: List[Layer] = field(default_factory=list)
    num_layers: int = 0


@dataclass
class Tileset:
    tile_width: int
    tile_height: int
    num_tiles: int
    tiles_wide: int


@dataclass
class ProjectDocument:
    canvas: Canvas
    tileset: Tileset

    @property
    def grid_width(self) -> int:
        """Map width in tiles."""
        return self.canvas.width // self.tileset.tile_width

    @property
    def grid_height(self) -> int:
        """Map height in tiles."""
        return self.canvas.height // self.tileset.tile_height


def _require_int(container: Dict[str, Any], key: str, path: str, minimum: int = 1) -> int:
    if key not in container or container[key] is None:
        raise MalformedMetadataError(path, "missing")
    value = container[key]
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        else:
            raise MalformedMetadataError(path, f"expected an integer, got {value!r}")
    if value < minimum:
        raise MalformedMetadataError(path, f"must be >= {minimum}, got {value}")
    return value


def _require_section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    section = data.get(key)
    if not isinstance(section, dict):
        raise MalformedMetadataError(key, "missing")
    return section


def _optional_bool(raw: Dict[str, Any], key: str, path: str) -> bool:
    value = raw.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise MalformedMetadataError(path, f"expected true or false, got {value!r}")
    return value


def _parse_tile_ref(raw: Any, path: str) -> TileRef:
    if not isinstance(raw, dict):
        raise MalformedMetadataError(path, f"expected an object, got {raw!r}")
    index = _require_int(raw, "index", f"{path}.index", minimum=-GID_MASK)
    if index >= GID_MASK:
        raise MalformedMetadataError(f"{path}.index", f"{index} does not fit a Tiled GID")
    rot = raw.get("rot", 0)
    if isinstance(rot, bool) or not isinstance(rot, int) or not 0 <= rot <= MAX_ROTATION:
        raise MalformedMetadataError(f"{path}.rot", f"expected 0-{MAX_ROTATION}, got {rot!r}")
    return TileRef(index=index, rot=rot, flip_x=_optional_bool(raw, "flipX", f"{path}.flipX"))


def _parse_layer(raw: Any, position: int, path: str) -> Layer:
    if not isinstance(raw, dict):
        raise MalformedMetadataError(path, f"expected an object, got {raw!r}")

    name = str(raw.get("name") or f"Layer {position}")
    alpha = raw.get("alpha", DEFAULT_ALPHA)
    if isinstance(alpha, float) and alpha.is_integer():
        alpha = int(alpha)
    if isinstance(alpha, bool) or not isinstance(alpha, int) or not 0 <= alpha <= 255:
        raise MalformedMetadataError(f"{path}.alpha", f"expected an integer 0-255, got {alpha!r}")

    raw_refs = raw.get("tileRefs") or {}
    if not isinstance(raw_refs, dict):
        raise MalformedMetadataError(f"{path}.tileRefs", "expected an object")

    tile_refs: Dict[int, TileRef] = {}
    for key, ref in raw_refs.items():
        try:
            cell = int(key)
        except (TypeError, ValueError):
            raise DataIntegrityError(name, key, "not a cell offset") from None
        tile_refs[cell] = _parse_tile_ref(ref, f"{path}.tileRefs.{key}")

    return Layer(
        name=name,
        alpha=alpha,
        hidden=_optional_bool(raw, "hidden", f"{path}.hidden"),
        tile_refs=tile_refs,
    )


def _ordered_layers(raw_layers: Any) -> List[Any]:
    """Return raw layers in source order; object keys are positions ("0", "1", ...)."""
    if raw_layers is None:
        return []
    if isinstance(raw_layers, list):
        return raw_layers
    if not isinstance(raw_layers, dict):
        raise MalformedMetadataError("canvas.layers", "expected an object or a list")

    def position(key: str) -> int:
        try:
            return int(key)
        except ValueError:
            raise MalformedMetadataError("canvas.layers", f"layer key {key!r} is not a position") from None

    return [raw_layers[key] for key in sorted(raw_layers, key=position)]


def parse_document(raw: Union[bytes, str, Dict[str, Any]]) -> ProjectDocument:
    """
    Parse docData.json into a ProjectDocument.

    Args:
        raw: Entry bytes, decoded text, or an already-loaded dict

    Returns:
        Validated ProjectDocument

    Raises:
        MalformedMetadataError: JSON is invalid, or a geometry field is absent,
            zero, or gives a non-integer grid size
        DataIntegrityError: A tileRefs key is not a cell offset
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedMetadataError("docData.json", f"not UTF-8 text ({e})") from e
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedMetadataError("docData.json", f"invalid JSON ({e})") from e
    else:
        data = raw
    if not isinstance(data, dict):
        raise MalformedMetadataError("docData.json", "expected a JSON object")

    canvas_data = _require_section(data, "canvas")
    tileset_data = _require_section(data, "tileset")

    tileset = Tileset(
        tile_width=_require_int(tileset_data, "tileWidth", "tileset.tileWidth"),
        tile_height=_require_int(tileset_data, "tileHeight", "tileset.tileHeight"),
        num_tiles=_require_int(tileset_data, "numTiles", "tileset.numTiles", minimum=0),
        tiles_wide=_require_int(tileset_data, "tilesWide", "tileset.tilesWide"),
    )

    width = _require_int(canvas_data, "width", "canvas.width")
    height = _require_int(canvas_data, "height", "canvas.height")
    if width % tileset.tile_width:
        raise MalformedMetadataError(
            "canvas.width", f"{width} is not a multiple of tile width {tileset.tile_width}"
        )
    if height % tileset.tile_height:
        raise MalformedMetadataError(
            "canvas.height", f"{height} is not a multiple of tile height {tileset.tile_height}"
        )

    layers = [
        _parse_layer(raw_layer, position, f"canvas.layers.{position}")
        for position, raw_layer in enumerate(_ordered_layers(canvas_data.get("layers")))
    ]

    num_layers: Optional[int] = canvas_data.get("numLayers")
    if isinstance(num_layers, bool) or not isinstance(num_layers, int) or num_layers < 0:
        num_layers = len(layers)
    elif num_layers != len(layers):
        logger.warning(f"numLayers is {num_layers} but {len(layers)} layers are present")

    document = ProjectDocument(
        canvas=Canvas(width=width, height=height, layers=layers, num_layers=num_layers),
        tileset=tileset,
    )
    logger.debug(
        f"Parsed document: {width}x{height}px canvas, "
        f"{document.grid_width}x{document.grid_height} tiles, {len(layers)} layers, "
        f"{tileset.num_tiles} tileset tiles"
    )
    return document
