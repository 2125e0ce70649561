"""
TMX writer - assembles the Tiled map document for a PyxelEdit project.

Output shape:

    <map version="1.4" tiledversion="1.4.1" orientation="orthogonal"
         renderorder="right-down" width=".." height=".." tilewidth=".."
         tileheight=".." infinite="0" nextlayerid="..">
      <tileset firstgid="1" name="tiles" tilewidth=".." tileheight=".."
               tilecount=".." columns="..">
        <image source="./tileset.png" width=".." height=".."/>
      </tileset>
      <layer id="0" name=".." width=".." height=".." visible="1" opacity="..">
        <data encoding="base64" compression="zlib">...</data>
      </layer>
      ...
    </map>

PyxelEdit lists layers top-most first while Tiled draws the first layer at
the bottom, so layers are emitted in reverse source order.
"""

import math
import os
import tempfile
import xml.etree.ElementTree as ET
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from .constants import (
    FIRST_GID,
    LAYER_COMPRESSION,
    LAYER_ENCODING,
    TILESET_IMAGE_SOURCE,
    TILESET_NAME,
    TMX_MAP_OPTIONS,
)
from .document import Layer, ProjectDocument, Tileset
from .errors import OutputWriteError
from .layer_encoder import encode_layer
from .layer_rasterizer import rasterize
from .logging_config import get_logger

logger = get_logger('tmx_writer')


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def tileset_image_size(tileset: Tileset) -> Tuple[int, int]:
    """
    Pixel size declared for the composed tileset image.

    The height keeps one spare row: (1 + round(numTiles / tilesWide)) rows.
    """
    width = tileset.tiles_wide * tileset.tile_width
    rows = 1 + round_half_up(tileset.num_tiles / tileset.tiles_wide)
    return width, rows * tileset.tile_height


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _encode_layer_data(layer: Layer, width: int, height: int, index_zero_is_tile: bool) -> str:
    grid = rasterize(layer, width, height, index_zero_is_tile)
    return encode_layer(grid, layer.name)


def encode_layers(
    document: ProjectDocument,
    index_zero_is_tile: bool = False,
    max_workers: Optional[int] = None
) -> Dict[int, str]:
    """
    Rasterize and encode every layer in parallel.

    Returns:
        Dict mapping source layer position -> encoded layer data

    Raises:
        DataIntegrityError / LayerEncodingError from the first failing layer
    """
    width, height = document.grid_width, document.grid_height
    layers = document.canvas.layers
    if not layers:
        return {}

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            position: executor.submit(_encode_layer_data, layer, width, height, index_zero_is_tile)
            for position, layer in enumerate(layers)
        }
        # Collected by position, not completion order
        return {position: future.result() for position, future in futures.items()}


def assemble(
    document: ProjectDocument,
    image_source: str = TILESET_IMAGE_SOURCE,
    index_zero_is_tile: bool = False,
    max_workers: Optional[int] = None
) -> ET.Element:
    """
    Build the <map> element for a parsed PyxelEdit document.

    All layers are encoded before any <layer> element is created, so a
    failing layer leaves nothing half-built.

    Args:
        document: Parsed project
        image_source: Tileset image path, relative to the TMX file
        index_zero_is_tile: Forwarded to the tile packer
        max_workers: Thread pool size for layer encoding

    Returns:
        Root <map> element
    """
    tileset = document.tileset
    width, height = document.grid_width, document.grid_height
    encoded = encode_layers(document, index_zero_is_tile, max_workers)

    root = ET.Element('map')
    for key, value in TMX_MAP_OPTIONS.items():
        root.set(key, value)
    root.set('width', str(width))
    root.set('height', str(height))
    root.set('tilewidth', str(tileset.tile_width))
    root.set('tileheight', str(tileset.tile_height))
    root.set('infinite', '0')
    root.set('nextlayerid', str(document.canvas.num_layers + 1))
    root.set('nextobjectid', '1')

    tileset_elem = ET.SubElement(root, 'tileset')
    tileset_elem.set('firstgid', str(FIRST_GID))
    tileset_elem.set('name', TILESET_NAME)
    tileset_elem.set('tilewidth', str(tileset.tile_width))
    tileset_elem.set('tileheight', str(tileset.tile_height))
    tileset_elem.set('tilecount', str(tileset.num_tiles))
    tileset_elem.set('columns', str(tileset.tiles_wide))

    image_width, image_height = tileset_image_size(tileset)
    image_elem = ET.SubElement(tileset_elem, 'image')
    image_elem.set('source', image_source)
    image_elem.set('width', str(image_width))
    image_elem.set('height', str(image_height))

    layers = document.canvas.layers
    for layer_id, position in enumerate(reversed(range(len(layers)))):
        layer = layers[position]
        layer_elem = ET.SubElement(root, 'layer')
        layer_elem.set('id', str(layer_id))
        layer_elem.set('name', layer.name)
        layer_elem.set('width', str(width))
        layer_elem.set('height', str(height))
        layer_elem.set('visible', '0' if layer.hidden else '1')
        layer_elem.set('opacity', _format_number(layer.opacity))

        data_elem = ET.SubElement(layer_elem, 'data')
        data_elem.set('encoding', LAYER_ENCODING)
        data_elem.set('compression', LAYER_COMPRESSION)
        data_elem.text = encoded[position]

    logger.debug(f"Assembled map: {width}x{height} tiles, {len(layers)} layers")
    return root


def _indent(elem: ET.Element, level: int = 0):
    """Pretty-print indentation, leaving text-only elements (layer data) on one line."""
    indent = "\n" + "  " * level

    if len(elem):
        if not elem.text or not elem.text.strip():
            elem.text = indent + "  "
        for child in elem:
            _indent(child, level + 1)
        if not child.tail or not child.tail.strip():
            child.tail = indent
    if level and (not elem.tail or not elem.tail.strip()):
        elem.tail = indent


def to_string(root: ET.Element) -> str:
    """Serialize a <map> element as an indented UTF-8 XML document."""
    _indent(root)
    body = ET.tostring(root, encoding='unicode')
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + body + '\n'


def write_tmx(root: ET.Element, output_path: Union[str, Path]) -> Path:
    """
    Write the map document in one step.

    The XML goes to a temporary file in the destination directory which
    then replaces the destination, so readers never see a partial file.

    Raises:
        OutputWriteError: The file couldn't be written
    """
    output_path = Path(output_path)
    try:
        # A lone surrogate in a layer name fails here, before any file exists
        payload = to_string(root).encode('utf-8')
    except UnicodeError as e:
        raise OutputWriteError(output_path, e) from e

    tmp_name = None
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{output_path.name}.", suffix=".tmp", dir=output_path.parent
        )
        with os.fdopen(fd, 'wb') as f:
            f.write(payload)
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, output_path)
        tmp_name = None
    except OSError as e:
        raise OutputWriteError(output_path, e) from e
    finally:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)

    logger.info(f"Wrote {output_path}")
    return output_path
