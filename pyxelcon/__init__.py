"""
Pyxelcon - PyxelEdit to Tiled Converter

Converts PyxelEdit projects (zip archives with docData.json and per-tile
PNGs) to Tiled TMX maps with a generated tileset image.
"""

__version__ = "0.3.0"

from .converter import PyxelConverter, ConversionResult, default_output_path
from .errors import (
    ConversionError,
    InputNotFoundError,
    MissingMetadataError,
    MalformedMetadataError,
    DataIntegrityError,
    LayerEncodingError,
    OutputWriteError,
    TilesetCompositionError,
)
