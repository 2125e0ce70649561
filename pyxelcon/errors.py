"""
Exception types raised by the conversion pipeline.

The CLI turns these into log messages and exit codes; library code only
raises them.
"""

from pathlib import Path
from typing import Optional, Union


class ConversionError(Exception):
    """Base class for every failure the converter reports to the user."""


class InputNotFoundError(ConversionError):
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(f"{self.path} does not exist!")


class MissingMetadataError(ConversionError):
    def __init__(self, entry_name: str, archive: Optional[Union[str, Path]] = None):
        self.entry_name = entry_name
        self.archive = archive
        where = f" in {archive}" if archive else ""
        super().__init__(f"{entry_name} missing{where}!")


class MalformedMetadataError(ConversionError):
    """A required metadata field is absent, has the wrong type or an invalid value."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Malformed metadata field '{field}': {reason}")


class DataIntegrityError(ConversionError):
    """A tile reference points outside its layer's cell range."""

    def __init__(self, layer: str, key, reason: str = "outside the layer grid"):
        self.layer = layer
        self.key = key
        super().__init__(f"Layer '{layer}': tile reference key {key!r} is {reason}")


class LayerEncodingError(ConversionError):
    def __init__(self, layer: str, cause: Exception):
        self.layer = layer
        self.cause = cause
        super().__init__(f"Failed to encode layer '{layer}': {cause}")


class OutputWriteError(ConversionError):
    def __init__(self, path: Union[str, Path], cause: Exception):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Could not write {self.path}: {cause}")


class TilesetCompositionError(ConversionError):
    """The tileset image could not be produced. Never rolls back the map document."""
