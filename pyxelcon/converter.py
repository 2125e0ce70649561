"""
Main converter - converts a PyxelEdit project to a Tiled map.

Pipeline:
1. Extract docData.json and the tile images into a scratch directory
2. Assemble the TMX document (layers rasterized and encoded in parallel)
3. Write the TMX file atomically
4. Compose tileset.png next to the TMX file

The scratch directory is removed on every exit path. A tileset composition
failure is reported on the result and never removes an already written map.
"""

import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .archive import extract_archive
from .constants import OUTPUT_EXTENSION, TILESET_IMAGE_NAME, TILESET_IMAGE_SOURCE
from .errors import InputNotFoundError, TilesetCompositionError
from .logging_config import get_logger
from .tileset_composer import PillowTilesetComposer, TilesetComposer
from .tmx_writer import assemble, write_tmx

logger = get_logger('converter')


def default_output_path(input_path: Union[str, Path]) -> Path:
    """<input base name>.tmx in the current directory."""
    return Path(Path(input_path).stem + OUTPUT_EXTENSION)


@dataclass
class ConversionResult:
    document_path: Path
    tileset_path: Path
    layer_count: int
    tile_count: int
    tileset_written: bool = False
    tileset_error: Optional[str] = None


class PyxelConverter:
    """Converts one .pyxel file to a .tmx map plus tileset image."""

    def __init__(
        self,
        input_path: Union[str, Path],
        output_path: Optional[Union[str, Path]] = None,
        composer: Optional[TilesetComposer] = None,
        index_zero_is_tile: bool = False,
        max_workers: Optional[int] = None
    ):
        self.input_path = Path(input_path)
        self.output_path = Path(output_path) if output_path else default_output_path(self.input_path)
        self.composer = composer or PillowTilesetComposer()
        self.index_zero_is_tile = index_zero_is_tile
        self.max_workers = max_workers

    @property
    def tileset_path(self) -> Path:
        # Sits next to the map so the relative <image source> resolves
        return self.output_path.parent / TILESET_IMAGE_NAME

    def convert(self) -> ConversionResult:
        """
        Run the conversion.

        Returns:
            ConversionResult describing what was written

        Raises:
            InputNotFoundError: Input file doesn't exist (nothing is created)
            ConversionError: Any failure before the map document is written
        """
        if not self.input_path.is_file():
            raise InputNotFoundError(self.input_path)

        logger.info(f"Converting {self.input_path} -> {self.output_path}")

        scratch = tempfile.TemporaryDirectory(prefix="pyxelcon_")
        try:
            return self._convert_in(Path(scratch.name))
        finally:
            try:
                scratch.cleanup()
            except OSError as e:
                logger.warning(f"Could not remove scratch directory {scratch.name}: {e}")

    def _convert_in(self, scratch_dir: Path) -> ConversionResult:
        extraction = extract_archive(self.input_path, scratch_dir, self.max_workers)
        document = extraction.document

        root = assemble(
            document,
            image_source=TILESET_IMAGE_SOURCE,
            index_zero_is_tile=self.index_zero_is_tile,
            max_workers=self.max_workers,
        )
        write_tmx(root, self.output_path)
        logger.info(f"Written tilemap file ({len(document.canvas.layers)} layers)")

        result = ConversionResult(
            document_path=self.output_path,
            tileset_path=self.tileset_path,
            layer_count=len(document.canvas.layers),
            tile_count=len(extraction.tile_images),
        )

        try:
            self.composer.compose(scratch_dir, self.tileset_path, document.tileset)
            result.tileset_written = True
            logger.info(f"Written tileset image {self.tileset_path}")
        except TilesetCompositionError as e:
            result.tileset_error = str(e)
            logger.error(f"Tileset image not written: {e}")

        return result
