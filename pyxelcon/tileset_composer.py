"""
Tileset composer - builds tileset.png from the extracted tile images.

Input is a directory of zero-padded tile images (00000000.png,
00000001.png, ...). Output is one RGBA image, tilesWide tiles per row,
sized exactly as declared by the TMX <image> element (see
tmx_writer.tileset_image_size); Tiled rejects tilesets whose image
geometry doesn't match.
"""

import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Type, Union

from PIL import Image, UnidentifiedImageError

from .document import Tileset
from .errors import TilesetCompositionError
from .logging_config import get_logger
from .tmx_writer import tileset_image_size

logger = get_logger('tileset_composer')


def find_tile_images(tile_dir: Union[str, Path]) -> List[Path]:
    """Tile images in ordinal order (zero padding makes name order numeric)."""
    return sorted(p for p in Path(tile_dir).glob('*.png') if p.stem.isdigit())


class TilesetComposer:
    """Base class: arrange tile images into a single tileset image."""

    name = "base"

    def compose(self, tile_dir: Union[str, Path], output_path: Union[str, Path], tileset: Tileset) -> Path:
        raise NotImplementedError


class PillowTilesetComposer(TilesetComposer):
    """
    Composes the tileset in-process with Pillow.

    Tile N goes to cell (N % tilesWide, N // tilesWide), so gaps in the
    numbering leave transparent cells instead of shifting later tiles.
    """

    name = "pillow"

    def compose(self, tile_dir: Union[str, Path], output_path: Union[str, Path], tileset: Tileset) -> Path:
        output_path = Path(output_path)
        tile_width, tile_height = tileset.tile_width, tileset.tile_height
        size = tileset_image_size(tileset)
        image = Image.new('RGBA', size, (0, 0, 0, 0))

        tiles = find_tile_images(tile_dir)
        for tile_path in tiles:
            ordinal = int(tile_path.stem)
            x = (ordinal % tileset.tiles_wide) * tile_width
            y = (ordinal // tileset.tiles_wide) * tile_height
            if y + tile_height > size[1]:
                raise TilesetCompositionError(
                    f"Tile {ordinal} does not fit the {size[0]}x{size[1]} tileset image"
                )

            try:
                with Image.open(tile_path) as tile:
                    tile = tile.convert('RGBA')
                    if tile.size != (tile_width, tile_height):
                        logger.debug(f"Resizing {tile_path.name} from {tile.size} to {tile_width}x{tile_height}")
                        tile = tile.resize((tile_width, tile_height), Image.Resampling.NEAREST)
                    image.paste(tile, (x, y))
            except (OSError, UnidentifiedImageError) as e:
                raise TilesetCompositionError(f"Could not read tile image {tile_path.name}: {e}") from e

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            image.save(output_path, 'PNG')
        except OSError as e:
            raise TilesetCompositionError(f"Could not write {output_path}: {e}") from e

        logger.info(f"Composed {len(tiles)} tiles into {output_path} ({size[0]}x{size[1]})")
        return output_path


class MontageTilesetComposer(TilesetComposer):
    """
    Composes the tileset with ImageMagick's montage, as PyxelEdit exporters
    traditionally did, then pads/crops the result to the declared size.
    """

    name = "montage"
    EXECUTABLE = "montage"

    def _find_executable(self) -> str:
        executable = shutil.which(self.EXECUTABLE)
        if not executable:
            raise TilesetCompositionError(
                "ImageMagick 'montage' not found. Install ImageMagick or use --composer pillow"
            )
        return executable

    def compose(self, tile_dir: Union[str, Path], output_path: Union[str, Path], tileset: Tileset) -> Path:
        output_path = Path(output_path)
        tiles = find_tile_images(tile_dir)
        if not tiles:
            raise TilesetCompositionError(f"No tile images in {tile_dir}")

        cmd = [
            self._find_executable(),
            *[str(p) for p in tiles],
            '-tile', f'{tileset.tiles_wide}x',
            '-geometry', f'{tileset.tile_width}x{tileset.tile_height}+0+0',
            '-background', 'none',
            str(output_path),
        ]
        logger.debug(f"Running {' '.join(cmd[:1] + cmd[-7:])}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise TilesetCompositionError(f"montage failed to start: {e}") from e
        if result.returncode != 0:
            raise TilesetCompositionError(f"montage failed: {result.stderr.strip()}")

        self._fit_to_declared_size(output_path, tileset)
        logger.info(f"Composed {len(tiles)} tiles into {output_path} with montage")
        return output_path

    @staticmethod
    def _fit_to_declared_size(output_path: Path, tileset: Tileset):
        size = tileset_image_size(tileset)
        try:
            with Image.open(output_path) as montage:
                if montage.size == size:
                    return
                logger.debug(f"Adjusting montage output from {montage.size} to {size}")
                canvas = Image.new('RGBA', size, (0, 0, 0, 0))
                canvas.paste(montage.convert('RGBA'), (0, 0))
            canvas.save(output_path, 'PNG')
        except (OSError, UnidentifiedImageError) as e:
            raise TilesetCompositionError(f"Could not adjust {output_path}: {e}") from e


COMPOSERS: Dict[str, Type[TilesetComposer]] = {
    PillowTilesetComposer.name: PillowTilesetComposer,
    MontageTilesetComposer.name: MontageTilesetComposer,
}


def get_composer(name: str) -> TilesetComposer:
    """Instantiate a composer by name ('pillow' or 'montage')."""
    try:
        return COMPOSERS[name]()
    except KeyError:
        raise ValueError(f"Unknown composer '{name}', expected one of {sorted(COMPOSERS)}") from None
