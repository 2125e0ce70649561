"""
Archive reader - walks a .pyxel zip and pulls out what the converter needs.

A .pyxel file is a zip archive containing:
- docData.json: canvas, layers and tileset description
- tile<N>.png: one image per tileset tile, N being the tile index
- layer<N>.png and other entries the converter doesn't use

Tile images are saved into the scratch directory as zero-padded ordinals
(tile7.png -> 00000007.png) so a plain filename sort gives tile order.
"""

import shutil
import zipfile
import zlib
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, List, Optional, Union

from .constants import METADATA_ENTRY, TILE_IMAGE_PATTERN, TILE_ORDINAL_WIDTH
from .document import ProjectDocument, parse_document
from .errors import ConversionError, MissingMetadataError
from .logging_config import get_logger

logger = get_logger('archive')

# What a damaged member raises while being inflated or CRC-checked
READ_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, OSError)


class ArchiveEntry:
    """One member of the archive, readable fully or streamed to a file."""

    def __init__(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo):
        self._archive = archive
        self.info = info

    @property
    def name(self) -> str:
        return self.info.filename

    def read(self) -> bytes:
        return self._archive.read(self.info)

    def stream_to(self, target: Path) -> Path:
        with self._archive.open(self.info) as src, open(target, 'wb') as dst:
            shutil.copyfileobj(src, dst)
        return target


class PyxelArchive:
    """Context manager over a .pyxel file yielding entries in archive order."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._zip: Optional[zipfile.ZipFile] = None

    def __enter__(self) -> 'PyxelArchive':
        try:
            self._zip = zipfile.ZipFile(self.path)
        except zipfile.BadZipFile as e:
            raise ConversionError(f"{self.path} is not a valid .pyxel archive: {e}") from e
        except OSError as e:
            raise ConversionError(f"Could not open {self.path}: {e}") from e
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    def entries(self) -> Iterator[ArchiveEntry]:
        if self._zip is None:
            raise RuntimeError("PyxelArchive must be used as a context manager")
        for info in self._zip.infolist():
            if info.is_dir():
                continue
            yield ArchiveEntry(self._zip, info)


def canonical_tile_name(entry_name: str) -> Optional[str]:
    """
    Scratch-directory name for a tile image entry.

    Args:
        entry_name: Archive member name (e.g. "tile12.png")

    Returns:
        Zero-padded name (e.g. "00000012.png"), or None if the entry is not a
        tile image
    """
    match = TILE_IMAGE_PATTERN.match(PurePosixPath(entry_name).name)
    if not match:
        return None
    digits, suffix = match.groups()
    return f"{int(digits):0{TILE_ORDINAL_WIDTH}d}{suffix}"


@dataclass
class ExtractionResult:
    document: ProjectDocument
    tile_images: List[Path] = field(default_factory=list)
    skipped_entries: int = 0


def extract_archive(
    archive_path: Union[str, Path],
    scratch_dir: Union[str, Path],
    max_workers: Optional[int] = None
) -> ExtractionResult:
    """
    Parse docData.json and save the tile images of a .pyxel archive.

    Entries are classified in archive order. Tile image writes run in a
    thread pool; all of them have finished when this returns.

    Args:
        archive_path: Path to the .pyxel file
        scratch_dir: Existing directory receiving the renamed tile images
        max_workers: Thread pool size (None = executor default)

    Returns:
        ExtractionResult with the parsed document and the sorted image paths

    Raises:
        MissingMetadataError: The archive has no docData.json
        ConversionError: The archive can't be read
        MalformedMetadataError / DataIntegrityError: docData.json is invalid
    """
    scratch_dir = Path(scratch_dir)
    document: Optional[ProjectDocument] = None
    pending: Dict[str, Future] = {}
    skipped = 0

    with PyxelArchive(archive_path) as archive, ThreadPoolExecutor(max_workers=max_workers) as executor:
        for entry in archive.entries():
            if entry.name == METADATA_ENTRY:
                if document is not None:
                    logger.warning(f"Duplicate {METADATA_ENTRY} in {archive_path}, keeping the first one")
                    continue
                logger.debug(f"Reading {entry.name}")
                try:
                    data = entry.read()
                except READ_ERRORS as e:
                    raise ConversionError(f"Could not read {entry.name} from {archive_path}: {e}") from e
                document = parse_document(data)
                continue

            new_name = canonical_tile_name(entry.name)
            if new_name is None:
                skipped += 1
                continue
            if new_name in pending:
                logger.warning(f"{entry.name} duplicates tile {new_name}, skipping")
                skipped += 1
                continue

            pending[new_name] = executor.submit(entry.stream_to, scratch_dir / new_name)

        try:
            for future in pending.values():
                future.result()
        except READ_ERRORS as e:
            raise ConversionError(f"Failed to extract tile images from {archive_path}: {e}") from e

    if document is None:
        raise MissingMetadataError(METADATA_ENTRY, archive_path)

    tile_images = [scratch_dir / name for name in sorted(pending)]
    logger.info(f"Extracted {len(tile_images)} tile images ({skipped} other entries skipped)")
    return ExtractionResult(document=document, tile_images=tile_images, skipped_entries=skipped)
