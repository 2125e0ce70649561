import os
import tempfile
import unittest
import xml.etree.ElementTree as ET
from pathlib import Path
from unittest import mock

from PIL import Image

from pyxelcon.converter import PyxelConverter, default_output_path
from pyxelcon.errors import DataIntegrityError, InputNotFoundError, MissingMetadataError, TilesetCompositionError
from pyxelcon.layer_encoder import decode_layer
from pyxelcon.tileset_composer import PillowTilesetComposer, TilesetComposer

from tests.fixtures import doc_data, layer_data, png_bytes, scenario_a_doc, tile_ref, write_pyxel


class RecordingComposer(PillowTilesetComposer):
    """Pillow composer that remembers which scratch directory it was given."""

    def __init__(self):
        self.tile_dirs = []

    def compose(self, tile_dir, output_path, tileset):
        self.tile_dirs.append(Path(tile_dir))
        self.tile_names = sorted(os.listdir(tile_dir))
        return super().compose(tile_dir, output_path, tileset)


class FailingComposer(TilesetComposer):
    name = "failing"

    def compose(self, tile_dir, output_path, tileset):
        raise TilesetCompositionError("no image for you")


class PyxelConverterTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_full_conversion(self) -> None:
        tiles = {n: png_bytes(color=(10 * n, 0, 0, 255)) for n in range(6)}
        source = write_pyxel(self.tmp / "level.pyxel", scenario_a_doc(), tiles, tile_order=[5, 0, 3, 1, 4, 2])
        composer = RecordingComposer()

        result = PyxelConverter(source, self.tmp / "out" / "level.tmx", composer=composer).convert()

        self.assertEqual(result.document_path, self.tmp / "out" / "level.tmx")
        self.assertEqual(result.tileset_path, self.tmp / "out" / "tileset.png")
        self.assertTrue(result.tileset_written)
        self.assertEqual(result.layer_count, 1)
        self.assertEqual(result.tile_count, 6)
        self.assertEqual(composer.tile_names, [f"{n:08d}.png" for n in range(6)])

        root = ET.parse(result.document_path).getroot()
        layer = root.find('layer')
        self.assertEqual(decode_layer(layer.find('data').text), [6, 0, 0, 0])
        self.assertAlmostEqual(float(layer.get('opacity')), 0.50196, places=5)

        image = root.find('tileset/image')
        with Image.open(result.tileset_path) as tileset:
            self.assertEqual(tileset.size, (int(image.get('width')), int(image.get('height'))))
            self.assertEqual(tileset.getpixel((5 * 32, 0)), (50, 0, 0, 255))

        # scratch directory removed
        self.assertFalse(composer.tile_dirs[0].exists())

    def test_missing_input_creates_nothing(self) -> None:
        output = self.tmp / "never.tmx"
        with mock.patch("pyxelcon.converter.tempfile.TemporaryDirectory") as scratch:
            with self.assertRaises(InputNotFoundError):
                PyxelConverter(self.tmp / "missing.pyxel", output).convert()
            scratch.assert_not_called()
        self.assertEqual(os.listdir(self.tmp), [])

    def test_missing_metadata_writes_no_document(self) -> None:
        source = write_pyxel(self.tmp / "broken.pyxel", None, {0: png_bytes()})
        output = self.tmp / "broken.tmx"
        created = []
        real_tempdir = tempfile.TemporaryDirectory

        def tracking_tempdir(*args, **kwargs):
            scratch = real_tempdir(*args, **kwargs)
            created.append(Path(scratch.name))
            return scratch

        with mock.patch("pyxelcon.converter.tempfile.TemporaryDirectory", side_effect=tracking_tempdir):
            with self.assertRaises(MissingMetadataError):
                PyxelConverter(source, output).convert()

        self.assertFalse(output.exists())
        self.assertEqual(len(created), 1)
        self.assertFalse(created[0].exists())

    def test_bad_tile_key_writes_no_document(self) -> None:
        doc = doc_data([layer_data("Layer 0", {"99": tile_ref(1)})])
        source = write_pyxel(self.tmp / "bad.pyxel", doc, {0: png_bytes()})
        output = self.tmp / "bad.tmx"
        with self.assertRaises(DataIntegrityError) as ctx:
            PyxelConverter(source, output).convert()
        self.assertEqual(ctx.exception.key, 99)
        self.assertFalse(output.exists())
        self.assertFalse((self.tmp / "tileset.png").exists())

    def test_composition_failure_keeps_document(self) -> None:
        source = write_pyxel(self.tmp / "level.pyxel", scenario_a_doc(), {0: png_bytes()})
        output = self.tmp / "level.tmx"

        result = PyxelConverter(source, output, composer=FailingComposer()).convert()

        self.assertTrue(output.exists())
        self.assertFalse(result.tileset_written)
        self.assertEqual(result.tileset_error, "no image for you")

    def test_index_zero_is_tile_option(self) -> None:
        doc = doc_data([layer_data("Layer 0", {"1": tile_ref(0)})])
        source = write_pyxel(self.tmp / "zero.pyxel", doc, {0: png_bytes()})

        default = PyxelConverter(source, self.tmp / "a.tmx").convert()
        as_tile = PyxelConverter(source, self.tmp / "b.tmx", index_zero_is_tile=True).convert()

        data_a = ET.parse(default.document_path).getroot().find('layer/data').text
        data_b = ET.parse(as_tile.document_path).getroot().find('layer/data').text
        self.assertEqual(decode_layer(data_a), [0, 0, 0, 0])
        self.assertEqual(decode_layer(data_b), [0, 1, 0, 0])

    def test_default_output_path(self) -> None:
        self.assertEqual(default_output_path("maps/dungeon.pyxel"), Path("dungeon.tmx"))
        converter = PyxelConverter("maps/dungeon.pyxel")
        self.assertEqual(converter.output_path, Path("dungeon.tmx"))
        self.assertEqual(converter.tileset_path, Path("tileset.png"))


if __name__ == "__main__":
    unittest.main()
