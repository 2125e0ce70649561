import base64
import struct
import unittest
import zlib

from pyxelcon.errors import LayerEncodingError
from pyxelcon.layer_encoder import decode_layer, encode_layer


class EncodeLayerTests(unittest.TestCase):
    def test_base64_zlib_little_endian_u32(self) -> None:
        grid = [6, 0, 0x40000006, 0xE0000001]
        text = encode_layer(grid)

        raw = zlib.decompress(base64.b64decode(text))
        self.assertEqual(len(raw), 16)
        self.assertEqual(raw[:4], b'\x06\x00\x00\x00')
        self.assertEqual(list(struct.unpack('<4I', raw)), grid)

    def test_decode_inverts_encode(self) -> None:
        grid = [0, 1, 2, 0x80000003] * 8
        self.assertEqual(decode_layer(encode_layer(grid), length=len(grid)), grid)

    def test_empty_grid(self) -> None:
        self.assertEqual(decode_layer(encode_layer([])), [])

    def test_value_too_large_names_layer(self) -> None:
        with self.assertRaises(LayerEncodingError) as ctx:
            encode_layer([1 << 32], layer_name="Foreground")
        self.assertEqual(ctx.exception.layer, "Foreground")
        self.assertIn("Foreground", str(ctx.exception))

    def test_decode_length_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            decode_layer(encode_layer([1, 2, 3]), length=4)

    def test_decode_garbage(self) -> None:
        with self.assertRaises(ValueError):
            decode_layer("not zlib data")


if __name__ == "__main__":
    unittest.main()
