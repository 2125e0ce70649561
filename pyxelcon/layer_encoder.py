"""
Layer encoder - dense GID grid <-> Tiled base64/zlib layer data.

Tiled stores each GID as an unsigned 32-bit little-endian integer; the byte
stream is zlib-compressed and then base64-encoded.
"""

import base64
import binascii
import struct
import zlib
from typing import List, Optional, Sequence

from .errors import LayerEncodingError


def encode_layer(grid: Sequence[int], layer_name: str = "") -> str:
    """
    Encode a dense layer grid as Tiled base64+zlib text.

    Raises:
        LayerEncodingError: A value doesn't fit u32, or compression failed
    """
    try:
        raw = struct.pack(f'<{len(grid)}I', *grid)
        compressed = zlib.compress(raw)
    except (struct.error, zlib.error) as e:
        raise LayerEncodingError(layer_name, e) from e
    return base64.b64encode(compressed).decode('ascii')


def decode_layer(text: str, length: Optional[int] = None) -> List[int]:
    """
    Decode Tiled base64+zlib layer data back to a list of GIDs.

    Args:
        text: Contents of a <data encoding="base64" compression="zlib"> element
        length: Expected number of cells; checked when given

    Raises:
        ValueError: Data is not valid base64/zlib or has the wrong size
    """
    try:
        raw = zlib.decompress(base64.b64decode(text.strip()))
    except (binascii.Error, zlib.error) as e:
        raise ValueError(f"Invalid layer data: {e}") from e

    if len(raw) % 4:
        raise ValueError(f"Layer data is {len(raw)} bytes, not a multiple of 4")

    count = len(raw) // 4
    if length is not None and count != length:
        raise ValueError(f"Expected {length} tiles, got {count}")

    return list(struct.unpack(f'<{count}I', raw))
