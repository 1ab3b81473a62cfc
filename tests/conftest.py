from __future__ import annotations

import io
import struct
import zlib

import numpy as np
import pytest
from PIL import Image

from webpify_converter import ImageBuffer


def encode_image(img: Image.Image, fmt: str, **kwargs) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt, **kwargs)
    return buf.getvalue()


def gradient(width: int, height: int) -> np.ndarray:
    """Opaque RGBA gradient, a little structure for the filters to chew on."""
    xs = np.linspace(0, 255, width, dtype=np.float32)[None, :]
    ys = np.linspace(0, 255, height, dtype=np.float32)[:, None]
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[..., 0] = xs.astype(np.uint8)
    pixels[..., 1] = ys.astype(np.uint8)
    pixels[..., 2] = ((xs + ys) / 2).astype(np.uint8)
    pixels[..., 3] = 255
    return pixels


@pytest.fixture
def make_image_bytes():
    """Factory: (width, height, fmt) -> encoded JPEG/PNG bytes."""
    def factory(width: int = 64, height: int = 48, fmt: str = "JPEG", **kwargs) -> bytes:
        img = Image.fromarray(gradient(width, height))
        if fmt == "JPEG":
            img = img.convert("RGB")
        return encode_image(img, fmt, **kwargs)
    return factory


@pytest.fixture
def make_buffer():
    """Factory: (width, height, color or None) -> ImageBuffer."""
    def factory(width: int = 64, height: int = 48, color=None) -> ImageBuffer:
        if color is None:
            return ImageBuffer(gradient(width, height))
        return ImageBuffer.blank(width, height, color)
    return factory


@pytest.fixture
def corrupt_bytes() -> bytes:
    return b"\xff\xd8\xff\xe0 definitely not a jpeg" * 4


def png_chunk(kind: bytes, payload: bytes) -> bytes:
    return (
        struct.pack(">I", len(payload)) + kind + payload
        + struct.pack(">I", zlib.crc32(kind + payload) & 0xFFFFFFFF)
    )


@pytest.fixture
def oversized_png() -> bytes:
    """A PNG header claiming 30000x30000, far over Pillow's pixel limit."""
    header = struct.pack(">IIBBBBB", 30000, 30000, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + png_chunk(b"IHDR", header)
        + png_chunk(b"IDAT", zlib.compress(b""))
        + png_chunk(b"IEND", b"")
    )
