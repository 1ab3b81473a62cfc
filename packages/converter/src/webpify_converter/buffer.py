"""
RGBA pixel buffer passed between pipeline stages.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from PIL import Image


@dataclass
class ImageBuffer:
    """
    Row-major RGBA pixels, uint8 array of shape (height, width, 4).

    Filters either mutate a buffer they own or return a new one.
    Use copy() before handing a buffer to a second owner.
    """
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(f"Expected (h, w, 4) pixels, got {self.pixels.shape}")
        if self.pixels.dtype != np.uint8:
            self.pixels = self.pixels.astype(np.uint8)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def copy(self) -> "ImageBuffer":
        return ImageBuffer(self.pixels.copy())

    def is_opaque(self) -> bool:
        return bool(np.all(self.pixels[..., 3] == 255))

    @classmethod
    def blank(cls, width: int, height: int, color=(0, 0, 0, 255)) -> "ImageBuffer":
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[...] = color
        return cls(pixels)

    @classmethod
    def from_image(cls, img: Image.Image) -> "ImageBuffer":
        if img.mode != "RGBA":
            img = img.convert("RGBA")
        return cls(np.array(img, dtype=np.uint8))

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self.pixels))
