"""
Unsharp masking.

new = clamp(orig + (orig - blurred) * strength, 0, 255) on the colour
channels. Alpha is left alone. There is no edge-aware suppression,
so hard edges can ring.
"""

from __future__ import annotations

import logging

import cv2
import numpy as np

from .buffer import ImageBuffer

logger = logging.getLogger(__name__)

STANDALONE_SIGMA = 1.0
STANDALONE_STRENGTH = 0.8


def sharpen_rgb(pixels: np.ndarray, sigma: float, strength: float) -> None:
    """Sharpen the RGB channels of an (h, w, 4) uint8 array in place."""
    if strength <= 0 or sigma <= 0:
        return

    rgb = pixels[..., :3].astype(np.float32)
    blurred = cv2.GaussianBlur(
        rgb, ksize=(0, 0), sigmaX=sigma, sigmaY=sigma, borderType=cv2.BORDER_REPLICATE
    )
    sharpened = rgb + (rgb - blurred) * strength
    pixels[..., :3] = np.clip(np.rint(sharpened), 0, 255).astype(np.uint8)


def unsharp(buffer: ImageBuffer, amount: float) -> ImageBuffer:
    """
    Sharpen a buffer that was not resized.

    amount is the user's 0..1 sharpness. Mutates and returns `buffer`.
    """
    if amount <= 0:
        return buffer

    strength = amount * STANDALONE_STRENGTH
    logger.debug("Unsharp %dx%d strength=%.2f", buffer.width, buffer.height, strength)
    sharpen_rgb(buffer.pixels, STANDALONE_SIGMA, strength)
    return buffer
