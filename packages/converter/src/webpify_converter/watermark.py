"""
Bottom-right corner watermark patching.

This is a fixed heuristic, not object detection. It assumes a
watermark is lighter than what is behind it, so any bright content in
the corner (sky, white backgrounds) is patched too.

Layout, anchored at the bottom-right:

    +--------------------------+  sampling window, 2 * (size + margin)
    |  background sampled on   |
    |  the top row / left col  |
    |            +-------------+  corner, size + margin
    |            |  patched    |
    +------------+-------------+

Nothing outside the sampling window is modified.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

import cv2
import numpy as np

from .buffer import ImageBuffer

logger = logging.getLogger(__name__)

MIN_WATERMARK_SIZE = 40
WATERMARK_FRACTION = 0.05
MIN_MARGIN = 10
MARGIN_FRACTION = 0.3

BRIGHTNESS_DELTA = 30
BRIGHTNESS_ABSOLUTE = 200
BLEND_RANGE = 100.0
BACKGROUND_WEIGHT = 0.25
FEATHER_SIGMA = 1.5


class CornerGeometry(NamedTuple):
    watermark_size: float
    margin: float
    # (x0, y0) top-left of each box; boxes extend to the image's right/bottom edge
    window: tuple[int, int]
    corner: tuple[int, int]
    feather: tuple[int, int]


def corner_geometry(width: int, height: int) -> CornerGeometry:
    watermark_size = max(MIN_WATERMARK_SIZE, min(width, height) * WATERMARK_FRACTION)
    margin = max(MIN_MARGIN, watermark_size * MARGIN_FRACTION)

    corner_extent = int(round(watermark_size + margin))
    window_extent = 2 * corner_extent
    feather_extent = corner_extent + max(2, int(margin / 2))

    def anchor(extent: int) -> tuple[int, int]:
        return max(0, width - extent), max(0, height - extent)

    return CornerGeometry(
        watermark_size,
        margin,
        window=anchor(window_extent),
        corner=anchor(corner_extent),
        feather=anchor(feather_extent),
    )


def _background_color(rgb: np.ndarray, window: tuple[int, int]) -> np.ndarray:
    wx, wy = window
    left = rgb[wy:, wx]
    top = rgb[wy, wx:]
    return np.concatenate([left, top]).mean(axis=0)


def _reference_colors(
    rgb: np.ndarray, corner: tuple[int, int], background: np.ndarray
) -> np.ndarray:
    """
    Per-pixel estimate of what lies under the corner.

    Blends the pixel left of the corner on the same row with the pixel
    above the corner in the same column, nearer one weighted more.
    """
    cx, cy = corner
    ch, cw = rgb.shape[0] - cy, rgb.shape[1] - cx

    dx = np.arange(1, cw + 1, dtype=np.float32)[None, :, None]
    dy = np.arange(1, ch + 1, dtype=np.float32)[:, None, None]

    if cx > 0:
        left = rgb[cy:, cx - 1][:, None, :]
    else:
        left = np.broadcast_to(background, (ch, 1, 3))
    if cy > 0:
        above = rgb[cy - 1, cx:][None, :, :]
    else:
        above = np.broadcast_to(background, (1, cw, 3))

    local = (left * dy + above * dx) / (dx + dy)
    return local * (1 - BACKGROUND_WEIGHT) + background * BACKGROUND_WEIGHT


def patch_watermark(buffer: ImageBuffer) -> int:
    """
    Patch bright pixels in the bottom-right corner, in place.

    Returns the number of pixels that were blended.
    """
    geom = corner_geometry(buffer.width, buffer.height)
    pixels = buffer.pixels
    rgb = pixels[..., :3].astype(np.float32)

    background = _background_color(rgb, geom.window)
    cx, cy = geom.corner
    region = rgb[cy:, cx:]
    reference = _reference_colors(rgb, geom.corner, background)

    brightness = region.mean(axis=2)
    ref_brightness = reference.mean(axis=2)
    excess = brightness - ref_brightness

    flagged = (excess > BRIGHTNESS_DELTA) | (brightness > BRIGHTNESS_ABSOLUTE)
    blend = np.where(flagged, np.clip(excess / BLEND_RANGE, 0.0, 1.0), 0.0)
    patched = int(np.count_nonzero(blend))

    if patched == 0:
        logger.debug("No watermark pixels found in %dx%d corner", region.shape[1], region.shape[0])
        return 0

    t = blend[..., None]
    region = region * (1 - t) + reference * t
    pixels[cy:, cx:, :3] = np.clip(np.rint(region), 0, 255).astype(np.uint8)

    fx, fy = geom.feather
    box = pixels[fy:, fx:, :3].astype(np.float32)
    box = cv2.GaussianBlur(
        box, ksize=(0, 0), sigmaX=FEATHER_SIGMA, sigmaY=FEATHER_SIGMA,
        borderType=cv2.BORDER_REPLICATE,
    )
    pixels[fy:, fx:, :3] = np.clip(np.rint(box), 0, 255).astype(np.uint8)

    logger.debug("Patched %d corner pixels (background=%s)", patched, background.round(1))
    return patched
