"""
High quality resizing.

Separable convolution: every destination pixel gets a normalized
weight row over the source pixels under the filter window, first
along x, then along y. When shrinking, the window is stretched by
1/scale so every source pixel contributes.

Filters:
    lanczos2     sinc(x) * sinc(x/2), |x| < 2
    lanczos3     sinc(x) * sinc(x/3), |x| < 3
    magicKernel  Magic Kernel Sharp 2013, |x| < 2.5
"""

from __future__ import annotations

import logging
import math
from typing import Callable, NamedTuple

import cv2
import numpy as np

from .buffer import ImageBuffer
from .errors import ResampleFailure
from .unsharp import sharpen_rgb

logger = logging.getLogger(__name__)

UNSHARP_MAX_AMOUNT = 160
UNSHARP_BASE_RADIUS = 0.5
UNSHARP_RADIUS_STEP = 0.5


class Filter(NamedTuple):
    kernel: Callable[[np.ndarray], np.ndarray]
    window: float


def _lanczos(lobes: int) -> Callable[[np.ndarray], np.ndarray]:
    def kernel(x: np.ndarray) -> np.ndarray:
        x = np.abs(x)
        return np.where(x < lobes, np.sinc(x) * np.sinc(x / lobes), 0.0)
    return kernel


def _magic_kernel_sharp(x: np.ndarray) -> np.ndarray:
    x = np.abs(x)
    return np.select(
        [x >= 2.5, x >= 1.5, x >= 0.5],
        [
            np.zeros_like(x),
            -0.125 * (x - 2.5) ** 2,
            0.25 * (4 * x ** 2 - 11 * x + 7),
        ],
        default=1.0625 - 1.75 * x ** 2,
    )


FILTERS: dict[str, Filter] = {
    "lanczos2": Filter(_lanczos(2), 2.0),
    "lanczos3": Filter(_lanczos(3), 3.0),
    "magicKernel": Filter(_magic_kernel_sharp, 2.5),
}


def filter_weights(src_size: int, dst_size: int, flt: Filter) -> tuple[np.ndarray, np.ndarray]:
    """
    Build the sparse weight table for one axis.

    Returns (indices, weights), both shaped (dst_size, taps). Taps that
    fall outside the source carry zero weight; every row sums to 1.
    """
    scale = dst_size / src_size
    clamped = min(1.0, scale)
    support = flt.window / clamped

    centers = (np.arange(dst_size, dtype=np.float64) + 0.5) / scale
    first = np.floor(centers - support).astype(np.int64)
    taps = int(math.ceil(2 * support)) + 2

    idx = first[:, None] + np.arange(taps, dtype=np.int64)[None, :]
    inside = (idx >= 0) & (idx < src_size)
    weights = flt.kernel((idx + 0.5 - centers[:, None]) * clamped)
    weights = np.where(inside, weights, 0.0)

    sums = weights.sum(axis=1, keepdims=True)
    sums[sums == 0] = 1.0
    weights = weights / sums

    return np.clip(idx, 0, src_size - 1), weights.astype(np.float32)


def _convolve_x(src: np.ndarray, idx: np.ndarray, weights: np.ndarray) -> np.ndarray:
    out = np.zeros((src.shape[0], idx.shape[0], src.shape[2]), dtype=np.float32)
    for t in range(idx.shape[1]):
        w = weights[:, t]
        if not np.any(w):
            continue
        out += src[:, idx[:, t], :] * w[None, :, None]
    return out


def _convolve_y(src: np.ndarray, idx: np.ndarray, weights: np.ndarray) -> np.ndarray:
    out = np.zeros((idx.shape[0], src.shape[1], src.shape[2]), dtype=np.float32)
    for t in range(idx.shape[1]):
        w = weights[:, t]
        if not np.any(w):
            continue
        out += src[idx[:, t], :, :] * w[:, None, None]
    return out


def _premultiply(pixels: np.ndarray) -> np.ndarray:
    out = pixels.astype(np.float32)
    alpha = out[..., 3:4] / 255.0
    out[..., :3] *= alpha
    return out


def _unpremultiply(values: np.ndarray) -> np.ndarray:
    alpha = np.clip(values[..., 3:4], 0.0, 255.0)
    safe = np.where(alpha > 0, alpha, 1.0)
    rgb = np.where(alpha > 0, values[..., :3] * 255.0 / safe, 0.0)
    return np.concatenate([rgb, alpha], axis=2)


def unsharp_params(sharpness: float) -> tuple[int, float]:
    """(amount in percent, radius in px) for the fused sharpen pass."""
    if sharpness <= 0:
        return 0, 0.0
    amount = int(math.floor(sharpness * UNSHARP_MAX_AMOUNT + 0.5))
    radius = UNSHARP_BASE_RADIUS + sharpness * UNSHARP_RADIUS_STEP
    return amount, radius


def resample(
    buffer: ImageBuffer,
    target: tuple[int, int],
    algorithm: str = "lanczos3",
    optimize_alpha: bool = False,
    sharpness: float = 0.0,
    name: str = "image",
) -> ImageBuffer:
    """
    Resize `buffer` to `target` (width, height) into a new buffer.

    Raises ResampleFailure for a zero-area target or if the filter
    cannot produce a valid buffer.
    """
    width, height = target
    if width <= 0 or height <= 0:
        raise ResampleFailure(name, f"Invalid target size {width}x{height}")
    if buffer.width <= 0 or buffer.height <= 0:
        raise ResampleFailure(name, f"Invalid source size {buffer.width}x{buffer.height}")

    flt = FILTERS.get(algorithm)
    if flt is None:
        raise ResampleFailure(name, f"Unknown resize algorithm: {algorithm}")

    logger.debug(
        "Resampling %s %dx%d -> %dx%d (%s, alpha=%s)",
        name, buffer.width, buffer.height, width, height, algorithm, optimize_alpha,
    )

    try:
        src = _premultiply(buffer.pixels) if optimize_alpha else buffer.pixels

        x_idx, x_w = filter_weights(buffer.width, width, flt)
        y_idx, y_w = filter_weights(buffer.height, height, flt)
        values = _convolve_y(_convolve_x(src, x_idx, x_w), y_idx, y_w)

        if optimize_alpha:
            values = _unpremultiply(values)

        if not np.all(np.isfinite(values)):
            raise ResampleFailure(name, "Resampled pixels are not finite")

        pixels = np.clip(np.rint(values), 0, 255).astype(np.uint8)

        amount, radius = unsharp_params(sharpness)
        if amount > 0:
            sharpen_rgb(pixels, radius, amount / 100)
    except (ValueError, MemoryError, cv2.error) as e:
        raise ResampleFailure(name, f"{type(e).__name__}: {e}") from e

    return ImageBuffer(pixels)
