"""
Decode and encode boundary.

JPEG/PNG bytes in, RGBA ImageBuffer through the pipeline, WebP bytes out.
"""

from __future__ import annotations

import io
import logging

from PIL import ExifTags, Image, ImageOps, UnidentifiedImageError

from .buffer import ImageBuffer
from .errors import DecodeFailure, EncodingFailure

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS: frozenset[str] = frozenset({"JPEG", "MPO", "PNG"})
WEBP_METHOD = 6


def _open(data: bytes, name: str) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise DecodeFailure(name, "Failed to load image") from e

    if img.format not in SUPPORTED_FORMATS:
        raise DecodeFailure(name, f"Unsupported image format: {img.format}")

    # MPO is a camera JPEG with extra preview frames; frame 0 is the photo
    n_frames = getattr(img, "n_frames", 1)
    if n_frames != 1 and img.format != "MPO":
        raise DecodeFailure(name, f"Multi-frame image not supported ({n_frames} frames)")
    return img


def probe_dimensions(
    data: bytes, name: str = "image", auto_orient: bool = True
) -> tuple[int, int]:
    """
    Read (width, height) from the image header without decoding pixels.

    EXIF rotations that swap the axes are taken into account.
    """
    img = _open(data, name)
    width, height = img.size
    try:
        orientation = img.getexif().get(ExifTags.Base.Orientation, 1)
    except (AttributeError, OSError, ValueError):
        orientation = 1
    if auto_orient and orientation in (5, 6, 7, 8):
        width, height = height, width
    return width, height


def decode_image(data: bytes, name: str = "image", auto_orient: bool = True) -> ImageBuffer:
    """
    Decode JPEG/PNG bytes to an RGBA buffer.

    Raises DecodeFailure for anything that is not a single-frame JPEG
    or PNG, or that fails to decode.
    """
    img = _open(data, name)
    try:
        img.load()
        if auto_orient:
            img = ImageOps.exif_transpose(img)
        buffer = ImageBuffer.from_image(img)
    except (Image.DecompressionBombError, OSError, ValueError, SyntaxError) as e:
        raise DecodeFailure(name, f"Failed to decode image: {e}") from e

    if buffer.width <= 0 or buffer.height <= 0:
        raise DecodeFailure(name, "Image has no pixels")

    logger.debug("Decoded %s: %dx%d %s", name, buffer.width, buffer.height, img.mode)
    return buffer


def encode_webp(
    buffer: ImageBuffer,
    quality: float,
    lossless: bool,
    name: str = "image",
) -> bytes:
    """
    Encode a buffer as WebP. quality is 0..1 and is forced to the
    maximum for lossless output.

    Raises EncodingFailure if the encoder produces nothing.
    """
    if buffer.width <= 0 or buffer.height <= 0:
        raise EncodingFailure(name, "Cannot encode an empty buffer")

    q = 100 if lossless else int(round(max(0.0, min(1.0, quality)) * 100))

    img = buffer.to_image()
    if buffer.is_opaque():
        img = img.convert("RGB")

    out = io.BytesIO()
    try:
        img.save(out, format="WEBP", quality=q, lossless=lossless, method=WEBP_METHOD)
    except (OSError, ValueError, KeyError) as e:
        raise EncodingFailure(name, f"Failed to create WebP: {e}") from e

    data = out.getvalue()
    if not data:
        raise EncodingFailure(name, "Failed to create WebP: encoder returned no data")
    return data
