"""Per-image conversion errors."""

from __future__ import annotations


class ConversionError(RuntimeError):
    """
    Base for failures that end one image's conversion.

    A batch catches these per image and moves on to the next one.
    """

    stage = "unknown"

    def __init__(self, name: str, message: str):
        self.name = name
        self.message = message
        super().__init__(f"{name}: {message}")


class DecodeFailure(ConversionError):
    """Input bytes are not a supported, decodable image."""

    stage = "decoding"


class ResampleFailure(ConversionError):
    """Invalid target geometry or an error inside the resampler."""

    stage = "resampling"


class EncodingFailure(ConversionError):
    """The WebP encoder did not produce output."""

    stage = "encoding"
