"""
WebP Conversion Engine.

This package is the core image-to-WebP conversion logic.
It is used by the backend and the CLI.

It has no web or CLI dependencies. It's pure image processing.

"""

from .buffer import ImageBuffer
from .codec import decode_image, encode_webp, probe_dimensions
from .dimensions import OutputPlan, plan_dimensions
from .errors import ConversionError, DecodeFailure, EncodingFailure, ResampleFailure
from .estimate import (
    EstimateDebouncer,
    EstimateRecord,
    estimate_for,
    estimate_size,
    total_estimate,
)
from .pipeline import (
    BatchSession,
    ConversionFailure,
    ConversionJob,
    ConversionResult,
    SourceImage,
    convert_image,
    output_name,
)
from .resample import FILTERS, resample
from .unsharp import unsharp
from .watermark import corner_geometry, patch_watermark

__all__ = [
    "ImageBuffer",
    "OutputPlan",
    "plan_dimensions",
    "EstimateRecord",
    "EstimateDebouncer",
    "estimate_size",
    "estimate_for",
    "total_estimate",
    "FILTERS",
    "resample",
    "unsharp",
    "corner_geometry",
    "patch_watermark",
    "decode_image",
    "encode_webp",
    "probe_dimensions",
    "ConversionError",
    "DecodeFailure",
    "ResampleFailure",
    "EncodingFailure",
    "ConversionJob",
    "ConversionResult",
    "ConversionFailure",
    "SourceImage",
    "BatchSession",
    "convert_image",
    "output_name",
]
