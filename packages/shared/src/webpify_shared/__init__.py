"""
Shared option and file types for WebP batch conversion

The package is a dependency of the converter, backend and CLI:
- Converter uses the options snapshot
- Backend and CLI parse settings, read inputs and build archives

Deployment:
    pip install webpify
"""

from .archive import (
    ARCHIVE_NAME,
    DEFAULT_COMPRESSION_LEVEL,
    ArchiveFailure,
    build_archive,
    unique_names,
)
from .files import (
    ALLOWED_IMG_EXTS,
    format_file_size,
    is_valid_image,
    read_inputs,
)
from .options import (
    DEFAULT_CUSTOM_WIDTH,
    DEFAULT_TARGET_SIZE,
    PRESET_WIDTHS,
    RESIZE_ALGORITHMS,
    ConversionOptions,
    OptionsError,
    ResizeAlgorithm,
    parse_custom_width,
    parse_options,
    parse_resize_algorithm,
    parse_target_width,
)

__all__ = [
    # Options
    "ConversionOptions",
    "OptionsError",
    "ResizeAlgorithm",
    "RESIZE_ALGORITHMS",
    "PRESET_WIDTHS",
    "DEFAULT_TARGET_SIZE",
    "DEFAULT_CUSTOM_WIDTH",
    "parse_options",
    "parse_custom_width",
    "parse_target_width",
    "parse_resize_algorithm",
    # Files
    "ALLOWED_IMG_EXTS",
    "is_valid_image",
    "read_inputs",
    "format_file_size",
    # Archive
    "ARCHIVE_NAME",
    "DEFAULT_COMPRESSION_LEVEL",
    "ArchiveFailure",
    "build_archive",
    "unique_names",
]
