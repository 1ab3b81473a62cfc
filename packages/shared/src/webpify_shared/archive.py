"""
ZIP packaging for "download all".

The archive is a pass-through: converted bytes go in unchanged,
DEFLATE compressed at level 6 by default.
"""

from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path
from typing import Mapping

logger = logging.getLogger(__name__)

ARCHIVE_NAME = "converted-images.zip"
DEFAULT_COMPRESSION_LEVEL = 6


class ArchiveFailure(RuntimeError):
    """Raised when the archive cannot be assembled."""

    def __init__(self, message: str, file_count: int = 0):
        self.file_count = file_count
        super().__init__(message)


def unique_names(names: list[str]) -> list[str]:
    """Suffix repeated names: photo.webp, photo-1.webp, photo-2.webp."""
    seen: set[str] = set()
    out: list[str] = []
    for name in names:
        candidate = name
        path = Path(name)
        n = 1
        while candidate in seen:
            candidate = f"{path.stem}-{n}{path.suffix}"
            n += 1
        seen.add(candidate)
        out.append(candidate)
    return out


def build_archive(
    files: Mapping[str, bytes] | list[tuple[str, bytes]],
    level: int = DEFAULT_COMPRESSION_LEVEL,
) -> bytes:
    """
    Pack name -> bytes entries into a ZIP blob.

    Raises ArchiveFailure if there is nothing to pack or zipfile fails.
    """
    items = list(files.items()) if isinstance(files, Mapping) else list(files)
    if not items:
        raise ArchiveFailure("No converted images to archive")
    if not 0 <= level <= 9:
        raise ArchiveFailure(f"Compression level must be 0..9, got {level}", len(items))

    names = unique_names([name for name, _ in items])
    buf = io.BytesIO()
    try:
        with zipfile.ZipFile(
            buf, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=level
        ) as z:
            for name, (_, data) in zip(names, items):
                z.writestr(name, data)
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        raise ArchiveFailure(f"Failed to create ZIP: {e}", len(items)) from e

    logger.info("Archived %d files (%d bytes)", len(items), buf.tell())
    return buf.getvalue()
