"""
File handling utilities for the backend and the CLI
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

ALLOWED_IMG_EXTS: frozenset[str] = frozenset({".png", ".jpg", ".jpeg"})

_SIZE_UNITS = ("B", "KB", "MB", "GB")


def is_valid_image(name: str) -> bool:
    """Only JPEG and PNG inputs are accepted."""
    return Path(name).suffix.lower() in ALLOWED_IMG_EXTS


def format_file_size(num_bytes: float) -> str:
    """Human readable size, base 1024 with one decimal: '1.5 KB'."""
    if num_bytes <= 0:
        return "0 B"
    size = float(num_bytes)
    unit = 0
    while size >= 1024 and unit < len(_SIZE_UNITS) - 1:
        size /= 1024
        unit += 1
    text = f"{size:.1f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[unit]}"


def _read_zip(file_path: Path) -> list[tuple[str, bytes]]:
    images: list[tuple[str, bytes]] = []
    try:
        with zipfile.ZipFile(file_path) as z:
            for info in z.infolist():
                if info.is_dir():
                    continue

                raw_name = info.filename
                if raw_name.startswith("__MACOSX/") or raw_name.endswith(".DS_Store"):
                    continue
                if not is_valid_image(raw_name):
                    logger.debug("Skipping %s in %s", raw_name, file_path.name)
                    continue

                safe_name = secure_filename(Path(raw_name).name)
                if not safe_name:
                    logger.warning("Invalid filename in archive: %s", raw_name)
                    continue
                try:
                    with z.open(info) as src:
                        images.append((safe_name, src.read()))
                except (OSError, zipfile.BadZipFile) as e:
                    logger.error("Failed to extract %s: %s", raw_name, e)
    except zipfile.BadZipFile as e:
        logger.error("Invalid ZIP file %s: %s", file_path, e)
        return []

    logger.info("Read %d images from %s", len(images), file_path.name)
    return images


def read_inputs(file_path: Path) -> list[tuple[str, bytes]]:
    """
    Collect (name, bytes) pairs for conversion.

    Accepts a single JPEG/PNG, a directory (non-recursive, sorted by
    name) or a ZIP archive. Anything else yields nothing.
    """
    if file_path.is_dir():
        images: list[tuple[str, bytes]] = []
        for child in sorted(file_path.iterdir()):
            if child.is_file() and is_valid_image(child.name):
                images.extend(read_inputs(child))
        return images

    suffix = file_path.suffix.lower()

    if suffix in ALLOWED_IMG_EXTS:
        try:
            return [(file_path.name, file_path.read_bytes())]
        except OSError as e:
            logger.error("Failed to read %s: %s", file_path, e)
            return []

    if suffix != ".zip":
        logger.warning("Unsupported file type: %s", suffix)
        return []

    return _read_zip(file_path)
