"""Configuration for the webpify CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from webpify_shared.archive import ARCHIVE_NAME, DEFAULT_COMPRESSION_LEVEL


@dataclass(frozen=True)
class CliConfig:
    """Defaults for the CLI; command-line options override them."""

    output_dir: Path = Path("webp-output")
    archive_name: str = ARCHIVE_NAME
    archive_level: int = DEFAULT_COMPRESSION_LEVEL

    @classmethod
    def load(cls) -> CliConfig:
        """Load from environment variables."""
        return cls(
            output_dir=Path(os.getenv("WEBPIFY_OUTPUT_DIR", "webp-output")),
            archive_name=os.getenv("WEBPIFY_ARCHIVE_NAME", ARCHIVE_NAME),
            archive_level=int(os.getenv("WEBPIFY_ARCHIVE_LEVEL", str(DEFAULT_COMPRESSION_LEVEL))),
        )

    def ensure_directories(self, output_dir: Path | None = None) -> Path:
        out = output_dir or self.output_dir
        out.mkdir(parents=True, exist_ok=True)
        return out
