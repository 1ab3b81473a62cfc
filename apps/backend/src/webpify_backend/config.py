"""Configuration management for the WebP backend."""

from __future__ import annotations

import os
from dataclasses import dataclass

from webpify_shared.archive import ARCHIVE_NAME, DEFAULT_COMPRESSION_LEVEL
from webpify_shared.options import DEFAULT_TARGET_SIZE


@dataclass(frozen=True)
class Config:
    """Backend configuration loaded from environment variables."""

    host: str = "127.0.0.1"
    port: int = 5001
    max_upload_mb: int = 200
    archive_name: str = ARCHIVE_NAME
    archive_level: int = DEFAULT_COMPRESSION_LEVEL
    default_target_size: str = DEFAULT_TARGET_SIZE

    @classmethod
    def load(cls) -> Config:
        """Load configuration from environment variables."""
        return cls(
            host=os.getenv("WEBPIFY_HOST", "127.0.0.1"),
            port=int(os.getenv("WEBPIFY_PORT", "5001")),
            max_upload_mb=int(os.getenv("WEBPIFY_MAX_UPLOAD_MB", "200")),
            archive_name=os.getenv("WEBPIFY_ARCHIVE_NAME", ARCHIVE_NAME),
            archive_level=int(os.getenv("WEBPIFY_ARCHIVE_LEVEL", str(DEFAULT_COMPRESSION_LEVEL))),
            default_target_size=os.getenv("WEBPIFY_DEFAULT_TARGET_SIZE", DEFAULT_TARGET_SIZE),
        )

    @property
    def max_content_length(self) -> int:
        return self.max_upload_mb * 1024 * 1024
