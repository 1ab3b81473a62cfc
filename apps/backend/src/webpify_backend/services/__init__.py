"""Backend services."""

from .batch_service import BatchService

__all__ = ["BatchService"]
