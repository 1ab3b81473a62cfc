"""
Batch orchestration for the WebP backend.

Only the current batch is kept, in memory. Starting a new batch drops
the previous one's results.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from webpify_converter import BatchSession, ConversionFailure, ConversionResult
from webpify_shared.archive import build_archive, unique_names
from webpify_shared.files import format_file_size
from webpify_shared.options import ConversionOptions

from ..config import Config

logger = logging.getLogger(__name__)


@dataclass
class BatchState:
    """Results kept for downloads after a batch finishes."""
    batch_id: int
    results: dict[str, ConversionResult] = field(default_factory=dict)
    failures: list[ConversionFailure] = field(default_factory=list)


def result_dict(batch_id: int, name: str, result: ConversionResult) -> dict[str, Any]:
    reduction = result.reduction
    return {
        "type": "image",
        "original_name": result.original_name,
        "name": name,
        "url": f"/api/files/{batch_id}/{name}",
        "width": result.output_width,
        "height": result.output_height,
        "size": result.size,
        "size_label": format_file_size(result.size),
        "original_size": result.original_size,
        "reduction": None if reduction is None else round(reduction, 1),
    }


def failure_dict(failure: ConversionFailure) -> dict[str, Any]:
    return {
        "type": "job_error",
        "index": failure.index,
        "original_name": failure.original_name,
        "stage": failure.stage,
        "error": failure.error,
    }


class BatchService:
    """Runs conversion batches one at a time and serves their results."""

    def __init__(self, config: Config):
        self._config = config
        self._lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._batch_id = 0
        self._current: BatchState | None = None

    def new_batch(self) -> int:
        """Start a new batch, clearing previous state."""
        with self._lock:
            self._batch_id += 1
            self._current = BatchState(batch_id=self._batch_id)
            return self._batch_id

    def run_batch(
        self,
        images: list[tuple[str, bytes]],
        options: ConversionOptions,
    ) -> dict[str, Any]:
        """
        Convert `images` in order under one settings snapshot.

        Returns the JSON-ready outcome list, results and failures
        interleaved in submission order.
        """
        with self._run_lock:
            batch_id = self.new_batch()
            session = BatchSession(options=options)
            for name, data in images:
                session.add(name, data)
            outcomes = session.run()

            state = BatchState(batch_id=batch_id)
            names = unique_names([r.output_name for r in session.results])
            named = iter(names)
            payload: list[dict[str, Any]] = []
            for outcome in outcomes:
                if isinstance(outcome, ConversionResult):
                    name = next(named)
                    state.results[name] = outcome
                    payload.append(result_dict(batch_id, name, outcome))
                else:
                    state.failures.append(outcome)
                    payload.append(failure_dict(outcome))

            with self._lock:
                if self._batch_id == batch_id:
                    self._current = state

        logger.info(
            "Batch %d: %d converted, %d failed",
            batch_id, len(state.results), len(state.failures),
        )
        return {
            "batch_id": batch_id,
            "outcomes": payload,
            "converted": len(state.results),
            "failed": len(state.failures),
        }

    def get_result(self, batch_id: int, name: str) -> ConversionResult | None:
        with self._lock:
            if self._current is None or self._current.batch_id != batch_id:
                return None
            return self._current.results.get(name)

    def has_batch(self, batch_id: int) -> bool:
        with self._lock:
            return self._current is not None and self._current.batch_id == batch_id

    def build_archive(self, batch_id: int) -> bytes:
        """
        ZIP every converted image of the batch.

        Raises KeyError for an unknown batch and ArchiveFailure if the
        archive cannot be built.
        """
        with self._lock:
            if self._current is None or self._current.batch_id != batch_id:
                raise KeyError(batch_id)
            files = {name: r.encoded_bytes for name, r in self._current.results.items()}
        return build_archive(files, level=self._config.archive_level)
