"""Output size planning. Images are only ever scaled down."""

from __future__ import annotations

import math
from typing import NamedTuple


class OutputPlan(NamedTuple):
    output_width: int
    output_height: int


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def plan_dimensions(
    source_width: int,
    source_height: int,
    target_width: int | None,
) -> OutputPlan:
    """
    Fit the source to target_width, keeping aspect ratio.

    No target, or a target at least as wide as the source, keeps the
    source size.
    """
    if target_width is None or target_width >= source_width:
        return OutputPlan(source_width, source_height)

    ratio = target_width / source_width
    output_height = max(1, _round_half_up(source_height * ratio))
    return OutputPlan(max(1, target_width), output_height)


def is_downscaled(source_width: int, source_height: int, plan: OutputPlan) -> bool:
    return plan != (source_width, source_height)
