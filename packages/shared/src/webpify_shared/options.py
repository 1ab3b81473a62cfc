"""
Conversion options for a WebP batch.

Settings arrive as a flat mapping (HTTP form, JSON body or CLI flags):
    quality          int 0..100, stored as a fraction
    lossless         bool
    targetSize       "original" | "custom" | preset width ("1920")
    customWidth      int >= 50, falls back to 1200
    sharpness        float 0..1
    resizeAlgorithm  lanczos2 | lanczos3 | magicKernel (default lanczos3)
    optimizeAlpha    bool
    removeWatermark  bool
    autoOrient       bool
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any, Literal, Mapping

ResizeAlgorithm = Literal["lanczos2", "lanczos3", "magicKernel"]

RESIZE_ALGORITHMS: tuple[str, ...] = ("lanczos2", "lanczos3", "magicKernel")
ALGORITHM_ALIASES: dict[str, str] = {
    "mks2013": "magicKernel",
    "magic_kernel": "magicKernel",
    "magickernel": "magicKernel",
}
DEFAULT_ALGORITHM: ResizeAlgorithm = "lanczos3"

PRESET_WIDTHS: tuple[int, ...] = (640, 1280, 1920, 2560)
DEFAULT_TARGET_SIZE = "1920"
DEFAULT_QUALITY = 80
MIN_CUSTOM_WIDTH = 50
DEFAULT_CUSTOM_WIDTH = 1200

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class OptionsError(ValueError):
    """Raised when a setting has a value that cannot be interpreted."""
    pass


@dataclass(frozen=True)
class ConversionOptions:
    """
    Read-only settings snapshot for one batch. Built once when the
    batch starts and never changed while it runs.
    """
    quality: float = DEFAULT_QUALITY / 100
    lossless: bool = False
    target_width: int | None = int(DEFAULT_TARGET_SIZE)
    sharpness: float = 0.0
    resize_algorithm: ResizeAlgorithm = DEFAULT_ALGORITHM
    optimize_alpha: bool = False
    remove_watermark: bool = False
    auto_orient: bool = True

    def __post_init__(self) -> None:
        if not 0.0 <= self.quality <= 1.0:
            raise OptionsError(f"quality must be in [0, 1], got {self.quality}")
        if not 0.0 <= self.sharpness <= 1.0:
            raise OptionsError(f"sharpness must be in [0, 1], got {self.sharpness}")
        if self.target_width is not None and self.target_width <= 0:
            raise OptionsError(f"target_width must be positive, got {self.target_width}")
        if self.resize_algorithm not in RESIZE_ALGORITHMS:
            raise OptionsError(f"Unknown resize algorithm: {self.resize_algorithm}")

    def with_changes(self, **changes: Any) -> "ConversionOptions":
        return replace(self, **changes)


def _lookup(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _parse_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _TRUE_STRINGS


def _parse_float(value: Any, name: str) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise OptionsError(f"{name} must be a number, got {value!r}") from e


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def parse_custom_width(value: Any) -> int:
    """
    Read the leading integer of a custom width ("1500px" -> 1500,
    "1500.7" -> 1500). Widths below 50 or with no leading digits fall
    back to 1200.
    """
    if value is None or isinstance(value, bool):
        return DEFAULT_CUSTOM_WIDTH
    match = _LEADING_INT.match(str(value))
    if match is None:
        return DEFAULT_CUSTOM_WIDTH
    width = int(match.group(1))
    return width if width >= MIN_CUSTOM_WIDTH else DEFAULT_CUSTOM_WIDTH


def parse_target_width(target_size: Any, custom_width: Any = None) -> int | None:
    """
    Resolve the target-size selector to a width in pixels.

    Returns None when the original size is kept.
    """
    if target_size is None or target_size == "":
        target_size = DEFAULT_TARGET_SIZE
    if isinstance(target_size, int) and not isinstance(target_size, bool):
        target_size = str(target_size)

    size = str(target_size).strip().lower()
    if size == "original":
        return None
    if size == "custom":
        return parse_custom_width(custom_width)
    try:
        width = int(size)
    except ValueError as e:
        raise OptionsError(f"Unknown target size: {target_size!r}") from e
    if width <= 0:
        raise OptionsError(f"Target width must be positive, got {width}")
    return width


def parse_resize_algorithm(value: Any) -> ResizeAlgorithm:
    """Unset or unrecognised algorithms fall back to lanczos3."""
    if value is None:
        return DEFAULT_ALGORITHM
    name = str(value).strip()
    if name in RESIZE_ALGORITHMS:
        return name  # type: ignore[return-value]
    alias = ALGORITHM_ALIASES.get(name.lower())
    if alias is not None:
        return alias  # type: ignore[return-value]
    return DEFAULT_ALGORITHM


def parse_options(data: Mapping[str, Any] | None) -> ConversionOptions:
    """Build a ConversionOptions snapshot from a settings mapping."""
    if data is None:
        return ConversionOptions()

    quality = _parse_float(_lookup(data, "quality"), "quality")
    if quality is None:
        quality = DEFAULT_QUALITY
    sharpness = _parse_float(_lookup(data, "sharpness"), "sharpness") or 0.0

    auto_orient = _lookup(data, "autoOrient", "auto_orient")

    return ConversionOptions(
        quality=_clamp(quality, 0, 100) / 100,
        lossless=_parse_bool(_lookup(data, "lossless")),
        target_width=parse_target_width(
            _lookup(data, "targetSize", "target_size"),
            _lookup(data, "customWidth", "custom_width"),
        ),
        sharpness=_clamp(sharpness, 0.0, 1.0),
        resize_algorithm=parse_resize_algorithm(
            _lookup(data, "resizeAlgorithm", "resize_algorithm")
        ),
        optimize_alpha=_parse_bool(_lookup(data, "optimizeAlpha", "optimize_alpha")),
        remove_watermark=_parse_bool(_lookup(data, "removeWatermark", "remove_watermark")),
        auto_orient=True if auto_orient is None else _parse_bool(auto_orient),
    )
