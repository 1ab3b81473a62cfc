"""Size estimate route."""

from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, abort, jsonify, request

from webpify_converter import ConversionError, estimate_for, probe_dimensions, total_estimate
from webpify_shared.files import format_file_size
from webpify_shared.options import ConversionOptions

from .conversions import uploaded_images
from .settings import options_from_request

logger = logging.getLogger(__name__)

estimates_bp = Blueprint("estimates", __name__, url_prefix="/api")


def _parse_dimension(value: Any) -> int | None:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


def _described_images() -> list[tuple[str, int | None, int | None]]:
    body = request.get_json(silent=True) or {}
    images = body.get("images")
    if not isinstance(images, list):
        abort(400, description="images must be a list of {name, width, height}")

    out = []
    for i, item in enumerate(images):
        if not isinstance(item, dict):
            abort(400, description=f"images[{i}] must be an object")
        out.append((
            str(item.get("name") or f"image-{i}"),
            _parse_dimension(item.get("width")),
            _parse_dimension(item.get("height")),
        ))
    return out


def _uploaded_dimensions(options: ConversionOptions) -> list[tuple[str, int | None, int | None]]:
    out = []
    for name, data in uploaded_images():
        try:
            width, height = probe_dimensions(data, name, auto_orient=options.auto_orient)
        except ConversionError as e:
            logger.warning("Cannot estimate %s: %s", name, e.message)
            out.append((name, None, None))
            continue
        out.append((name, width, height))
    return out


@estimates_bp.post("/estimate")
def estimate():
    """
    Predict output sizes without converting.

    Accepts a JSON body {"settings": {...}, "images": [{name, width, height}]}
    or a multipart upload of the images themselves.
    """
    options = options_from_request()
    images = _described_images() if request.is_json else _uploaded_dimensions(options)

    estimates: list[dict[str, Any]] = []
    records = []
    for name, width, height in images:
        if width is None or height is None:
            records.append(None)
            estimates.append({"name": name, "predicted_bytes": None, "label": "--"})
            continue

        record = estimate_for(width, height, options)
        records.append(record)
        estimates.append({
            "name": name,
            "width": width,
            "height": height,
            "output_width": record.output_width,
            "output_height": record.output_height,
            "predicted_bytes": record.predicted_bytes,
            "label": f"~{format_file_size(record.predicted_bytes)}",
        })

    total = total_estimate(records)
    return jsonify({
        "estimates": estimates,
        "total": total,
        "total_label": f"~{format_file_size(total)}" if total > 0 else "--",
    })
