"""Batch conversion and download routes."""

from __future__ import annotations

import io
import logging

from flask import Blueprint, abort, current_app, jsonify, request, send_file
from werkzeug.utils import secure_filename

from webpify_shared.archive import ArchiveFailure
from webpify_shared.files import is_valid_image

from .settings import options_from_request

logger = logging.getLogger(__name__)

conversions_bp = Blueprint("conversions", __name__, url_prefix="/api")


def uploaded_images() -> list[tuple[str, bytes]]:
    """(name, bytes) for every JPEG/PNG upload, in submission order."""
    images: list[tuple[str, bytes]] = []
    for f in request.files.getlist("files"):
        filename = secure_filename(f.filename or "")
        if not filename:
            logger.warning("Skipping upload with invalid filename: %r", f.filename)
            continue
        if not is_valid_image(filename):
            logger.warning("Skipping unsupported upload: %s", filename)
            continue
        images.append((filename, f.read()))
    return images


@conversions_bp.post("/convert")
def convert():
    """Convert every uploaded image with one settings snapshot."""
    batch_service = current_app.config["batch_service"]

    options = options_from_request()
    images = uploaded_images()
    if not images:
        abort(400, description="No JPEG or PNG files in field 'files'")

    return jsonify(batch_service.run_batch(images, options))


@conversions_bp.get("/files/<int:batch_id>/<path:filename>")
def serve_output_webp(batch_id: int, filename: str):
    """Serve a converted WebP file."""
    batch_service = current_app.config["batch_service"]

    if not batch_service.has_batch(batch_id):
        abort(404, description="Batch not found")

    result = batch_service.get_result(batch_id, filename)
    if result is None:
        abort(404, description="File not found")

    return send_file(
        io.BytesIO(result.encoded_bytes),
        mimetype="image/webp",
        as_attachment=True,
        download_name=filename,
    )


@conversions_bp.get("/archive/<int:batch_id>")
def download_archive(batch_id: int):
    """Download every converted image of a batch as one ZIP."""
    batch_service = current_app.config["batch_service"]
    archive_name = current_app.config["archive_name"]

    try:
        blob = batch_service.build_archive(batch_id)
    except KeyError:
        abort(404, description="Batch not found")
    except ArchiveFailure as e:
        logger.error("Archive for batch %d failed: %s", batch_id, e)
        return jsonify({"type": "archive_error", "error": "Failed to create ZIP file"}), 500

    return send_file(
        io.BytesIO(blob),
        mimetype="application/zip",
        as_attachment=True,
        download_name=archive_name,
    )
