"""Settings parsing shared by the routes."""

from __future__ import annotations

from typing import Any

from flask import abort, current_app, request

from webpify_shared.options import ConversionOptions, OptionsError, parse_options


def settings_from_request() -> dict[str, Any]:
    """Form fields, or the JSON body's "settings" object."""
    if request.is_json:
        body = request.get_json(silent=True) or {}
        settings = body.get("settings") or {}
        if not isinstance(settings, dict):
            abort(400, description="settings must be an object")
        settings = dict(settings)
    else:
        settings = request.form.to_dict()

    if "targetSize" not in settings and "target_size" not in settings:
        settings["targetSize"] = current_app.config["default_target_size"]
    return settings


def options_from_request() -> ConversionOptions:
    try:
        return parse_options(settings_from_request())
    except OptionsError as e:
        abort(400, description=str(e))
