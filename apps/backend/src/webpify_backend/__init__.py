"""
WebP Backend - Flask API for batch conversion

This app is deployed on the backend server. It:
1. Estimates output sizes for queued images
2. Converts uploaded batches to WebP
3. Serves single results and a ZIP of the whole batch

Deployment:
    pip install webpify
    flask --app webpify_backend.app:create_app run
"""

from .app import create_app
from .config import Config

__all__ = ["create_app", "Config"]
