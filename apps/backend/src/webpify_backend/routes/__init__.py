"""Backend HTTP routes."""

from .conversions import conversions_bp
from .estimates import estimates_bp

__all__ = ["conversions_bp", "estimates_bp"]
