"""
Command-line front end. It:
1. Reads images from files, directories or ZIP archives
2. Prints size estimates, or
3. Converts the batch and writes .webp files (and optionally a ZIP)

Deployment:
    pip install webpify
    webpify convert photos/ -o out --size 1920 --zip
"""

from .cli import cli, main
from .config import CliConfig

__all__ = ["CliConfig", "cli", "main"]
