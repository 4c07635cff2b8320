"""
boardbridge
Session bridge between a host board platform identity and the application's directory
"""

__version__ = "0.1.0"

from .config import settings

__all__ = ["settings", "__version__"]
