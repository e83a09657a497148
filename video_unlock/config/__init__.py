"""Configuration package for the video unlock backend."""
from .settings import get_settings, Settings

__all__ = ["Settings", "get_settings"]
