# src/__init__.py — v1
"""assetforge — asset generation pipeline backend."""

from assetforge.version import __version__

__all__ = ["__version__"]
