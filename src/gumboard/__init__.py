# src/gumboard/__init__.py
"""
Root package of the gumboard checklist service.

Metadata only, no side-effect imports and no ENV reads here.
"""
from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _pkg_version

try:
    __version__: str = _pkg_version("gumboard")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = ["__version__"]
