"""streamline.version: the installed distribution's version, or the source-tree fallback."""

from __future__ import annotations

from importlib import metadata as importlib_metadata

# Bump when generated accessor names or dynamic encodings change.
BASE_VERSION = "0.1.0"

DIST_NAME = "streamline-bridge"

try:
    __version__ = importlib_metadata.version(DIST_NAME)
except importlib_metadata.PackageNotFoundError:
    __version__ = f"{BASE_VERSION}+dev"

__all__ = ["__version__", "BASE_VERSION"]
