"""modresolver: SAT-based dependency resolution for game mod loaders."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"
