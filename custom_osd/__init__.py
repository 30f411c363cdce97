"""Per-monitor on-screen display styling and lifecycle control."""
from __future__ import annotations

from custom_osd.version import __version__

__all__ = ["__version__"]
