"""Utility helpers."""

from flowforge.utils.io import atomic_write
from flowforge.utils.metadata import format_metadata

__all__ = ["atomic_write", "format_metadata"]
