"""Text rendering for node metadata."""

from collections.abc import Mapping
from typing import Any


def format_metadata(
    metadata: Mapping[Any, Any] | None,
    prefix: str = "",
    key_contains: str | None = None,
) -> list[str]:
    """
    Render metadata entries as `"<prefix> key = value"` lines.

    Args:
        metadata: Entries to render
        prefix: Prepended to every line
        key_contains: Only render keys containing this substring

    Returns:
        One line per entry, or a single "[No metadata]" line when empty
    """
    if not metadata:
        return [f"{prefix} [No metadata]" if prefix else "[No metadata]"]
    lines = []
    for key, value in metadata.items():
        if key_contains is not None and key_contains not in str(key):
            continue
        lines.append(f"{prefix} {key} = {value}" if prefix else f"{key} = {value}")
    return lines
