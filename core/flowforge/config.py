"""Shared flowforge configuration utilities.

Centralises reading of ~/.flowforge/configuration.json so that the CLI
and embedding hosts share one implementation.

Example configuration:
    {
      "history": {"max_history": 200},
      "execution": {"max_steps": 10000},
      "logging": {"level": "DEBUG", "format": "json"}
    }
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from flowforge.history.manager import DEFAULT_MAX_HISTORY

# ---------------------------------------------------------------------------
# Low-level config file access
# ---------------------------------------------------------------------------

FLOWFORGE_CONFIG_FILE = Path(
    os.environ.get("FLOWFORGE_CONFIG", Path.home() / ".flowforge" / "configuration.json")
)


def get_flowforge_config() -> dict[str, Any]:
    """Load flowforge configuration from ~/.flowforge/configuration.json."""
    if not FLOWFORGE_CONFIG_FILE.exists():
        return {}
    try:
        with open(FLOWFORGE_CONFIG_FILE, encoding="utf-8-sig") as f:
            config = json.load(f)
    except (json.JSONDecodeError, OSError):
        return {}
    return config if isinstance(config, dict) else {}


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def get_max_history() -> int:
    """Return the configured undo depth, falling back to DEFAULT_MAX_HISTORY."""
    return get_flowforge_config().get("history", {}).get("max_history", DEFAULT_MAX_HISTORY)


def get_max_steps() -> int | None:
    """Return the configured per-run node limit (None = unbounded)."""
    return get_flowforge_config().get("execution", {}).get("max_steps")


def get_log_level() -> str:
    return get_flowforge_config().get("logging", {}).get("level", "INFO")


def get_log_format() -> str:
    return get_flowforge_config().get("logging", {}).get("format", "auto")


# ---------------------------------------------------------------------------
# RuntimeConfig – shared by the CLI and embedding hosts
# ---------------------------------------------------------------------------


@dataclass
class RuntimeConfig:
    """Workflow runtime configuration loaded from ~/.flowforge/configuration.json."""

    max_history: int = field(default_factory=get_max_history)
    max_steps: int | None = field(default_factory=get_max_steps)
    log_level: str = field(default_factory=get_log_level)
    log_format: str = field(default_factory=get_log_format)
