"""Environment access shared by every tool in the suite.

Values come from the process environment, topped up once from a `.env` file
in the working directory (python-dotenv). Existing variables win.
"""

from __future__ import annotations
import os
from typing import List, Optional
from dotenv import load_dotenv

_loaded = False

TRUTHY = {"1", "true", "yes", "on"}
FALSY = {"0", "false", "no", "off"}


def _ensure_loaded() -> None:
    global _loaded
    if not _loaded:
        load_dotenv(override=False)
        _loaded = True


def env(key: str, default: Optional[str] = None) -> Optional[str]:
    """Return environment variable *key* (or *default* when unset/blank)."""
    _ensure_loaded()
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def env_bool(key: str, default: bool = False) -> bool:
    value = env(key)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in TRUTHY:
        return True
    if lowered in FALSY:
        return False
    raise ValueError(f"{key}: expected a boolean, got {value!r}")


def env_list(key: str, default: Optional[List[str]] = None) -> List[str]:
    """Comma-separated variable -> list of stripped, non-empty items."""
    value = env(key)
    if value is None:
        return list(default or [])
    return [item.strip() for item in value.split(",") if item.strip()]
