"""Persistent preferences for gcp-labkit.

Preferences live next to the default config file, in the XDG config home:
~/.config/gcp-labkit/preferences.json

Only one key is used today: ``config_path``, which points the config loader
at a YAML file outside the default location.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

PREFERENCES_DIR = Path.home() / ".config" / "gcp-labkit"
PREFERENCES_FILE = PREFERENCES_DIR / "preferences.json"


def _read_all() -> Dict[str, Any]:
    """
    Read the preferences file.

    A missing or corrupt file reads as no preferences; a corrupt file is
    reported so the operator can fix or delete it.
    """
    if not PREFERENCES_FILE.exists():
        return {}

    try:
        with open(PREFERENCES_FILE, 'r') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable preferences file {PREFERENCES_FILE}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Ignoring preferences file {PREFERENCES_FILE}: expected a JSON object")
        return {}
    return data


def _write_all(preferences: Dict[str, Any]) -> None:
    PREFERENCES_DIR.mkdir(parents=True, exist_ok=True)
    with open(PREFERENCES_FILE, 'w') as f:
        json.dump(preferences, f, indent=2)


def get_preference(key: str) -> Optional[str]:
    """Return the stored value for ``key``, or None."""
    return _read_all().get(key)


def set_preference(key: str, value: str) -> None:
    """Store ``value`` under ``key``, replacing any previous value."""
    preferences = _read_all()
    preferences[key] = value
    _write_all(preferences)
    logger.debug(f"Preference '{key}' set to: {value}")


def clear_preference(key: str) -> None:
    """Remove ``key``. Clearing an unset key is a no-op."""
    preferences = _read_all()
    if key not in preferences:
        logger.debug(f"Preference '{key}' not set, nothing to clear")
        return
    del preferences[key]
    _write_all(preferences)
    logger.debug(f"Preference '{key}' cleared")
