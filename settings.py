"""Persistent settings for Big Monte.

Stores user preferences in ~/.big_monte_settings.json.
No UI dependency; follows the same pattern as score_history.py.
"""

from pathlib import Path

from json_store import read_json, write_json_atomic

DICE_COLOR_HEX = {
    "blue": "#3b82f6",
    "red": "#ef4444",
    "purple": "#a855f7",
    "slate": "#94a3b8",
}

MAX_USERNAME_LENGTH = 24

DEFAULTS = {
    "preferred_username": "",
    "dice_color": "blue",
    "held_color": "blue",
    "dark_mode": False,
    "sound_enabled": True,
}

_COLOR_BY_HEX = {hex_code: key for key, hex_code in DICE_COLOR_HEX.items()}


def _default_path():
    """Return the default path for the settings file."""
    return Path.home() / ".big_monte_settings.json"


def to_color_key(value, fallback="blue"):
    """Map a preset key or preset hex code to its key; anything else gives fallback."""
    if not isinstance(value, str):
        return fallback
    trimmed = value.strip()
    if trimmed.startswith("#"):
        return _COLOR_BY_HEX.get(trimmed.lower(), fallback)
    return trimmed if trimmed in DICE_COLOR_HEX else fallback


def sanitize_username(value):
    if not isinstance(value, str):
        return ""
    return value.strip()[:MAX_USERNAME_LENGTH]


def sanitize_settings(data):
    """Return a complete settings dict built from data, repairing bad values."""
    if not isinstance(data, dict):
        return dict(DEFAULTS)
    result = dict(DEFAULTS)
    result["preferred_username"] = sanitize_username(data.get("preferred_username"))
    result["dice_color"] = to_color_key(data.get("dice_color"), DEFAULTS["dice_color"])
    result["held_color"] = to_color_key(data.get("held_color"), DEFAULTS["held_color"])
    for key in ("dark_mode", "sound_enabled"):
        if isinstance(data.get(key), bool):
            result[key] = data[key]
    return result


def load_settings(path=None):
    """Load settings from JSON file. Returns DEFAULTS on missing/corrupt.

    Merges with DEFAULTS so missing keys get default values.
    Unknown keys are ignored and invalid values are replaced.
    """
    if path is None:
        path = _default_path()
    return sanitize_settings(read_json(path))


def save_settings(settings, path=None):
    """Write settings dict to JSON. Returns False if the write failed."""
    if path is None:
        path = _default_path()
    return write_json_atomic(path, sanitize_settings(settings))
