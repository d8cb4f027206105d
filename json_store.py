"""Small JSON file helpers shared by settings, leaderboard and autosave.

Reads treat a missing or corrupt file as absent. Writes go to a temp file
in the same directory and are moved into place with os.replace, so a crash
mid-write never leaves a truncated file behind.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def read_json(path):
    """Return parsed JSON from path, or None if missing/corrupt/unreadable."""
    path = Path(path)
    try:
        return json.loads(path.read_text())
    except FileNotFoundError:
        return None
    except (json.JSONDecodeError, UnicodeDecodeError, OSError):
        logger.warning("Ignoring unreadable JSON file %s", path, exc_info=True)
        return None


def write_json_atomic(path, data) -> bool:
    """Write data as JSON to path atomically. Returns False on OS errors."""
    path = Path(path)
    try:
        raw = json.dumps(data, indent=2).encode()
        fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
        closed = False
        try:
            os.write(fd, raw)
            os.close(fd)
            closed = True
            os.replace(tmp, path)
        except BaseException:
            if not closed:
                os.close(fd)
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise
    except OSError:
        logger.warning("Could not write %s", path, exc_info=True)
        return False
    return True


def remove_file(path) -> None:
    """Delete path if it exists."""
    try:
        Path(path).unlink()
    except FileNotFoundError:
        pass
