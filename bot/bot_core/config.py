"""
Paths, logging setup, config load/save, safe_print.
"""

import os
import sys
import json
import logging
from pathlib import Path

from .constants import (
    LOGIN_POLL_INTERVAL_SEC, LOGIN_TIMEOUT_SEC,
    SYNC_BACKOFF_INITIAL_SEC, SYNC_BACKOFF_MAX_SEC,
)


# ─── Paths ───────────────────────────────────────────────────────
# One config per machine unless BOT_HOME says otherwise.
_FOLDER_NAME = ".wxbot"

BASE_DIR = Path(os.environ.get("BOT_HOME") or Path.home() / _FOLDER_NAME)

CONFIG_FILE = BASE_DIR / "config.json"

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
_LOG_MAX_BYTES = 1_000_000

DEFAULTS = {
    "deviceId": None,
    "storageFile": None,
    "loginPollIntervalSec": LOGIN_POLL_INTERVAL_SEC,
    "loginTimeoutSec": LOGIN_TIMEOUT_SEC,
    "syncBackoff": False,
    "syncBackoffInitialSec": SYNC_BACKOFF_INITIAL_SEC,
    "syncBackoffMaxSec": SYNC_BACKOFF_MAX_SEC,
}


# ─── Safe print (no crash without a console) ─────────────────────

def safe_print(*args, **kwargs):
    try:
        print(*args, **kwargs)
    except (OSError, ValueError):
        pass


# ─── Logging ─────────────────────────────────────────────────────

log = logging.getLogger("bot")


def setup_logging(log_file=None, level=logging.INFO):
    """
    Attach file + console handlers to the shared ``bot`` logger.
    Safe to call more than once; existing handlers are replaced.
    """
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT)

    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        try:
            if log_file.exists() and log_file.stat().st_size > _LOG_MAX_BYTES:
                log_file.write_text("")
        except OSError:
            pass
        file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        file_handler.setFormatter(formatter)
        log.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    log.addHandler(console_handler)

    log.setLevel(level)
    log.propagate = False
    return log


# ─── Config Management ──────────────────────────────────────────

def load_config(path=CONFIG_FILE):
    """Load config from disk. Returns dict (defaults filled in) or None."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError):
        log.warning("Ignoring unreadable config at %s", path)
        return None
    if not isinstance(data, dict):
        log.warning("Ignoring config at %s: expected a JSON object", path)
        return None
    return with_defaults(data)


def save_config(config, path=CONFIG_FILE):
    """Save config dict to disk."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)
    log.info("Config saved to %s", path)


def with_defaults(config=None):
    """Return a copy of ``config`` with every missing key set to its default."""
    merged = dict(DEFAULTS)
    if config:
        merged.update(config)
    return merged
