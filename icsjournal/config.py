# -*- coding: utf-8 -*-
"""Configuration (JSON on disk) and logging setup."""
from __future__ import annotations

from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional
import json
import logging
import os

APP_NAME = "icsjournal"

CONFIG_ENV = "ICSJOURNAL_CONFIG"
DATA_DIR_ENV = "ICSJOURNAL_DIR"
DEFAULT_DIR_NAME = "icsjournal"

DEFAULT_CONFIG: Dict[str, object] = {
    "data_dir": None,
    "strict_parsing": False,
    "encrypt_new_files": True,
    "log_level": "WARNING",
    "log_file": None,
}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# ---------------------------------------------------------------------
# Config management (JSON on disk)
# ---------------------------------------------------------------------

def _config_dir() -> Path:
    """Return the config directory path for this platform."""
    if os.name == "nt":
        base = os.environ.get("APPDATA", os.path.expanduser("~\\AppData\\Roaming"))
        return Path(base) / APP_NAME
    base = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(base) / APP_NAME

def config_path() -> Path:
    override = os.environ.get(CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    return _config_dir() / "config.json"

def load_config(path: Optional[Path] = None) -> Dict[str, object]:
    """Load the merged configuration (defaults + file)."""
    path = path or config_path()
    if not path.exists():
        save_config(DEFAULT_CONFIG, path)
        return dict(DEFAULT_CONFIG)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    merged = dict(DEFAULT_CONFIG)
    merged.update(data)
    return merged

def save_config(cfg: Dict[str, object], path: Optional[Path] = None) -> None:
    """Persist *cfg* to the JSON config file."""
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(cfg, f, indent=2)

def data_directory(cfg: Optional[Dict[str, object]] = None) -> Path:
    """Where entry files live: env override, then config, then ~/icsjournal."""
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    configured = (cfg or {}).get("data_dir")
    if configured:
        return Path(str(configured)).expanduser()
    return Path.home() / DEFAULT_DIR_NAME


# ---------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------

def setup_logging(level: str = "WARNING", log_file: Optional[str] = None) -> logging.Logger:
    """Configure the package logger.

    Messages go to stderr; with *log_file* they are also written to a
    rotating file (2 MB, 3 backups). Calling this again replaces the
    handlers installed by a previous call.
    """
    logger = logging.getLogger(APP_NAME)
    logger.setLevel(getattr(logging, str(level).upper(), logging.WARNING))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream = logging.StreamHandler()
    stream.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(stream)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(path, maxBytes=2_000_000, backupCount=3, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
