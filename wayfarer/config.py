"""
User configuration persistence.

Stores settings like the save directory and log level in a JSON file
that lives alongside the saves.
"""

import json
from pathlib import Path
from typing import TypedDict

from .state.schema import DEFAULT_START_LOCATION_ID


class Config(TypedDict, total=False):
    """User configuration."""
    save_dir: str  # Where world snapshots are written
    log_level: str  # DEBUG, INFO, WARNING, ERROR
    starting_location_id: str  # Spawn point for new and reborn heroes
    random_seed: int | None  # Fixed seed for reproducible sessions


DEFAULT_CONFIG: Config = {
    "save_dir": "saves",
    "log_level": "WARNING",
    "starting_location_id": DEFAULT_START_LOCATION_ID,
    "random_seed": None,
}


def get_config_path(save_dir: Path | str = "saves") -> Path:
    """Get path to config file."""
    return Path(save_dir) / ".wayfarer_config.json"


def load_config(save_dir: Path | str = "saves") -> Config:
    """Load config from file, or return defaults if not found."""
    path = get_config_path(save_dir)

    if not path.exists():
        return DEFAULT_CONFIG.copy()

    try:
        with open(path, "r", encoding="utf-8") as f:
            saved = json.load(f)
        # Merge with defaults to handle missing keys
        config = DEFAULT_CONFIG.copy()
        config.update(saved)
        return config
    except (json.JSONDecodeError, IOError):
        return DEFAULT_CONFIG.copy()


def save_config(config: Config, save_dir: Path | str = "saves") -> bool:
    """Save config to file. Returns True on success."""
    path = get_config_path(save_dir)

    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        return True
    except IOError:
        return False


def set_log_level(level: str, save_dir: Path | str = "saves") -> None:
    """Save log level preference."""
    config = load_config(save_dir)
    config["log_level"] = level.upper()
    save_config(config, save_dir)
