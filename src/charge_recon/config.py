"""Configuration management for charge-recon."""

import json
import os
from pathlib import Path
from typing import Any

from charge_recon.models import ReconcileOptions
from charge_recon.patterns import KNOWN_CREDIT_CHARGE_DESCRIPTIONS

# Default config filename
CONFIG_FILENAME = "config.json"

OPTION_KEYS = (
    "days_before_charge",
    "days_after_charge",
    "tolerance_ratio",
    "min_tolerance_amount",
)


def get_config_dir() -> Path:
    """Get the config directory path (XDG compliant)."""
    xdg_config_home = os.getenv("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    return Path(xdg_config_home) / "charge-recon"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_config_dir() / CONFIG_FILENAME


def find_config_file() -> Path | None:
    """Find the config file in standard locations.

    Searches config.json in the current directory first, then
    ~/.config/charge-recon/config.json (or under $XDG_CONFIG_HOME).
    """
    for path in (Path(CONFIG_FILENAME), get_config_path()):
        if path.exists():
            return path
    return None


def load_json_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file.

    Raises:
        ValueError: If the file does not hold a JSON object
    """
    with open(config_path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{config_path}: expected a JSON object")
    return data


def save_json_config(config: dict[str, Any], config_path: Path | None = None) -> Path:
    """Save configuration to a JSON file.

    Args:
        config: Configuration dictionary to save
        config_path: Path to save to (defaults to XDG config location)

    Returns:
        Path where config was saved
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2, ensure_ascii=False)
        f.write("\n")

    return config_path


def load_config(config_path: Path | None = None) -> dict[str, Any] | None:
    """Load configuration from an explicit path or the standard locations.

    Returns:
        Loaded config dict or None if not found
    """
    if config_path:
        return load_json_config(config_path)

    config_file = find_config_file()
    if config_file:
        return load_json_config(config_file)

    return None


def get_reconcile_options(
    config: dict[str, Any] | None = None,
    overrides: dict[str, Any] | None = None,
) -> ReconcileOptions:
    """Build matching options from config, with non-None overrides winning.

    Args:
        config: Loaded JSON config
        overrides: Values from the command line, keyed like OPTION_KEYS

    Returns:
        ReconcileOptions (defaults for anything not configured)

    Raises:
        ValueError: If the section is not an object, or a value is negative
            or not numeric
    """
    values: dict[str, Any] = {}
    if config:
        section = config.get("reconciliation") or {}
        if not isinstance(section, dict):
            raise ValueError("'reconciliation' must be a JSON object")
        values.update({k: section[k] for k in OPTION_KEYS if section.get(k) is not None})
    if overrides:
        values.update({k: v for k, v in overrides.items() if k in OPTION_KEYS and v is not None})

    try:
        return ReconcileOptions(**values)
    except (ArithmeticError, TypeError) as e:
        raise ValueError(f"Invalid reconciliation option: {e}") from e


def get_patterns_dir(
    config: dict[str, Any] | None = None,
    override: Path | None = None,
) -> Path | None:
    """Get the directory holding the pattern rules file."""
    if override:
        return override
    if config and config.get("patterns_dir"):
        return Path(config["patterns_dir"]).expanduser()
    return None


def get_known_descriptions(config: dict[str, Any] | None = None) -> tuple[str, ...]:
    """Get card issuer names used to flag payoffs with missing card detail."""
    if config and isinstance(config.get("known_descriptions"), list):
        return tuple(str(v) for v in config["known_descriptions"] if str(v).strip())
    return KNOWN_CREDIT_CHARGE_DESCRIPTIONS


def create_default_config() -> dict[str, Any]:
    """Create a default configuration."""
    defaults = ReconcileOptions()
    return {
        "reconciliation": {
            "days_before_charge": defaults.days_before_charge,
            "days_after_charge": defaults.days_after_charge,
            "tolerance_ratio": str(defaults.tolerance_ratio),
            "min_tolerance_amount": str(defaults.min_tolerance_amount),
        },
        "patterns_dir": None,
        "known_descriptions": list(KNOWN_CREDIT_CHARGE_DESCRIPTIONS),
    }
