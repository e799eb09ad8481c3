# taskpulse/config/config_manager.py
'''
config_manager.py - Configuration management for taskpulse
'''
from importlib.resources import files
import logging
import os
from pathlib import Path
from typing import Any, Dict
import toml


logger = logging.getLogger(__name__)

if "BASE_DIR" not in globals():
    _home = os.getenv("TASKPULSE_HOME")
    _xdg = os.getenv("XDG_CONFIG_HOME")
    if _home:
        BASE_DIR = Path(_home)
    elif _xdg:
        BASE_DIR = Path(_xdg) / "taskpulse"
    else:
        BASE_DIR = Path.home() / ".taskpulse"

if "USER_CONFIG" not in globals():
    USER_CONFIG = BASE_DIR / "config.toml"

if "DEFAULT_CONFIG" not in globals():
    # the shipped defaults, read from package resources
    DEFAULT_CONFIG = files("taskpulse.config") \
        .joinpath("config.toml") \
        .read_text(encoding="utf-8")


def load_config() -> dict:
    """
    Load the user configuration from USER_CONFIG file.
    - If the config directory or file does not exist, create them with defaults.
    - Returns a dict parsed from TOML; on error, logs and returns empty dict.
    """
    try:
        # Ensure config directory exists
        BASE_DIR.mkdir(parents=True, exist_ok=True)
        # If no user config file, write default contents
        if not USER_CONFIG.exists():
            try:
                USER_CONFIG.write_text(DEFAULT_CONFIG, encoding="utf-8")
            except Exception as e:
                logger.error(
                    f"Failed to write default config to {USER_CONFIG}: {e}", exc_info=True)
        # Read file contents
        try:
            text = USER_CONFIG.read_text(encoding="utf-8")
        except Exception as e:
            logger.error(
                f"Failed to read config file {USER_CONFIG}: {e}", exc_info=True)
            return {}
        # Parse TOML
        try:
            return toml.loads(text)
        except Exception as e:
            logger.error(
                f"Failed to parse TOML from {USER_CONFIG}: {e}", exc_info=True)
            return {}
    except Exception as e:
        logger.error(f"Unexpected error in load_config: {e}", exc_info=True)
        return {}


def save_config(doc: dict) -> bool:
    """
    Save the given config dict to USER_CONFIG in TOML format.
    - On error, logs and returns False; otherwise returns True.
    """
    try:
        BASE_DIR.mkdir(parents=True, exist_ok=True)
    except Exception as e:
        logger.error(
            f"Failed to ensure config directory {BASE_DIR}: {e}", exc_info=True)
    try:
        toml_str = toml.dumps(doc)
    except Exception as e:
        logger.error(f"Failed to serialize config to TOML: {e}", exc_info=True)
        return False
    try:
        USER_CONFIG.write_text(toml_str, encoding="utf-8")
        return True
    except Exception as e:
        logger.error(
            f"Failed to write config to {USER_CONFIG}: {e}", exc_info=True)
        return False


def get_config_value(section: str, key: str, default=None) -> Any:
    """
    Return value for [section][key] in config, or default if missing.
    """
    try:
        config = load_config()
        return config.get(section, {}).get(key, default)
    except Exception as e:
        logger.error(
            f"Error getting config value for [{section}][{key}]: {e}", exc_info=True)
        return default


def set_config_value(section: str, key: str, value: Any) -> bool:
    """
    Set config[section][key] = value and persist.
    Returns True if saved successfully, False otherwise.
    """
    try:
        config = load_config()
    except Exception as e:
        logger.error(f"Error loading config to set value: {e}", exc_info=True)
        config = {}
    try:
        sec = config.get(section, {}) or {}
        sec[key] = value
        config[section] = sec
        success = save_config(config)
        if not success:
            logger.error(
                f"Failed to save config after setting [{section}][{key}]")
        return success
    except Exception as e:
        logger.error(
            f"Error setting config value for [{section}][{key}]: {e}", exc_info=True)
        return False


def get_config_section(section: str) -> Dict[str, Any]:
    """
    Return a whole [section] as a dict; empty dict if missing or not a table.
    """
    try:
        sec = load_config().get(section, {})
        if not isinstance(sec, dict):
            logger.warning(f"[{section}] is not a table in config: {sec!r}")
            return {}
        return sec
    except Exception as e:
        logger.error(f"Error reading config section [{section}]: {e}", exc_info=True)
        return {}


def get_data_dir() -> Path:
    """
    Directory holding the JSON documents: [storage] data_dir, or BASE_DIR/data.
    """
    configured = get_config_value("storage", "data_dir", "") or ""
    return Path(configured).expanduser() if configured else BASE_DIR / "data"


def get_log_dir() -> Path:
    """[logging] dir, or BASE_DIR/logs."""
    configured = get_config_value("logging", "dir", "") or ""
    return Path(configured).expanduser() if configured else BASE_DIR / "logs"


def get_default_preferences():
    """
    [preferences] merged over the built-in defaults. Invalid values are
    logged and replaced by the default.
    """
    from taskpulse.utils.db.models import UserPreferences, ViewFilter

    prefs = UserPreferences()
    section = get_config_section("preferences")
    view = section.get("default_view")
    if view is not None:
        try:
            prefs.default_view = ViewFilter(view)
        except ValueError:
            logger.warning(f"Unknown default_view '{view}' in config, using 'today'")
    for key in ("show_completed_tasks", "enable_notifications", "night_mode"):
        if key in section:
            if isinstance(section[key], bool):
                setattr(prefs, key, section[key])
            else:
                logger.warning(f"[preferences] {key} must be true/false, got {section[key]!r}")
    return prefs


def get_scheduler_settings() -> Dict[str, float]:
    """alarm_interval_seconds and alarm_tolerance_minutes with fallbacks."""
    section = get_config_section("scheduler")
    settings = {"alarm_interval_seconds": 60.0, "alarm_tolerance_minutes": 1}
    try:
        settings["alarm_interval_seconds"] = float(
            section.get("alarm_interval_seconds", 60))
        settings["alarm_tolerance_minutes"] = int(
            section.get("alarm_tolerance_minutes", 1))
    except (TypeError, ValueError):
        logger.warning(f"Invalid [scheduler] values {section!r}; using defaults")
        settings = {"alarm_interval_seconds": 60.0, "alarm_tolerance_minutes": 1}
    if settings["alarm_interval_seconds"] <= 0:
        logger.warning("alarm_interval_seconds must be positive; using 60")
        settings["alarm_interval_seconds"] = 60.0
    return settings
