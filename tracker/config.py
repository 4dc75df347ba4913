"""
Tracker Configuration

Settings are resolved in three layers, lowest precedence first:
1. TrackerConfig defaults
2. YAML file (explicit path or TRACKER_CONFIG_FILE)
3. TRACKER_* environment variables
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger("tracker_config")

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------
CONFIG_FILE_ENV = "TRACKER_CONFIG_FILE"

ENV_VARS: Dict[str, str] = {
    "data_dir": "TRACKER_DATA_DIR",
    "api_prefix": "TRACKER_API_PREFIX",
    "store_timeout_seconds": "TRACKER_STORE_TIMEOUT",
    "session_expiry_hours": "TRACKER_SESSION_EXPIRY_HOURS",
    "atomic_quota_check": "TRACKER_ATOMIC_QUOTA_CHECK",
    "log_level": "TRACKER_LOG_LEVEL",
    "host": "TRACKER_HOST",
    "port": "TRACKER_PORT",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


# -----------------------------------------------------------------------------
# Config Model
# -----------------------------------------------------------------------------
@dataclass
class TrackerConfig:
    """Runtime settings for the tracker service."""
    data_dir: Path = Path("data/tracker")
    api_prefix: str = "/api"
    store_timeout_seconds: float = 5.0
    session_expiry_hours: int = 24
    # False reproduces the unguarded count-then-insert quota check
    atomic_quota_check: bool = True
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


def _coerce(name: str, raw: Any) -> Any:
    """Convert a raw YAML/env value to the type of the named field."""
    try:
        if name == "data_dir":
            return Path(raw)
        if name == "store_timeout_seconds":
            return float(raw)
        if name in ("session_expiry_hours", "port"):
            return int(raw)
        if name == "atomic_quota_check":
            if isinstance(raw, bool):
                return raw
            text = str(raw).strip().lower()
            if text in _TRUE_VALUES:
                return True
            if text in _FALSE_VALUES:
                return False
            raise ValueError(f"not a boolean: {raw!r}")
        if name == "api_prefix":
            prefix = str(raw).rstrip("/")
            if prefix and not prefix.startswith("/"):
                prefix = "/" + prefix
            return prefix
        if name == "log_level":
            return str(raw).upper()
        return str(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {e}") from e


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_config(path: Optional[Path] = None) -> TrackerConfig:
    """
    Build a TrackerConfig from defaults, an optional YAML file and the
    environment.

    Args:
        path: YAML config file; falls back to TRACKER_CONFIG_FILE when omitted

    Raises:
        ConfigError: file unreadable or a value cannot be converted
    """
    config = TrackerConfig()
    known = {f.name for f in fields(TrackerConfig)}

    file_path = path or os.getenv(CONFIG_FILE_ENV)
    if file_path:
        for key, value in _read_yaml(Path(file_path)).items():
            if key not in known:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            setattr(config, key, _coerce(key, value))

    for name, env_name in ENV_VARS.items():
        raw = os.getenv(env_name)
        if raw is not None and raw != "":
            setattr(config, name, _coerce(name, raw))

    return config
