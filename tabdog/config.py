"""
Application settings, persisted as YAML.

    ~/.tabdog/config.yaml   (override with TABDOG_CONFIG)
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".tabdog" / "config.yaml"
CONFIG_ENV_VAR = "TABDOG_CONFIG"

_settings: Optional[AppSettings] = None


@dataclass
class AppSettings:
    """User-tunable settings."""
    db_path: str = str(Path.home() / ".tabdog" / "tabdog.db")

    # Management view
    batch_size: int = 20
    placeholder_name: str = "Session"
    max_session_name_length: int = 120

    # Browser
    devtools_host: str = "127.0.0.1"
    devtools_port: int = 9222
    extension_url_prefix: str = "chrome-extension://"

    # Backups
    product_name: str = "tabdog"

    log_level: str = "INFO"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> AppSettings:
        """Deserialize, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown settings: {', '.join(sorted(unknown))}")

        settings = cls(**{k: v for k, v in data.items() if k in known})
        if settings.batch_size < 1:
            logger.warning(f"batch_size {settings.batch_size} invalid, using 20")
            settings.batch_size = 20
        return settings


def config_path() -> Path:
    env = os.environ.get(CONFIG_ENV_VAR)
    return Path(env).expanduser() if env else DEFAULT_CONFIG_PATH


def load_settings(path: Path = None) -> AppSettings:
    """Read settings from disk; defaults for anything missing or broken."""
    path = path or config_path()
    if not path.exists():
        logger.debug(f"No config at {path}, using defaults")
        return AppSettings()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Cannot read config {path}: {e} - using defaults")
        return AppSettings()

    if not isinstance(data, dict):
        logger.warning(f"Config {path} is not a mapping - using defaults")
        return AppSettings()

    return AppSettings.from_dict(data)


def get_settings() -> AppSettings:
    """Process-wide settings, loaded on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def save_settings(settings: AppSettings, path: Path = None) -> None:
    global _settings
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(settings.to_dict(), f, default_flow_style=False, sort_keys=False)

    _settings = settings
    logger.info(f"Settings saved: {path}")
