"""
Configuration loader — reads phpvm.yml into the Settings model.

Search order for the settings file:
    explicit path (``--config``)  >  $PHPVM_CONFIG  >  <config_dir>/phpvm.yml

The file is optional; a missing file yields defaults.  Environment
overrides (``PHPVM_BASE_DIR``, ``PHPVM_BIN_DIR``) are applied last.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from src.core.models.settings import Settings
from src.core.services.php_install.detection.environment import detect_invoking_user

logger = logging.getLogger(__name__)

SETTINGS_FILE = "phpvm.yml"

_ENV_OVERRIDES: dict[str, str] = {
    "PHPVM_BASE_DIR": "base_dir",
    "PHPVM_BIN_DIR": "system_bin_dir",
}


class ConfigError(Exception):
    """Raised when phpvm.yml is invalid or unreadable."""


def default_config_dir() -> Path:
    """``~/.config/phpvm`` of the invoking user (the sudo caller when elevated)."""
    user = detect_invoking_user()
    home = user.home or str(Path.home())
    return Path(home) / ".config" / "phpvm"


def find_settings_file(explicit: Path | None = None) -> Path | None:
    """Locate phpvm.yml. Returns None when no candidate exists."""
    if explicit is not None:
        return explicit

    env_path = os.environ.get("PHPVM_CONFIG")
    if env_path:
        return Path(env_path)

    candidate = default_config_dir() / SETTINGS_FILE
    return candidate if candidate.is_file() else None


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit settings file. If None, searches the default locations.

    Returns:
        Validated Settings model with ``config_dir`` always populated.

    Raises:
        ConfigError: If an explicitly named file is missing or any file is invalid.
    """
    path = find_settings_file(path)
    data: dict = {}

    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Settings file not found: {path}")

        logger.debug("Loading settings from %s", path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e

        try:
            loaded = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Expected a YAML mapping in {path}, got {type(loaded).__name__}")

        # The file may wrap everything under a "phpvm" key or be flat
        data = loaded.get("phpvm", loaded) if isinstance(loaded.get("phpvm"), dict) else loaded

    for env_var, field_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            data[field_name] = value

    try:
        settings = Settings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    if not settings.config_dir:
        settings.config_dir = str(default_config_dir())

    logger.info("Settings: base_dir=%s bin=%s", settings.base_dir, settings.system_bin_dir)
    return settings
