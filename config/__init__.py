"""
Configuration Package for the Voucher OCR System.

Settings live in config/settings.yaml. Any scalar can be overridden from
the environment without editing the file, which is how deployments pick
a provider or point the harness at another image host:

    VOUCHER_OCR__EXTRACTION__PROVIDER=openrouter
    VOUCHER_OCR__EVALUATION__MAX_WORKERS=2

Double underscores separate levels; values are parsed as YAML scalars so
numbers and booleans keep their types. VOUCHER_OCR_CONFIG selects a
different settings file altogether.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_ENV_VAR = "VOUCHER_OCR_CONFIG"
OVERRIDE_PREFIX = "VOUCHER_OCR__"
PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_SETTINGS = Path(__file__).parent / "settings.yaml"


class ConfigurationManager:
    """
    Process-wide settings store.

    One instance exists per process; constructing it again returns the
    same object. Call reset() to drop it (tests, or after switching
    VOUCHER_OCR_CONFIG).

    Attributes:
        config_path (Path): Settings file in use.

    Example:
        >>> config = ConfigurationManager()
        >>> config.get("extraction.providers.gemini.timeout")
        30
        >>> config.section("classification")["accept_defaulted_expiry"]
        False
    """

    _instance: Optional['ConfigurationManager'] = None

    def __new__(cls, config_path: Optional[str] = None) -> 'ConfigurationManager':
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._ready = False
            cls._instance = instance
        return cls._instance

    def __init__(self, config_path: Optional[str] = None) -> None:
        """
        Args:
            config_path: Settings file. Defaults to $VOUCHER_OCR_CONFIG,
                        then config/settings.yaml.
        """
        if self._ready:
            return

        chosen = config_path or os.environ.get(CONFIG_ENV_VAR)
        self.config_path = Path(chosen) if chosen else DEFAULT_SETTINGS
        self._settings: Dict[str, Any] = {}

        self._load_config()
        self._ready = True

    def _load_config(self) -> None:
        """
        Read the settings file, then apply environment overrides and
        anchor relative paths at the project root.

        Raises:
            FileNotFoundError: If the settings file doesn't exist.
            yaml.YAMLError: If it is not valid YAML.
        """
        if not self.config_path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r', encoding='utf-8') as f:
            self._settings = yaml.safe_load(f) or {}

        self._apply_env_overrides()
        self._anchor_paths()

    def _apply_env_overrides(self) -> None:
        for name, raw_value in os.environ.items():
            if not name.startswith(OVERRIDE_PREFIX):
                continue

            keys = [part.lower() for part in name[len(OVERRIDE_PREFIX):].split('__') if part]
            if not keys:
                continue

            node = self._settings
            for key in keys[:-1]:
                if not isinstance(node.get(key), dict):
                    node[key] = {}
                node = node[key]
            node[keys[-1]] = yaml.safe_load(raw_value) if raw_value else raw_value

    def _anchor_paths(self) -> None:
        paths = self._settings.get('paths')
        if not isinstance(paths, dict):
            return
        for key, value in paths.items():
            if value and not Path(value).is_absolute():
                paths[key] = str(PROJECT_ROOT / value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a dotted key ("extraction.providers.openrouter.model").

        Returns default when any segment is missing or a non-mapping is
        reached before the last segment.
        """
        node: Any = self._settings
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def section(self, key: str) -> Dict[str, Any]:
        """Copy of a mapping-valued setting; empty if absent."""
        value = self.get(key)
        return dict(value) if isinstance(value, dict) else {}

    def get_all(self) -> Dict[str, Any]:
        return dict(self._settings)

    def reload(self) -> None:
        """Re-read the settings file and environment."""
        self._load_config()

    @classmethod
    def reset(cls) -> None:
        cls._instance = None


def get_config(key: str, default: Any = None) -> Any:
    """Shorthand for ConfigurationManager().get(key, default)."""
    return ConfigurationManager().get(key, default)


__all__ = ['ConfigurationManager', 'get_config']
