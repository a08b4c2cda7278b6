"""
Framework Configuration

Loads playsession.yml, applies .env and environment overrides, and exposes
values through dotted paths (e.g. ``screenshots.on_error``).
"""

import copy
import logging
import os
from typing import Any, Dict, Mapping, Optional, Protocol

import yaml
from dotenv import load_dotenv

from ..exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "playsession.yml"

VALID_BROWSERS = ('chromium', 'firefox', 'webkit', 'chrome', 'msedge')
VALID_LOG_LEVELS = ('critical', 'fatal', 'error', 'warning', 'info', 'debug')
VALID_DIALOG_POLICIES = ('accept', 'dismiss', 'ignore')


class ConfigProvider(Protocol):
    """Anything that can answer dotted-path configuration lookups."""

    def get(self, path: str, default: Any = None) -> Any:
        ...


def _default_config() -> Dict[str, Any]:
    return {
        "browser": {
            "type": "chromium",
            "headless": True,
            "viewport": {"width": 1280, "height": 800},
            "timeout": 30000,
            "slow_mo": 0,
            "args": [],
            "ignore_https_errors": False,
        },
        "timeouts": {
            "navigation": 30000,
            "element": 10000,
            "action": 5000,
        },
        "screenshots": {
            "enabled": True,
            "on_error": True,
            "path": "screenshots",
            "full_page": False,
            "format": "png",
        },
        "logging": {
            "level": "info",
            "console": True,
            "file": False,
            "path": "logs",
        },
        "paths": {
            "states": "session_states",
            "downloads": "downloads",
        },
        "retry": {
            "max_attempts": 3,
            "delay": 1000,
            "backoff": True,
        },
        "session": {
            "dialog_policy": "accept",
            "highlight_interactions": False,
            "keep_failed_sessions": False,
        },
        "environment": {
            "name": "development",
            "base_url": None,
        },
    }


# Overrides layered on top of the defaults by environment name.
ENVIRONMENT_PRESETS: Dict[str, Dict[str, Any]] = {
    "development": {
        "browser": {"headless": False, "slow_mo": 100, "timeout": 60000},
        "logging": {"level": "debug"},
    },
    "ci": {
        "browser": {
            "headless": True,
            "args": ['--no-sandbox', '--disable-setuid-sandbox', '--disable-dev-shm-usage', '--disable-gpu'],
            "ignore_https_errors": True,
        },
        "retry": {"max_attempts": 2, "delay": 2000},
    },
}


def deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``base`` with ``override`` merged in, recursing into dicts."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class FrameworkConfig:
    """
    Layered configuration: defaults < preset < file < explicit overrides < environment.

    Args:
        config_path: YAML file to load. ``None`` skips file loading entirely.
        overrides: Values merged on top of the file.
        environ: Environment mapping, ``os.environ`` when omitted.
        load_env_file: Whether to read a ``.env`` file into the environment first.
    """

    def __init__(self, config_path: Optional[str] = DEFAULT_CONFIG_FILE,
                 overrides: Optional[Mapping[str, Any]] = None,
                 environ: Optional[Mapping[str, str]] = None,
                 load_env_file: bool = True):
        self.config_path = config_path
        self.overrides = dict(overrides or {})
        self.load_env_file = load_env_file
        self._environ = environ
        self.config: Dict[str, Any] = {}
        self.load_config()

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def load_config(self) -> None:
        """(Re)build the merged configuration from every source."""
        if self.load_env_file and self._environ is None:
            load_dotenv()

        config = _default_config()

        env_name = self.environ.get("PLAYSESSION_ENV") or self.overrides.get("environment", {}).get("name")
        if env_name and env_name in ENVIRONMENT_PRESETS:
            config = deep_merge(config, ENVIRONMENT_PRESETS[env_name])
            config["environment"]["name"] = env_name

        if self.config_path:
            config = deep_merge(config, self._read_file(self.config_path))

        config = deep_merge(config, self.overrides)
        config = deep_merge(config, self._environment_overrides())

        self.config = config
        self.validate()

    def _read_file(self, path: str) -> Dict[str, Any]:
        try:
            with open(path, 'r', encoding='utf-8') as file:
                data = yaml.safe_load(file) or {}
        except FileNotFoundError:
            logger.debug(f"No {path} found, using defaults")
            return {}
        except yaml.YAMLError as e:
            logger.error(f"Error parsing {path}: {e}")
            raise ConfigError(f"Malformed configuration file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file {path} must contain a mapping")
        logger.info(f"Loaded configuration from {path}")
        return data

    def _environment_overrides(self) -> Dict[str, Any]:
        env = self.environ
        overrides: Dict[str, Any] = {}

        if "HEADLESS" in env:
            overrides.setdefault("browser", {})["headless"] = _parse_bool(env["HEADLESS"])
        if env.get("BROWSER"):
            overrides.setdefault("browser", {})["type"] = env["BROWSER"].lower()
        if env.get("LOG_LEVEL"):
            overrides.setdefault("logging", {})["level"] = env["LOG_LEVEL"].lower()
        if "SCREENSHOT_ON_ERROR" in env:
            overrides.setdefault("screenshots", {})["on_error"] = _parse_bool(env["SCREENSHOT_ON_ERROR"])
        if env.get("BASE_URL"):
            overrides.setdefault("environment", {})["base_url"] = env["BASE_URL"]

        return overrides

    def validate(self) -> None:
        """Raise ConfigError when a value is outside its allowed range."""
        browser = self.config.get("browser", {})
        if browser.get("type") not in VALID_BROWSERS:
            raise ConfigError(f"Invalid browser type: {browser.get('type')}")

        viewport = browser.get("viewport") or {}
        if viewport.get("width", 1) <= 0 or viewport.get("height", 1) <= 0:
            raise ConfigError("Viewport dimensions must be positive")

        level = str(self.get("logging.level", "info")).lower()
        if level not in VALID_LOG_LEVELS:
            raise ConfigError(f"Invalid log level: {level}")

        if self.get("retry.max_attempts", 1) < 1:
            raise ConfigError("retry.max_attempts must be at least 1")
        if self.get("retry.delay", 0) < 0:
            raise ConfigError("retry.delay must be non-negative")

        policy = str(self.get("session.dialog_policy", "accept")).lower()
        if policy not in VALID_DIALOG_POLICIES:
            raise ConfigError(f"Invalid dialog policy: {policy}")

    def get(self, path: str, default: Any = None) -> Any:
        """Look up a dotted path, returning ``default`` when any segment is missing."""
        node: Any = self.config
        for part in path.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, path: str, value: Any) -> None:
        """Set a dotted path at runtime, creating intermediate sections."""
        parts = path.split('.')
        node = self.config
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = value

    def section(self, name: str) -> Dict[str, Any]:
        return copy.deepcopy(self.config.get(name, {}))

    def as_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self.config)

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> 'FrameworkConfig':
        """Build a config from defaults plus ``values`` only (no file, no environment)."""
        return cls(config_path=None, overrides=values, environ={}, load_env_file=False)

    @classmethod
    def for_ci(cls, config_path: Optional[str] = DEFAULT_CONFIG_FILE) -> 'FrameworkConfig':
        """Create config tuned for headless CI runs."""
        return cls(config_path=config_path, overrides={"environment": {"name": "ci"}})

    @classmethod
    def for_development(cls, config_path: Optional[str] = DEFAULT_CONFIG_FILE) -> 'FrameworkConfig':
        """Create config for local debugging with a visible, slowed-down browser."""
        return cls(config_path=config_path, overrides={"environment": {"name": "development"}})
