"""Configuration management for miniagent."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import ConfigError

logger = logging.getLogger("miniagent.config")

APP_DIR_NAME = ".miniagent"
CONFIG_FILENAME = "config.json"
ENV_PREFIX = "AGENT_"

PROVIDERS = ("openai", "ollama")

DEFAULT_CONFIG: dict[str, Any] = {
    "provider": "openai",
    "api_key": "",
    "model": "deepseek-coder",
    "base_url": "https://api.deepseek.com/v1",
    "ollama_url": "http://127.0.0.1:11434",
    "request_timeout": 0.0,
    "allowed_tools": [],
    "denied_tools": [],
    "log_file": "log/agent.log",
    "log_level": "INFO",
}

_LIST_KEYS = ("allowed_tools", "denied_tools")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from ~/.miniagent/config.json."""

    # Model provider
    provider: str
    api_key: str
    model: str
    base_url: str
    ollama_url: str

    # Seconds; 0 disables the timeout
    request_timeout: float

    # Security policy
    allowed_tools: tuple[str, ...]
    denied_tools: tuple[str, ...]

    # Logging
    log_file: str
    log_level: str

    @property
    def allowed(self) -> frozenset[str]:
        return frozenset(self.allowed_tools)

    @property
    def denied(self) -> frozenset[str]:
        return frozenset(self.denied_tools)

    @property
    def timeout(self) -> float | None:
        return self.request_timeout if self.request_timeout > 0 else None

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> Config:
        """Load config from the given path or the default ~/.miniagent/config.json.

        Precedence: environment (AGENT_*) > config file > defaults.
        """
        if config_path:
            config_file = Path(config_path)
            if not config_file.exists():
                raise ConfigError(f"Configuration file not found at {config_file}")
        else:
            config_dir = Path.home() / APP_DIR_NAME
            config_file = config_dir / CONFIG_FILENAME
            config_dir.mkdir(parents=True, exist_ok=True)

        current_config = dict(DEFAULT_CONFIG)

        if config_file.exists():
            try:
                with open(config_file, "r", encoding="utf-8") as f:
                    user_config = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigError(f"Failed to load config from {config_file}: {e}") from e
            if not isinstance(user_config, dict):
                raise ConfigError(f"{config_file} must contain a JSON object")
            current_config.update(user_config)
        else:
            logger.info(f"No config found. Generating default config at {config_file}")
            try:
                with open(config_file, "w", encoding="utf-8") as f:
                    json.dump(DEFAULT_CONFIG, f, indent=4)
            except OSError as e:
                logger.warning(f"Failed to write default config: {e}")

        for key in DEFAULT_CONFIG:
            env_key = f"{ENV_PREFIX}{key.upper()}"
            if env_key in os.environ:
                current_config[key] = _coerce_env(key, os.environ[env_key])

        unknown = set(current_config) - set(DEFAULT_CONFIG)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")
            for key in unknown:
                current_config.pop(key)

        return cls._validated(current_config)

    @classmethod
    def _validated(cls, values: dict[str, Any]) -> Config:
        provider = str(values["provider"]).lower()
        if provider not in PROVIDERS:
            raise ConfigError(
                f"Unknown provider '{values['provider']}'. Expected one of: {', '.join(PROVIDERS)}"
            )
        values["provider"] = provider

        for key in _LIST_KEYS:
            raw = values[key]
            if raw is None:
                raw = []
            if not isinstance(raw, (list, tuple)) or not all(isinstance(t, str) for t in raw):
                raise ConfigError(f"'{key}' must be a list of tool names")
            values[key] = tuple(t.strip() for t in raw if t.strip())

        try:
            values["request_timeout"] = float(values["request_timeout"] or 0)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"'request_timeout' must be a number: {e}") from e

        level = str(values["log_level"]).upper()
        if level not in _LOG_LEVELS:
            raise ConfigError(f"'log_level' must be one of: {', '.join(_LOG_LEVELS)}")
        values["log_level"] = level

        if provider == "openai" and not values["api_key"]:
            raise ConfigError(
                "API key is not set. Export AGENT_API_KEY or set 'api_key' in the config file."
            )

        return cls(**values)


def _coerce_env(key: str, val: str) -> Any:
    default_val = DEFAULT_CONFIG.get(key)
    if key in _LIST_KEYS:
        return [part.strip() for part in val.split(",") if part.strip()]
    if isinstance(default_val, bool):
        return val.lower() in ("true", "1", "yes")
    if isinstance(default_val, float):
        try:
            return float(val)
        except ValueError as e:
            raise ConfigError(f"{ENV_PREFIX}{key.upper()} must be a number, got '{val}'") from e
    return val


# Singleton
_config: Config | None = None


def get_config(config_path: str | Path | None = None) -> Config:
    """Get or create the global config instance, optionally loading from a path."""
    global _config
    if _config is None:
        _config = Config.load(config_path)
    return _config
