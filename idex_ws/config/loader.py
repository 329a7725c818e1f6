"""
Configuration loader for YAML-based client configuration.

Loads ``client.yaml`` from a configuration directory, applies environment
variable overrides and validates the result with the Pydantic models.

Configuration file expected:
    - config/client.yaml: websocket, rest and logging sections

Environment variables override:
    - IDEX_WS_BASE_URL: WebSocket API base URL
    - IDEX_SANDBOX: Use sandbox endpoints ("true"/"false")
    - IDEX_RECONNECT: Reconnect automatically ("true"/"false")
    - IDEX_API_KEY: REST API key
    - IDEX_API_SECRET: REST API secret
    - LOG_LEVEL: Application log level
    - LOG_FORMAT: "json" or "text"

Example:
    >>> from idex_ws.config.loader import load_config
    >>> config = load_config("config")
    >>> config.websocket.resolve_base_url()
    'wss://websocket-sandbox.idex.io/v1'
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from idex_ws.config.models import (
    AppConfig,
    LoggingConfig,
    RestClientConfig,
    WebSocketClientConfig,
)

CONFIG_FILENAME = "client.yaml"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


class ConfigLoadError(Exception):
    """
    Raised when configuration loading fails.

    Attributes:
        message: Error message describing what went wrong.
        file_path: Path to the file that caused the error, if applicable.
        cause: Original exception that caused the error, if any.
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[Path] = None,
        cause: Optional[Exception] = None,
    ):
        """
        Initialize ConfigLoadError.

        Args:
            message: Error message.
            file_path: Path to the problematic file.
            cause: Original exception.
        """
        self.message = message
        self.file_path = file_path
        self.cause = cause
        super().__init__(message)


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigLoadError(f"Invalid boolean for {name}: {value!r}")


class ConfigLoader:
    """
    Loads and validates client configuration.

    Without a config directory only defaults and environment variables are
    used.

    Example:
        >>> loader = ConfigLoader("config")
        >>> config = loader.load()
        >>> config.websocket.should_reconnect_automatically
        True
    """

    def __init__(self, config_dir: Optional[Path | str] = None):
        """
        Initialize config loader.

        Args:
            config_dir: Path to configuration directory, or None.

        Raises:
            ConfigLoadError: If config directory does not exist.
        """
        self.config_dir = Path(config_dir) if config_dir is not None else None
        if self.config_dir is None:
            return
        if not self.config_dir.exists():
            raise ConfigLoadError(
                f"Configuration directory not found: {self.config_dir}",
                file_path=self.config_dir,
            )
        if not self.config_dir.is_dir():
            raise ConfigLoadError(
                f"Configuration path is not a directory: {self.config_dir}",
                file_path=self.config_dir,
            )

    def _load_yaml(self, filename: str) -> Dict[str, Any]:
        """
        Load a YAML file from the config directory.

        Args:
            filename: Name of YAML file (e.g., 'client.yaml').

        Returns:
            Dict containing parsed YAML content.

        Raises:
            ConfigLoadError: If file not found, empty, or invalid YAML.
        """
        if self.config_dir is None:
            return {}

        file_path = self.config_dir / filename
        if not file_path.exists():
            raise ConfigLoadError(
                f"Configuration file not found: {file_path}",
                file_path=file_path,
            )

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigLoadError(
                f"Invalid YAML syntax in {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e
        except OSError as e:
            raise ConfigLoadError(
                f"Error reading {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e

        if data is None:
            raise ConfigLoadError(
                f"Configuration file is empty: {file_path}",
                file_path=file_path,
            )
        if not isinstance(data, dict):
            raise ConfigLoadError(
                f"Configuration file must contain a mapping: {file_path}",
                file_path=file_path,
            )
        return data

    def _apply_env_overrides(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge environment variables over the file values.

        Returns:
            Dict with ``websocket``, ``rest`` and ``logging`` sections.
        """
        websocket = dict(data.get("websocket") or {})
        rest = dict(data.get("rest") or {})
        logging_data = dict(data.get("logging") or {})

        base_url = os.getenv("IDEX_WS_BASE_URL")
        if base_url:
            websocket["base_url"] = base_url

        sandbox = os.getenv("IDEX_SANDBOX")
        if sandbox:
            websocket["sandbox"] = rest["sandbox"] = _parse_bool("IDEX_SANDBOX", sandbox)

        reconnect = os.getenv("IDEX_RECONNECT")
        if reconnect:
            websocket["should_reconnect_automatically"] = _parse_bool(
                "IDEX_RECONNECT", reconnect
            )

        api_key = os.getenv("IDEX_API_KEY")
        if api_key:
            rest["api_key"] = api_key

        api_secret = os.getenv("IDEX_API_SECRET")
        if api_secret:
            rest["api_secret"] = api_secret

        log_level = os.getenv("LOG_LEVEL")
        if log_level:
            logging_data["level"] = log_level.upper()

        log_format = os.getenv("LOG_FORMAT")
        if log_format:
            logging_data["format"] = log_format.lower()

        return {"websocket": websocket, "rest": rest, "logging": logging_data}

    def load(self) -> AppConfig:
        """
        Load and validate the configuration.

        Returns:
            AppConfig: Validated client configuration.

        Raises:
            ConfigLoadError: If the configuration is invalid or missing.
        """
        data = self._load_yaml(CONFIG_FILENAME)
        merged = self._apply_env_overrides(data)
        file_path = self.config_dir / CONFIG_FILENAME if self.config_dir else None

        try:
            return AppConfig(
                websocket=WebSocketClientConfig(**merged["websocket"]),
                rest=RestClientConfig(**merged["rest"]),
                logging=LoggingConfig(**merged["logging"]),
            )
        except ValidationError as e:
            raise ConfigLoadError(
                f"Configuration validation failed: {e}",
                file_path=file_path,
                cause=e,
            ) from e


def load_config(config_dir: Optional[Path | str] = None) -> AppConfig:
    """
    Convenience function to load client configuration.

    Args:
        config_dir: Path to configuration directory, or None for
            defaults plus environment variables.

    Returns:
        AppConfig: Validated client configuration.

    Raises:
        ConfigLoadError: If configuration loading fails.

    Example:
        >>> from idex_ws.config import load_config
        >>> config = load_config()
    """
    loader = ConfigLoader(config_dir)
    return loader.load()
