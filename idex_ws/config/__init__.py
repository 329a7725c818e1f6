"""
Configuration management for the IDEX WebSocket client.

Configuration is loaded from ``config/client.yaml`` and validated with
Pydantic models. Environment variables override file values:
    - IDEX_WS_BASE_URL, IDEX_SANDBOX, IDEX_RECONNECT
    - IDEX_API_KEY, IDEX_API_SECRET
    - LOG_LEVEL, LOG_FORMAT

Example:
    >>> from idex_ws.config import load_config
    >>> config = load_config("config")
    >>> client = WebSocketClient.from_config(config.websocket)

Modules:
    loader: Configuration file loading utilities
    models: Pydantic models for configuration validation
"""

from idex_ws.config.loader import ConfigLoadError, ConfigLoader, load_config
from idex_ws.config.models import (
    # Constants
    LIVE_REST_API_BASE_URL,
    SANDBOX_REST_API_BASE_URL,
    SANDBOX_WEBSOCKET_API_BASE_URL,
    USER_AGENT,
    # Enums
    LogFormat,
    LogLevel,
    # Models
    AppConfig,
    LoggingConfig,
    RestClientConfig,
    WebSocketClientConfig,
)

__all__: list[str] = [
    # Loader
    "load_config",
    "ConfigLoader",
    "ConfigLoadError",
    # Constants
    "LIVE_REST_API_BASE_URL",
    "SANDBOX_REST_API_BASE_URL",
    "SANDBOX_WEBSOCKET_API_BASE_URL",
    "USER_AGENT",
    # Enums
    "LogFormat",
    "LogLevel",
    # Models
    "AppConfig",
    "LoggingConfig",
    "RestClientConfig",
    "WebSocketClientConfig",
]
