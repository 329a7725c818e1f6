"""
Pydantic models for client configuration.

The configuration is loaded from ``config/client.yaml`` (see loader) and can be
built directly in code. All models are frozen and reject unknown keys so typos
fail early.

Example:
    >>> from idex_ws.config.models import AppConfig, WebSocketClientConfig
    >>> config = AppConfig(websocket=WebSocketClientConfig(sandbox=True))
    >>> config.websocket.resolve_base_url()
    'wss://websocket-sandbox.idex.io/v1'
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

SANDBOX_WEBSOCKET_API_BASE_URL = "wss://websocket-sandbox.idex.io/v1"
SANDBOX_REST_API_BASE_URL = "https://api-sandbox.idex.io"
LIVE_REST_API_BASE_URL = "https://api.idex.io"

USER_AGENT = "idex-ws-client"


# =============================================================================
# ENUMS
# =============================================================================


class LogFormat(str, Enum):
    """Logging format options."""

    JSON = "json"
    TEXT = "text"


class LogLevel(str, Enum):
    """Logging level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# =============================================================================
# CLIENT CONFIGURATION
# =============================================================================


class WebSocketClientConfig(BaseModel):
    """WebSocket session settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    base_url: Optional[str] = Field(
        default=None,
        description="WebSocket API base URL",
    )
    sandbox: bool = Field(
        default=False,
        description="Use the sandbox WebSocket endpoint",
    )
    should_reconnect_automatically: bool = Field(
        default=False,
        description="Reconnect with exponential backoff after unexpected close",
    )
    open_poll_interval_seconds: float = Field(
        default=0.1,
        description="Interval between readiness checks in connect()",
        gt=0,
        le=5,
    )
    open_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Give up on connect() after this many seconds (None waits forever)",
        gt=0,
    )
    token_ttl_seconds: Optional[float] = Field(
        default=None,
        description="Refetch cached wallet tokens older than this",
        gt=0,
    )
    token_fetch_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Timeout for a single token fetch (None waits forever)",
        gt=0,
    )
    user_agent: str = Field(
        default=USER_AGENT,
        description="User-Agent header sent on the opening handshake",
        min_length=1,
    )

    def resolve_base_url(self) -> Optional[str]:
        """
        Get the WebSocket URL to connect to.

        The sandbox flag wins over an explicit base URL.

        Returns:
            Optional[str]: WebSocket URL or None if not configured.
        """
        if self.sandbox:
            return SANDBOX_WEBSOCKET_API_BASE_URL
        return self.base_url


class RestClientConfig(BaseModel):
    """REST settings used to fetch WebSocket auth tokens."""

    model_config = {"frozen": True, "extra": "forbid"}

    base_url: Optional[str] = Field(
        default=None,
        description="REST API base URL",
    )
    sandbox: bool = Field(
        default=False,
        description="Use the sandbox REST endpoint",
    )
    api_key: Optional[str] = Field(
        default=None,
        description="API key sent as IDEX-API-Key",
    )
    api_secret: Optional[str] = Field(
        default=None,
        description="API secret used for HMAC request signing",
    )
    timeout_seconds: int = Field(
        default=10,
        description="HTTP request timeout",
        ge=1,
        le=120,
    )

    @property
    def has_credentials(self) -> bool:
        """Check if both API key and secret are set."""
        return bool(self.api_key and self.api_secret)

    def resolve_base_url(self) -> str:
        """Get the REST base URL, defaulting to the live API."""
        if self.sandbox:
            return SANDBOX_REST_API_BASE_URL
        return self.base_url or LIVE_REST_API_BASE_URL


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    format: LogFormat = Field(
        default=LogFormat.JSON,
        description="Log output format",
    )
    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Log level",
    )


# =============================================================================
# ROOT CONFIGURATION
# =============================================================================


class AppConfig(BaseModel):
    """Root configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    websocket: WebSocketClientConfig = Field(
        default_factory=WebSocketClientConfig,
        description="WebSocket session settings",
    )
    rest: RestClientConfig = Field(
        default_factory=RestClientConfig,
        description="REST token endpoint settings",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings",
    )
