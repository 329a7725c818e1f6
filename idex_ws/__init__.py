"""
IDEX WebSocket API client.

An asyncio client for the IDEX real-time WebSocket API.

This package provides:
- A WebSocket session with automatic reconnection
- Wallet auth token fetching and caching for authenticated topics
- Normalization of short-form wire messages into descriptive dicts
- Configuration management and structured logging setup
"""

from idex_ws.client import (
    ConnectionState,
    IdexNormalizer,
    IdexRestClient,
    WebSocketClient,
    WebSocketTokenManager,
    transform_message,
)
from idex_ws.exceptions import (
    ConfigurationError,
    ConnectionTimeoutError,
    IdexWebSocketError,
    MalformedMessageError,
    NotConnectedError,
    TokenFetchError,
)
from idex_ws.models import Subscription

__version__ = "0.1.0"

__all__ = [
    "ConnectionState",
    "IdexNormalizer",
    "IdexRestClient",
    "Subscription",
    "WebSocketClient",
    "WebSocketTokenManager",
    "transform_message",
    # Errors
    "ConfigurationError",
    "ConnectionTimeoutError",
    "IdexWebSocketError",
    "MalformedMessageError",
    "NotConnectedError",
    "TokenFetchError",
]
