"""
Exception types raised by the IDEX WebSocket client.

Taxonomy:
    - ConfigurationError: the client was built or called without what it needs
      (no base URL, authenticated subscription without token fetcher or wallet).
    - NotConnectedError: a frame was sent while the session is not connected.
    - TokenFetchError: the injected token fetch callable failed.
    - MalformedMessageError: an inbound frame could not be interpreted.
    - ConnectionTimeoutError: connect() exceeded the configured open timeout.

Transport level errors are never raised; they are delivered to the
``on_error`` listeners of the client.
"""

import asyncio
from typing import Optional


class IdexWebSocketError(Exception):
    """Base class for all client errors."""

    pass


class ConfigurationError(IdexWebSocketError):
    """Raised when the client is missing required configuration."""

    pass


class NotConnectedError(IdexWebSocketError, ConnectionError):
    """Raised when sending while the WebSocket is not connected."""

    def __init__(
        self, message: str = "WebSocket not yet connected, await connect() first"
    ):
        super().__init__(message)


class TokenFetchError(IdexWebSocketError):
    """
    Raised when fetching a WebSocket auth token fails.

    Attributes:
        wallet: Wallet the token was requested for.
        cause: Original exception raised by the fetch callable.
    """

    def __init__(self, wallet: str, cause: Optional[BaseException] = None):
        """
        Initialize TokenFetchError.

        Args:
            wallet: Wallet the token was requested for.
            cause: Original exception.
        """
        self.wallet = wallet
        self.cause = cause
        message = f"Failed to fetch WebSocket token for wallet {wallet}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class MalformedMessageError(IdexWebSocketError, ValueError):
    """Raised when an inbound message is not text or lacks required fields."""

    pass


class ConnectionTimeoutError(IdexWebSocketError, asyncio.TimeoutError):
    """Raised when the WebSocket does not open within the configured timeout."""

    pass
