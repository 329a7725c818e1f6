"""
IDEX WebSocket client.

This package provides the WebSocket session, wallet token management,
message normalization and the REST call used to fetch wallet tokens.

Components:
    - WebSocketClient: connection session and subscription routing
    - WebSocketTokenManager: per-wallet auth token cache
    - IdexNormalizer: short-form to long-form message conversion
    - WebSocketTransport: ``websockets`` based socket transport
    - IdexRestClient: REST client for ``/v1/wsToken``

Example:
    >>> from idex_ws.client import IdexRestClient, WebSocketClient
    >>>
    >>> rest = IdexRestClient(base_url, api_key, api_secret)
    >>> client = WebSocketClient(sandbox=True, fetch_token=rest.get_ws_token)
    >>> await client.connect()
    >>> await client.subscribe([{"name": "orders", "wallet": "0xabc"}])
"""

from idex_ws.client.normalizer import IdexNormalizer, transform_message
from idex_ws.client.rest import IdexRestClient
from idex_ws.client.token_manager import WebSocketTokenManager
from idex_ws.client.transport import WebSocketTransport, open_websocket_transport
from idex_ws.client.websocket import ConnectionState, WebSocketClient

__all__ = [
    "ConnectionState",
    "IdexNormalizer",
    "IdexRestClient",
    "WebSocketClient",
    "WebSocketTokenManager",
    "WebSocketTransport",
    "open_websocket_transport",
    "transform_message",
]
