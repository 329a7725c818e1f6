"""
Abstract interfaces for the IDEX WebSocket client.

Modules:
    transport: Transport ABC for the socket capability
"""

from idex_ws.interfaces.transport import (
    CloseCallback,
    ErrorCallback,
    MessageCallback,
    Transport,
    TransportFactory,
)

__all__: list[str] = [
    "CloseCallback",
    "ErrorCallback",
    "MessageCallback",
    "Transport",
    "TransportFactory",
]
