"""
Abstract base class for the socket transport used by the WebSocket client.

The client treats the transport as a capability: it is opened with a URL and
headers, exposes a synchronous readiness flag, accepts text frames via a
synchronous fire-and-forget ``send``, and reports inbound frames, closure and
errors through callback slots.

The default implementation is ``idex_ws.client.transport.WebSocketTransport``
built on the ``websockets`` library. Tests substitute an in-memory fake.

Example:
    >>> transport = open_websocket_transport("wss://websocket.idex.io/v1", {})
    >>> transport.on_message = lambda data: print(data)
    >>> transport.on_close = lambda: print("closed")
    >>> transport.on_error = lambda error: print(error)
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Union

MessageCallback = Callable[[Union[str, bytes]], None]
CloseCallback = Callable[[], None]
ErrorCallback = Callable[[BaseException], None]

# Opens a transport for (url, headers)
TransportFactory = Callable[[str, Dict[str, str]], "Transport"]


class Transport(ABC):
    """
    Socket transport contract.

    Callback slots may be reassigned or set to None at any time. Setting
    ``on_close`` to None before calling ``close()`` suppresses the close
    notification, which the client relies on to skip auto-reconnect.

    Exceptions raised by ``on_message`` (including MalformedMessageError
    for a frame the client cannot read) must not stop the transport: they
    are logged and passed to ``on_error``, and reading continues.

    Attributes:
        on_message: Called with each inbound frame (text or binary).
        on_close: Called once when the connection ends.
        on_error: Called with transport level exceptions.
    """

    on_message: Optional[MessageCallback] = None
    on_close: Optional[CloseCallback] = None
    on_error: Optional[ErrorCallback] = None

    @property
    @abstractmethod
    def ready(self) -> bool:
        """
        Check if the socket is open and frames can be sent.

        Note:
            This must be a fast, non-blocking check.
        """
        pass

    @abstractmethod
    def send(self, data: str) -> None:
        """
        Queue a text frame for sending.

        Must not block. Write failures are reported through ``on_error``.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Close the connection.

        Safe to call multiple times. ``on_close`` fires if still set.
        """
        pass
