"""
WebSocket transport built on the ``websockets`` library.

Adapts the coroutine based ``websockets`` client to the callback style
Transport contract used by WebSocketClient: a reader task owns the
connection and pushes inbound frames, errors and the final close into the
callback slots; ``send`` schedules a write and returns immediately.

Connection Management:
    - Connect happens in the background, ``ready`` flips once open
    - Keepalive pings are left to ``websockets`` (20s default)
    - Reconnection is NOT handled here, see WebSocketClient

Example:
    >>> transport = open_websocket_transport(
    ...     "wss://websocket.idex.io/v1",
    ...     {"User-Agent": "idex-ws-client"},
    ... )
    >>> transport.on_message = print
"""

import asyncio
from typing import Dict, Optional, Set

import structlog
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.protocol import State

from idex_ws.interfaces.transport import Transport

logger = structlog.get_logger(__name__)


class WebSocketTransport(Transport):
    """
    Transport over a single ``websockets`` client connection.

    Attributes:
        url: WebSocket endpoint URL.
        headers: Extra HTTP headers for the opening handshake.
        open_timeout: Seconds allowed for the opening handshake.
        max_size: Maximum inbound message size in bytes.
    """

    def __init__(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        open_timeout: Optional[float] = 10,
        max_size: int = 2**20,
    ):
        """
        Initialize the transport. Call ``open()`` to start connecting.

        Args:
            url: WebSocket endpoint URL.
            headers: Extra HTTP headers, ``User-Agent`` is sent as the
                client user agent.
            open_timeout: Seconds allowed for the opening handshake.
            max_size: Maximum inbound message size in bytes.
        """
        self.url = url
        self.headers = dict(headers or {})
        self.open_timeout = open_timeout
        self.max_size = max_size

        self.on_message = None
        self.on_close = None
        self.on_error = None

        self._connection: Optional[websockets.ClientConnection] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._send_tasks: Set[asyncio.Task] = set()
        self._closing = False
        self._closed = False

    @property
    def ready(self) -> bool:
        """Check if the connection is open and not closing."""
        return (
            not self._closing
            and self._connection is not None
            and self._connection.state is State.OPEN
        )

    def open(self) -> None:
        """
        Start connecting in the background.

        Must be called from a running event loop.
        """
        if self._reader_task is not None:
            return
        self._reader_task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        headers = dict(self.headers)
        user_agent = headers.pop("User-Agent", None)
        try:
            self._connection = await websockets.connect(
                self.url,
                additional_headers=headers,
                user_agent_header=user_agent,
                open_timeout=self.open_timeout,
                close_timeout=10,
                max_size=self.max_size,
            )
            logger.debug("websocket_transport_open", exchange="idex", url=self.url)

            if self._closing:
                await self._connection.close()
                return

            async for message in self._connection:
                self._dispatch(message)

        except ConnectionClosed as e:
            logger.warning(
                "websocket_transport_closed",
                exchange="idex",
                url=self.url,
                code=e.rcvd.code if e.rcvd else None,
            )
            self._notify_error(e)

        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            logger.error(
                "websocket_transport_error",
                exchange="idex",
                url=self.url,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._notify_error(e)

        finally:
            self._notify_close()

    def _dispatch(self, message) -> None:
        callback = self.on_message
        if callback is None:
            return
        try:
            callback(message)
        except Exception as e:
            # A failing handler must not kill the reader task
            logger.error(
                "websocket_message_handler_error",
                exchange="idex",
                url=self.url,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._notify_error(e)

    def _notify_error(self, error: BaseException) -> None:
        callback = self.on_error
        if callback is not None:
            callback(error)

    def _notify_close(self) -> None:
        if self._closed:
            return
        self._closed = True
        callback = self.on_close
        if callback is not None:
            callback()

    def send(self, data: str) -> None:
        """Schedule a text frame write."""
        task = asyncio.get_running_loop().create_task(self._send(data))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)

    async def _send(self, data: str) -> None:
        connection = self._connection
        if connection is None:
            self._notify_error(ConnectionError("WebSocket transport not open"))
            return
        try:
            await connection.send(data)
        except (ConnectionClosed, WebSocketException, OSError) as e:
            logger.error(
                "websocket_send_failed",
                exchange="idex",
                url=self.url,
                error=str(e),
            )
            self._notify_error(e)

    def close(self) -> None:
        """Close the connection, or abort it if still opening."""
        if self._closing:
            return
        self._closing = True

        if self._connection is not None:
            task = asyncio.get_running_loop().create_task(self._connection.close())
            self._send_tasks.add(task)
            task.add_done_callback(self._send_tasks.discard)
        elif self._reader_task is not None and not self._reader_task.done():
            self._reader_task.cancel()
        else:
            self._notify_close()

    def __repr__(self) -> str:
        """Return string representation."""
        return f"WebSocketTransport(url={self.url}, ready={self.ready})"


def open_websocket_transport(url: str, headers: Dict[str, str]) -> WebSocketTransport:
    """
    Create a WebSocketTransport and start connecting.

    This is the default transport factory used by WebSocketClient.
    """
    transport = WebSocketTransport(url, headers)
    transport.open()
    return transport
