"""
IDEX WebSocket client.

Manages one WebSocket connection to the IDEX real-time API: connection
lifecycle, automatic reconnection, subscription routing across wallet auth
tokens, and fan-out of normalized messages to listeners.

Connection Management:
    - connect() waits until the socket is open before resolving
    - Auto-reconnect with exponential backoff (1s, 2s, 4s, ...) after an
      unexpected close, never after an explicit disconnect()
    - Listeners survive reconnects

IDEX-Specific Details:
    - Single WebSocket endpoint for all markets
    - Requests: {"method": "subscribe", "subscriptions": [...], "token": "..."}
    - Exactly one wallet token per frame, so subscriptions for different
      wallets are sent in separate frames
    - Inbound data uses single-letter keys, expanded by IdexNormalizer

Example:
    >>> client = WebSocketClient(
    ...     sandbox=True,
    ...     fetch_token=lambda wallet: rest.get_ws_token(wallet),
    ...     should_reconnect_automatically=True,
    ... )
    >>> client.on_response(print)
    >>> await client.connect()
    >>> await client.subscribe([
    ...     {"name": "tickers", "markets": ["ETH-USDC"]},
    ...     {"name": "balances", "wallet": "0xabc"},
    ... ])
"""

import asyncio
import json
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import structlog

from idex_ws.client.normalizer import transform_message
from idex_ws.client.token_manager import TokenFetch, WebSocketTokenManager
from idex_ws.client.transport import open_websocket_transport
from idex_ws.config.models import (
    SANDBOX_WEBSOCKET_API_BASE_URL,
    USER_AGENT,
    WebSocketClientConfig,
)
from idex_ws.exceptions import (
    ConfigurationError,
    ConnectionTimeoutError,
    MalformedMessageError,
    NotConnectedError,
)
from idex_ws.interfaces.transport import Transport, TransportFactory
from idex_ws.models.requests import RequestMethod, WebSocketRequest
from idex_ws.models.subscriptions import (
    Subscription,
    SubscriptionLike,
    to_subscription,
)

logger = structlog.get_logger(__name__)

ConnectListener = Callable[[], Any]
DisconnectListener = Callable[[], Any]
ErrorListener = Callable[[BaseException], Any]
ResponseListener = Callable[[Dict[str, Any]], Any]


class ConnectionState(str, Enum):
    """Connection states of the session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class _ListenerSet:
    """Insertion ordered set of callables."""

    def __init__(self) -> None:
        self._listeners: Dict[Callable[..., Any], None] = {}

    def add(self, listener: Callable[..., Any]) -> None:
        self._listeners[listener] = None

    def discard(self, listener: Callable[..., Any]) -> None:
        self._listeners.pop(listener, None)

    def emit(self, *args: Any) -> None:
        # Copy so listeners may register or remove listeners while running
        for listener in list(self._listeners):
            listener(*args)

    def __len__(self) -> int:
        return len(self._listeners)


class WebSocketClient:
    """
    Async WebSocket client for IDEX.

    One instance owns at most one connection at a time. All methods must be
    called from the event loop thread.

    Attributes:
        base_url: WebSocket endpoint URL.
        should_reconnect_automatically: Reconnect after unexpected closes.
        reconnect_attempt: Reconnects scheduled since the last successful
            connect.
        state: Current ConnectionState.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        sandbox: bool = False,
        fetch_token: Optional[TokenFetch] = None,
        should_reconnect_automatically: bool = False,
        open_poll_interval: float = 0.1,
        open_timeout: Optional[float] = None,
        token_ttl: Optional[float] = None,
        token_fetch_timeout: Optional[float] = None,
        user_agent: str = USER_AGENT,
        transport_factory: TransportFactory = open_websocket_transport,
    ):
        """
        Initialize WebSocket client.

        Args:
            base_url: WebSocket endpoint URL.
            sandbox: Use the sandbox endpoint instead of ``base_url``.
            fetch_token: Async callable returning a wallet auth token,
                e.g. ``lambda wallet: rest.get_ws_token(wallet)``. Only
                needed for authenticated subscriptions.
            should_reconnect_automatically: Reconnect with exponential
                backoff when the server or network closes the connection.
            open_poll_interval: Seconds between readiness checks in connect().
            open_timeout: Seconds before connect() gives up, None waits forever.
            token_ttl: Seconds a cached wallet token stays valid.
            token_fetch_timeout: Seconds before a token fetch fails.
            user_agent: User-Agent header for the opening handshake.
            transport_factory: Callable opening a Transport for (url, headers).

        Raises:
            ConfigurationError: If neither sandbox nor base_url is given.
        """
        self.base_url = SANDBOX_WEBSOCKET_API_BASE_URL if sandbox else base_url
        if not self.base_url:
            raise ConfigurationError("Must set sandbox to true or provide base_url")

        self.should_reconnect_automatically = should_reconnect_automatically
        self.open_poll_interval = open_poll_interval
        self.open_timeout = open_timeout
        self.user_agent = user_agent
        self.reconnect_attempt = 0
        self.state = ConnectionState.DISCONNECTED

        self._transport_factory = transport_factory
        self._transport: Optional[Transport] = None
        self._reconnect_task: Optional[asyncio.Future] = None
        self._open_task: Optional[asyncio.Future] = None
        self._opening_transport: Optional[Transport] = None

        self._connect_listeners = _ListenerSet()
        self._disconnect_listeners = _ListenerSet()
        self._error_listeners = _ListenerSet()
        self._response_listeners = _ListenerSet()

        self._token_manager: Optional[WebSocketTokenManager] = None
        if fetch_token is not None:
            self._token_manager = WebSocketTokenManager(
                fetch_token,
                token_ttl_seconds=token_ttl,
                fetch_timeout_seconds=token_fetch_timeout,
            )

        logger.info(
            "websocket_client_initialized",
            exchange="idex",
            url=self.base_url,
            reconnect=should_reconnect_automatically,
            authenticated=self._token_manager is not None,
        )

    @classmethod
    def from_config(
        cls,
        config: WebSocketClientConfig,
        fetch_token: Optional[TokenFetch] = None,
        transport_factory: TransportFactory = open_websocket_transport,
    ) -> "WebSocketClient":
        """
        Build a client from a WebSocketClientConfig.

        Raises:
            ConfigurationError: If the config resolves to no URL.
        """
        return cls(
            base_url=config.resolve_base_url(),
            fetch_token=fetch_token,
            should_reconnect_automatically=config.should_reconnect_automatically,
            open_poll_interval=config.open_poll_interval_seconds,
            open_timeout=config.open_timeout_seconds,
            token_ttl=config.token_ttl_seconds,
            token_fetch_timeout=config.token_fetch_timeout_seconds,
            user_agent=config.user_agent,
            transport_factory=transport_factory,
        )

    @property
    def token_manager(self) -> Optional[WebSocketTokenManager]:
        """Get the wallet token manager, None without a fetch callable."""
        return self._token_manager

    # -------------------------------------------------------------------------
    # Connection management
    # -------------------------------------------------------------------------

    def is_connected(self) -> bool:
        """Check if the socket is open and frames can be sent."""
        return self._transport is not None and self._transport.ready

    async def connect(self) -> None:
        """
        Open the connection and wait until it is ready.

        Idempotent - does nothing if already connected. Concurrent calls
        wait on the same open, and connect listeners fire once per opened
        socket.

        Raises:
            ConnectionTimeoutError: If ``open_timeout`` is set and elapses.
            NotConnectedError: If the socket closes before it opens.
        """
        if self.is_connected():
            logger.debug("websocket_already_connected", exchange="idex", url=self.base_url)
            return

        if self._transport is None:
            self._create_transport()

        # One open task per transport, shared by concurrent callers
        if self._open_task is None or self._opening_transport is not self._transport:
            self._opening_transport = self._transport
            self._open_task = asyncio.ensure_future(self._open(self._transport))
        open_task = self._open_task

        if self.open_timeout is None:
            await asyncio.shield(open_task)
            return

        try:
            await asyncio.wait_for(asyncio.shield(open_task), self.open_timeout)
        except asyncio.TimeoutError as e:
            if self._open_task is open_task:
                open_task.cancel()
                self._open_task = None
                self._opening_transport = None
            logger.error(
                "websocket_open_timeout",
                exchange="idex",
                url=self.base_url,
                timeout_seconds=self.open_timeout,
            )
            raise ConnectionTimeoutError(
                f"WebSocket did not open within {self.open_timeout}s"
            ) from e

    async def _open(self, transport: Transport) -> None:
        try:
            while not transport.ready:
                if self._transport is not transport:
                    raise NotConnectedError("WebSocket closed before it opened")
                await asyncio.sleep(self.open_poll_interval)
        finally:
            if self._open_task is asyncio.current_task():
                self._open_task = None
                self._opening_transport = None

        self.state = ConnectionState.CONNECTED
        self._reset_reconnection_state()
        logger.info("websocket_connected", exchange="idex", url=self.base_url)
        self._connect_listeners.emit()

    def disconnect(self) -> None:
        """
        Close the connection without reconnecting.

        Safe to call when not connected. Cancels a reconnect waiting out
        its backoff.
        """
        self._cancel_reconnect()
        if self._transport is None:
            return

        self._destroy_transport()
        logger.info("websocket_disconnected", exchange="idex", url=self.base_url)
        self._disconnect_listeners.emit()

    # -------------------------------------------------------------------------
    # Event listeners
    # -------------------------------------------------------------------------

    def on_connect(self, listener: ConnectListener) -> None:
        """Register a listener called after each successful connect."""
        self._connect_listeners.add(listener)

    def on_disconnect(self, listener: DisconnectListener) -> None:
        """Register a listener called whenever the connection ends."""
        self._disconnect_listeners.add(listener)

    def on_error(self, listener: ErrorListener) -> None:
        """Register a listener called with transport errors."""
        self._error_listeners.add(listener)

    def on_response(self, listener: ResponseListener) -> None:
        """Register a listener called with every normalized inbound message."""
        self._response_listeners.add(listener)

    # -------------------------------------------------------------------------
    # Subscription management
    # -------------------------------------------------------------------------

    def list_subscriptions(self, cid: Optional[str] = None) -> None:
        """
        Ask the server for the current subscriptions.

        The answer arrives as a ``subscriptions`` message on response listeners.

        Raises:
            NotConnectedError: If not connected.
        """
        self._send_message(WebSocketRequest(method=RequestMethod.SUBSCRIPTIONS, cid=cid))

    async def subscribe(
        self,
        subscriptions: Sequence[SubscriptionLike],
        cid: Optional[str] = None,
    ) -> None:
        """
        Subscribe to public and authenticated topics.

        Tokens for every wallet are fetched before anything is sent. With a
        single wallet all subscriptions go out in one frame carrying that
        wallet's token. With several wallets public subscriptions go out in
        one frame without token, then each authenticated subscription in its
        own frame with its wallet's token.

        Args:
            subscriptions: Subscriptions or dicts with the same fields.
            cid: Correlation id echoed back by the server.

        Raises:
            ConfigurationError: If authenticated subscriptions are given
                without a token fetcher or without any wallet.
            TokenFetchError: If fetching a wallet token fails.
            NotConnectedError: If not connected when sending.

        Example:
            >>> await client.subscribe([
            ...     {"name": "trades", "markets": ["ETH-USDC"]},
            ...     {"name": "orders", "wallet": "0xabc"},
            ... ], cid="sub-1")
        """
        subs = [to_subscription(subscription) for subscription in subscriptions]
        if not subs:
            logger.debug("websocket_subscribe_empty", exchange="idex")
            return

        auth_subs = [sub for sub in subs if sub.is_authenticated]
        wallets = list(dict.fromkeys(sub.wallet for sub in auth_subs if sub.wallet))

        if auth_subs and self._token_manager is None:
            raise ConfigurationError(
                "fetch_token is required for authenticated subscriptions"
            )
        if auth_subs and not wallets:
            raise ConfigurationError("Missing wallet for authenticated subscription")
        if len(wallets) > 1 and any(not sub.wallet for sub in auth_subs):
            raise ConfigurationError(
                "Authenticated subscriptions for multiple wallets must each set wallet"
            )

        # All tokens must resolve before any frame is sent
        if wallets:
            await asyncio.gather(
                *(self._token_manager.get_token(wallet) for wallet in wallets)
            )

        if len(wallets) <= 1:
            token = (
                self._token_manager.get_last_cached_token(wallets[0]) if wallets else None
            )
            self._send_message(
                WebSocketRequest(
                    method=RequestMethod.SUBSCRIBE,
                    cid=cid,
                    subscriptions=[sub.to_wire() for sub in subs],
                    token=token,
                )
            )
            return

        public_subs = [sub for sub in subs if not sub.is_authenticated]
        if public_subs:
            self._send_message(
                WebSocketRequest(
                    method=RequestMethod.SUBSCRIBE,
                    cid=cid,
                    subscriptions=[sub.to_wire() for sub in public_subs],
                )
            )

        for sub in auth_subs:
            self._send_message(
                WebSocketRequest(
                    method=RequestMethod.SUBSCRIBE,
                    cid=cid,
                    subscriptions=[sub.to_wire()],
                    token=self._token_manager.get_last_cached_token(sub.wallet),
                )
            )

    async def subscribe_authenticated(
        self,
        subscriptions: Sequence[SubscriptionLike],
        cid: Optional[str] = None,
    ) -> None:
        """
        Subscribe to authenticated topics only (balances, orders).

        Requires ``fetch_token``; tokens are fetched and refreshed
        automatically.

        Raises:
            ValueError: If a public topic is passed.
        """
        subs = [to_subscription(subscription) for subscription in subscriptions]
        public = [sub.name for sub in subs if not sub.is_authenticated]
        if public:
            raise ValueError(f"Not authenticated subscriptions: {public}")
        await self.subscribe(subs, cid)

    async def subscribe_unauthenticated(
        self,
        subscriptions: Sequence[SubscriptionLike],
        cid: Optional[str] = None,
    ) -> None:
        """
        Subscribe to public topics only.

        Raises:
            ValueError: If an authenticated topic is passed.
        """
        subs = [to_subscription(subscription) for subscription in subscriptions]
        authenticated = [sub.name for sub in subs if sub.is_authenticated]
        if authenticated:
            raise ValueError(f"Authenticated subscriptions not allowed: {authenticated}")
        await self.subscribe(subs, cid)

    def unsubscribe(
        self,
        subscriptions: Sequence[Union[str, SubscriptionLike]],
        cid: Optional[str] = None,
    ) -> None:
        """
        Unsubscribe from topics.

        Args:
            subscriptions: Subscriptions, dicts, or bare topic names
                (e.g. "tickers").
            cid: Correlation id echoed back by the server.

        Raises:
            NotConnectedError: If not connected.
        """
        wire: List[Union[str, Dict[str, Any]]] = [
            sub if isinstance(sub, str) else to_subscription(sub).to_wire()
            for sub in subscriptions
        ]
        self._send_message(
            WebSocketRequest(
                method=RequestMethod.UNSUBSCRIBE,
                cid=cid,
                subscriptions=wire,
            )
        )

    # -------------------------------------------------------------------------
    # Private
    # -------------------------------------------------------------------------

    def _create_transport(self) -> None:
        self.state = ConnectionState.CONNECTING
        logger.info(
            "websocket_connecting",
            exchange="idex",
            url=self.base_url,
            reconnect_attempt=self.reconnect_attempt,
        )
        transport = self._transport_factory(
            self.base_url, {"User-Agent": self.user_agent}
        )
        transport.on_message = self._handle_message
        transport.on_close = self._handle_close
        transport.on_error = self._handle_error
        self._transport = transport

    def _destroy_transport(self) -> None:
        transport = self._transport
        transport.on_close = None  # Do not reconnect
        transport.close()
        self._transport = None
        self.state = ConnectionState.DISCONNECTED

    def _handle_close(self) -> None:
        self._transport = None
        self.state = ConnectionState.DISCONNECTED
        logger.warning("websocket_connection_closed", exchange="idex", url=self.base_url)
        self._disconnect_listeners.emit()

        if self.should_reconnect_automatically:
            self._schedule_reconnect()

    def _handle_error(self, error: BaseException) -> None:
        logger.error(
            "websocket_error",
            exchange="idex",
            url=self.base_url,
            error=str(error),
            error_type=type(error).__name__,
        )
        self._error_listeners.emit(error)

    def _handle_message(self, data: Union[str, bytes]) -> None:
        if not isinstance(data, str):
            raise MalformedMessageError("Malformed response data: expected text frame")

        message = transform_message(json.loads(data))
        self._response_listeners.emit(message)

    def _next_backoff(self) -> int:
        backoff_seconds = 2**self.reconnect_attempt
        self.reconnect_attempt += 1
        return backoff_seconds

    def _schedule_reconnect(self) -> None:
        backoff_seconds = self._next_backoff()
        logger.info(
            "websocket_reconnecting",
            exchange="idex",
            url=self.base_url,
            attempt=self.reconnect_attempt,
            delay_seconds=backoff_seconds,
        )
        self._reconnect_task = asyncio.ensure_future(self._reconnect(backoff_seconds))

    async def _reconnect(self, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            await self.connect()
        except NotConnectedError as e:
            # Closed before opening, _handle_close scheduled the next attempt
            logger.warning(
                "websocket_reconnect_closed",
                exchange="idex",
                url=self.base_url,
                error=str(e),
            )
        except Exception as e:
            logger.error(
                "websocket_reconnect_failed",
                exchange="idex",
                url=self.base_url,
                error=str(e),
                error_type=type(e).__name__,
            )
            if self._transport is not None:
                self._destroy_transport()
            self.state = ConnectionState.DISCONNECTED
            self._schedule_reconnect()

    def _cancel_reconnect(self) -> None:
        task = self._reconnect_task
        self._reconnect_task = None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        logger.info("websocket_reconnect_cancelled", exchange="idex", url=self.base_url)

    def _reset_reconnection_state(self) -> None:
        self.reconnect_attempt = 0

    def _send_message(self, request: WebSocketRequest) -> None:
        self._throw_if_disconnected()
        self._transport.send(request.to_json())
        logger.debug(
            "websocket_request_sent",
            exchange="idex",
            method=request.method.value,
            cid=request.cid,
        )

    def _throw_if_disconnected(self) -> None:
        if not self.is_connected():
            raise NotConnectedError()

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"WebSocketClient(url={self.base_url}, "
            f"state={self.state.value}, "
            f"reconnect_attempt={self.reconnect_attempt})"
        )
