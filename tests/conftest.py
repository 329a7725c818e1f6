"""Test configuration and fixtures for the entire test suite."""

import json
from typing import Any, Dict, List, Optional, Union

import pytest

from idex_ws.client.websocket import WebSocketClient
from idex_ws.interfaces.transport import Transport


class FakeTransport(Transport):
    """
    In-memory transport for testing without network calls.

    This allows us to:
    - Control when the socket becomes ready
    - Capture outbound frames
    - Simulate inbound frames, server closes and errors
    """

    def __init__(self, url: str, headers: Dict[str, str], auto_open: bool = True):
        self.url = url
        self.headers = headers
        self.sent: List[str] = []
        self.is_open = auto_open
        self.closed = False
        self.close_calls = 0
        self.on_message = None
        self.on_close = None
        self.on_error = None

    @property
    def ready(self) -> bool:
        return self.is_open and not self.closed

    def send(self, data: str) -> None:
        self.sent.append(data)

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True
        if self.on_close is not None:
            self.on_close()

    # Test helpers

    def open(self) -> None:
        """Simulate the opening handshake completing."""
        self.is_open = True

    def emit(self, message: Union[Dict[str, Any], str, bytes]) -> None:
        """Simulate an inbound frame; dicts are sent as JSON text."""
        data = json.dumps(message) if isinstance(message, dict) else message
        self.on_message(data)

    def server_close(self) -> None:
        """Simulate the server or network closing the connection."""
        self.closed = True
        if self.on_close is not None:
            self.on_close()

    def fail(self, error: BaseException) -> None:
        """Simulate a transport error."""
        self.on_error(error)

    def frames(self) -> List[Dict[str, Any]]:
        """Return sent frames parsed from JSON."""
        return [json.loads(frame) for frame in self.sent]


class FakeTransportFactory:
    """Transport factory recording every transport it opens."""

    def __init__(self) -> None:
        self.transports: List[FakeTransport] = []
        self.auto_open = True

    def __call__(self, url: str, headers: Dict[str, str]) -> FakeTransport:
        transport = FakeTransport(url, headers, auto_open=self.auto_open)
        self.transports.append(transport)
        return transport

    @property
    def last(self) -> Optional[FakeTransport]:
        return self.transports[-1] if self.transports else None


class FakeTokenFetcher:
    """Token fetch callable returning "token-<wallet>" and counting calls."""

    def __init__(self) -> None:
        self.calls: List[str] = []

    async def __call__(self, wallet: str) -> str:
        self.calls.append(wallet)
        return f"token-{wallet}"


@pytest.fixture
def transport_factory() -> FakeTransportFactory:
    """Return a fake transport factory."""
    return FakeTransportFactory()


@pytest.fixture
def token_fetcher() -> FakeTokenFetcher:
    """Return a fake token fetcher."""
    return FakeTokenFetcher()


@pytest.fixture
def client(
    transport_factory: FakeTransportFactory, token_fetcher: FakeTokenFetcher
) -> WebSocketClient:
    """Return a client wired to fake transport and token fetcher."""
    return WebSocketClient(
        base_url="wss://websocket.test/v1",
        fetch_token=token_fetcher,
        transport_factory=transport_factory,
        open_poll_interval=0.001,
    )


@pytest.fixture
def public_client(transport_factory: FakeTransportFactory) -> WebSocketClient:
    """Return a client without a token fetcher."""
    return WebSocketClient(
        base_url="wss://websocket.test/v1",
        transport_factory=transport_factory,
        open_poll_interval=0.001,
    )
