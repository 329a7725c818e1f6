"""
WebSocket auth token manager.

Authenticated subscriptions (balances, orders) need a wallet scoped token
obtained from the REST API (``GET /v1/wsToken``). The manager caches one token
per wallet and makes sure concurrent callers for the same wallet share a single
in-flight fetch.

Example:
    >>> manager = WebSocketTokenManager(rest_client.get_ws_token)
    >>> token = await manager.get_token("0xabc")
    >>> manager.get_last_cached_token("0xabc") == token
    True
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

import structlog

from idex_ws.exceptions import TokenFetchError

logger = structlog.get_logger(__name__)

TokenFetch = Callable[[str], Awaitable[str]]


@dataclass
class _TokenEntry:
    token: Optional[str] = None
    fetched_at: Optional[float] = None
    pending: Optional["asyncio.Future[str]"] = None


class WebSocketTokenManager:
    """
    Per-wallet token cache with single-flight fetching.

    Attributes:
        token_ttl_seconds: Age after which a cached token is refetched.
            None keeps tokens until invalidated.
        fetch_timeout_seconds: Timeout for one fetch. None waits forever.
    """

    def __init__(
        self,
        fetch_token: TokenFetch,
        token_ttl_seconds: Optional[float] = None,
        fetch_timeout_seconds: Optional[float] = None,
    ):
        """
        Initialize the token manager.

        Args:
            fetch_token: Async callable returning a token for a wallet.
            token_ttl_seconds: Cached token lifetime in seconds.
            fetch_timeout_seconds: Timeout for a single fetch in seconds.
        """
        self._fetch_token = fetch_token
        self.token_ttl_seconds = token_ttl_seconds
        self.fetch_timeout_seconds = fetch_timeout_seconds
        self._entries: Dict[str, _TokenEntry] = {}

    def _is_fresh(self, entry: _TokenEntry) -> bool:
        if entry.token is None or entry.fetched_at is None:
            return False
        if self.token_ttl_seconds is None:
            return True
        return time.monotonic() - entry.fetched_at < self.token_ttl_seconds

    async def get_token(self, wallet: str) -> str:
        """
        Return a valid token for a wallet, fetching it if needed.

        Concurrent calls for the same wallet await the same fetch.

        Args:
            wallet: Wallet address.

        Returns:
            str: Auth token.

        Raises:
            TokenFetchError: If the fetch callable fails or times out.
        """
        entry = self._entries.get(wallet)
        if entry is not None and entry.pending is None and self._is_fresh(entry):
            return entry.token  # type: ignore[return-value]

        if entry is None:
            entry = self._entries[wallet] = _TokenEntry()

        if entry.pending is None:
            logger.debug("ws_token_fetch_started", exchange="idex", wallet=wallet)
            entry.pending = asyncio.ensure_future(self._fetch(wallet, entry))

        # Shield so a cancelled caller does not cancel the fetch for the others
        return await asyncio.shield(entry.pending)

    async def _fetch(self, wallet: str, entry: _TokenEntry) -> str:
        try:
            if self.fetch_timeout_seconds is None:
                token = await self._fetch_token(wallet)
            else:
                token = await asyncio.wait_for(
                    self._fetch_token(wallet), self.fetch_timeout_seconds
                )
        except Exception as e:
            if self._entries.get(wallet) is entry:
                del self._entries[wallet]
            logger.error(
                "ws_token_fetch_failed",
                exchange="idex",
                wallet=wallet,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TokenFetchError(wallet, e) from e

        entry.token = token
        entry.fetched_at = time.monotonic()
        entry.pending = None
        logger.debug("ws_token_fetched", exchange="idex", wallet=wallet)
        return token

    def get_last_cached_token(self, wallet: str) -> Optional[str]:
        """
        Return the most recently resolved token for a wallet.

        Meant to be called after ``get_token`` was awaited, so frames can be
        built without awaiting again.

        Returns:
            Optional[str]: Token, or None if no fetch ever resolved.
        """
        entry = self._entries.get(wallet)
        return entry.token if entry else None

    def invalidate(self, wallet: str) -> None:
        """Drop the cached token for a wallet. A pending fetch is kept."""
        entry = self._entries.get(wallet)
        if entry is None:
            return
        if entry.pending is None:
            del self._entries[wallet]
        else:
            entry.token = None
            entry.fetched_at = None

    def clear(self) -> None:
        """Drop all cached tokens that are not being fetched."""
        for wallet in list(self._entries):
            self.invalidate(wallet)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"WebSocketTokenManager(wallets={len(self._entries)})"
