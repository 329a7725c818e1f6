"""
IDEX REST API client for WebSocket auth tokens.

Authenticated WebSocket subscriptions need a wallet scoped token. This client
implements the token fetch callable expected by WebSocketClient.

Endpoints:
    Base URL: https://api.idex.io (sandbox: https://api-sandbox.idex.io)
    WebSocket Token: GET /v1/wsToken?nonce={uuid1}&wallet={wallet}

Authentication:
    - IDEX-API-Key: API key
    - IDEX-HMAC-Signature: hex HMAC-SHA256 of the query string, keyed with
      the API secret

Response Format (WebSocket Token):
    {
        "token": "<wsToken>"
    }

Example:
    >>> rest = IdexRestClient(
    ...     base_url="https://api-sandbox.idex.io",
    ...     api_key="...",
    ...     api_secret="...",
    ... )
    >>> client = WebSocketClient(sandbox=True, fetch_token=rest.get_ws_token)
"""

import asyncio
import hashlib
import hmac
import uuid
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import aiohttp
import structlog

from idex_ws.config.models import USER_AGENT, RestClientConfig
from idex_ws.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

WS_TOKEN_ENDPOINT = "/v1/wsToken"


class RateLimitError(Exception):
    """Raised when rate limit is exceeded."""

    pass


def sign_query(query_string: str, api_secret: str) -> str:
    """
    Compute the IDEX-HMAC-Signature for a query string.

    Args:
        query_string: URL encoded query string, without leading "?".
        api_secret: API secret.

    Returns:
        str: Lowercase hex digest.
    """
    return hmac.new(
        api_secret.encode("utf-8"),
        query_string.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


class IdexRestClient:
    """
    Async REST API client for IDEX WebSocket tokens.

    Attributes:
        base_url: REST API base URL.
        api_key: API key.
        rate_limit_per_second: Maximum requests per second.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        api_secret: str,
        rate_limit_per_second: int = 5,
        timeout_seconds: int = 10,
    ):
        """
        Initialize REST client.

        Args:
            base_url: REST API base URL.
            api_key: API key.
            api_secret: API secret used for request signing.
            rate_limit_per_second: Maximum requests per second.
            timeout_seconds: Request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._api_secret = api_secret
        self.rate_limit_per_second = rate_limit_per_second
        self.timeout_seconds = timeout_seconds

        self._session: Optional[aiohttp.ClientSession] = None
        self._last_request_time: float = 0.0
        self._request_interval = 1.0 / rate_limit_per_second

        logger.info(
            "rest_client_initialized",
            exchange="idex",
            base_url=base_url,
            rate_limit=rate_limit_per_second,
        )

    @classmethod
    def from_config(cls, config: RestClientConfig) -> "IdexRestClient":
        """
        Build a client from a RestClientConfig.

        Raises:
            ConfigurationError: If API key or secret is missing.
        """
        if not config.has_credentials:
            raise ConfigurationError("api_key and api_secret are required for wsToken")
        return cls(
            base_url=config.resolve_base_url(),
            api_key=config.api_key,
            api_secret=config.api_secret,
            timeout_seconds=config.timeout_seconds,
        )

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session is created."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"User-Agent": USER_AGENT},
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("rest_client_session_closed", exchange="idex", base_url=self.base_url)

    async def __aenter__(self) -> "IdexRestClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _rate_limit(self) -> None:
        """Ensure a minimum interval between requests."""
        loop = asyncio.get_running_loop()
        time_since_last = loop.time() - self._last_request_time

        if time_since_last < self._request_interval:
            await asyncio.sleep(self._request_interval - time_since_last)

        self._last_request_time = loop.time()

    async def _signed_get(self, endpoint: str, params: Dict[str, str]) -> Dict[str, Any]:
        """
        Make a signed GET request with rate limiting and error handling.

        Args:
            endpoint: API endpoint path.
            params: Query parameters, signed in the given order.

        Returns:
            Dict[str, Any]: Parsed JSON response.

        Raises:
            RateLimitError: If rate limited by exchange.
            ConnectionError: If the request fails.
        """
        await self._rate_limit()

        session = await self._ensure_session()
        query_string = urlencode(params)
        url = f"{self.base_url}{endpoint}?{query_string}"
        headers = {
            "IDEX-API-Key": self.api_key,
            "IDEX-HMAC-Signature": sign_query(query_string, self._api_secret),
        }

        try:
            async with session.get(url, headers=headers) as response:
                if response.status == 429:
                    retry_after = int(response.headers.get("Retry-After", 60))
                    logger.warning(
                        "rest_rate_limited",
                        exchange="idex",
                        endpoint=endpoint,
                        retry_after=retry_after,
                    )
                    raise RateLimitError(f"Rate limited, retry after {retry_after}s")

                if response.status >= 400:
                    error_text = await response.text()
                    logger.error(
                        "rest_request_failed",
                        exchange="idex",
                        endpoint=endpoint,
                        status=response.status,
                        error=error_text,
                    )
                    raise ConnectionError(
                        f"REST request failed with status {response.status}: {error_text}"
                    )

                return await response.json()

        except aiohttp.ClientError as e:
            logger.error(
                "rest_request_error",
                exchange="idex",
                endpoint=endpoint,
                error=str(e),
            )
            raise ConnectionError(f"REST request failed: {e}") from e

    async def get_ws_token(self, wallet: str, nonce: Optional[str] = None) -> str:
        """
        Fetch a WebSocket auth token for a wallet.

        Args:
            wallet: Wallet address.
            nonce: Request nonce, a fresh uuid1 by default.

        Returns:
            str: WebSocket auth token.

        Raises:
            ConnectionError: If the request fails.
            ValueError: If the response has no token.
        """
        params = {"nonce": nonce or str(uuid.uuid1()), "wallet": wallet}
        data = await self._signed_get(WS_TOKEN_ENDPOINT, params)

        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise ValueError(f"No token in wsToken response: {data}")

        logger.debug("rest_ws_token_received", exchange="idex", wallet=wallet)
        return token

    def __repr__(self) -> str:
        """Return string representation."""
        return f"IdexRestClient(base_url={self.base_url})"
