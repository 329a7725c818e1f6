"""
Subscription models for the IDEX WebSocket API.

A subscription names a topic plus optional parameters. Authenticated topics
(balances, orders) need a wallet scoped auth token; the ``wallet`` field is
only used locally to look that token up and is never sent to the server.

Wire Format:
    {"name": "tickers", "markets": ["ETH-USDC"]}
    {"name": "candles", "markets": ["ETH-USDC"], "interval": "1m"}
    {"name": "orders"}

Example:
    >>> sub = Subscription(name="balances", wallet="0xabc")
    >>> sub.is_authenticated
    True
    >>> sub.to_wire()
    {'name': 'balances'}
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, Field


class AuthenticatedSubscriptionName(str, Enum):
    """Topics that require a wallet auth token."""

    BALANCES = "balances"
    ORDERS = "orders"


class UnauthenticatedSubscriptionName(str, Enum):
    """Public topics."""

    CANDLES = "candles"
    L1ORDERBOOK = "l1orderbook"
    L2ORDERBOOK = "l2orderbook"
    TICKERS = "tickers"
    TRADES = "trades"


AUTHENTICATED_SUBSCRIPTION_NAMES = frozenset(
    name.value for name in AuthenticatedSubscriptionName
)


class Subscription(BaseModel):
    """
    A single topic subscription.

    Extra per-topic parameters are accepted and forwarded as-is.

    Attributes:
        name: Topic name (e.g., "tickers", "orders").
        markets: Optional market filter (e.g., ["ETH-USDC"]).
        interval: Candle interval, candles topic only.
        wallet: Wallet used to fetch the auth token. Local only.
    """

    model_config = {"frozen": True, "extra": "allow"}

    name: str = Field(
        ...,
        description="Topic name",
        min_length=1,
        examples=["tickers", "orders"],
    )
    markets: Optional[List[str]] = Field(
        default=None,
        description="Market symbols to filter on",
    )
    interval: Optional[str] = Field(
        default=None,
        description="Candle interval (candles only)",
    )
    wallet: Optional[str] = Field(
        default=None,
        description="Wallet for token lookup, never sent over the wire",
    )

    @property
    def is_authenticated(self) -> bool:
        """Check if this topic requires a wallet auth token."""
        return self.name in AUTHENTICATED_SUBSCRIPTION_NAMES

    def to_wire(self) -> Dict[str, Any]:
        """
        Serialize for the wire with the wallet removed.

        Returns:
            Dict[str, Any]: Subscription without ``wallet`` or unset fields.
        """
        return self.model_dump(exclude={"wallet"}, exclude_none=True)


SubscriptionLike = Union[Subscription, Mapping[str, Any]]


def to_subscription(subscription: SubscriptionLike) -> Subscription:
    """Coerce a mapping into a Subscription, passing instances through."""
    if isinstance(subscription, Subscription):
        return subscription
    return Subscription.model_validate(dict(subscription))


def remove_wallet(subscription: SubscriptionLike) -> Dict[str, Any]:
    """
    Return the wire form of a subscription without its wallet.

    The wallet only exists to generate the user's auth token. Once the token
    is known it must not be sent to the server. All other fields are kept
    unchanged.
    """
    return to_subscription(subscription).to_wire()
