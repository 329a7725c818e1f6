"""
Pydantic models for outbound IDEX WebSocket traffic.

Modules:
    subscriptions: Topic subscriptions and wallet stripping
    requests: Request frames (subscribe, unsubscribe, subscriptions)

Example:
    >>> from idex_ws.models import Subscription, WebSocketRequest
"""

from idex_ws.models.requests import RequestMethod, WebSocketRequest
from idex_ws.models.subscriptions import (
    AUTHENTICATED_SUBSCRIPTION_NAMES,
    AuthenticatedSubscriptionName,
    Subscription,
    SubscriptionLike,
    UnauthenticatedSubscriptionName,
    remove_wallet,
    to_subscription,
)

__all__: list[str] = [
    # Subscriptions
    "AUTHENTICATED_SUBSCRIPTION_NAMES",
    "AuthenticatedSubscriptionName",
    "UnauthenticatedSubscriptionName",
    "Subscription",
    "SubscriptionLike",
    "remove_wallet",
    "to_subscription",
    # Requests
    "RequestMethod",
    "WebSocketRequest",
]
