"""Tests for subscription and request models."""

import json

import pytest
from pydantic import ValidationError

from idex_ws.models.requests import RequestMethod, WebSocketRequest
from idex_ws.models.subscriptions import (
    AUTHENTICATED_SUBSCRIPTION_NAMES,
    Subscription,
    remove_wallet,
    to_subscription,
)


class TestSubscription:
    """Test Subscription model."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("balances", True),
            ("orders", True),
            ("tickers", False),
            ("l2orderbook", False),
            ("somethingNew", False),
        ],
    )
    def test_is_authenticated(self, name: str, expected: bool) -> None:
        """Test authenticated topic detection."""
        assert Subscription(name=name).is_authenticated is expected

    def test_authenticated_names(self) -> None:
        """Test the set of authenticated topics."""
        assert AUTHENTICATED_SUBSCRIPTION_NAMES == {"balances", "orders"}

    def test_to_wire_drops_wallet_and_unset_fields(self) -> None:
        """Test that wallet and None fields are not serialized."""
        sub = Subscription(name="orders", wallet="0xabc")

        assert sub.to_wire() == {"name": "orders"}

    def test_extra_fields_are_forwarded(self) -> None:
        """Test that unknown per-topic parameters survive serialization."""
        sub = to_subscription({"name": "tickers", "markets": ["ETH-USDC"], "foo": 1})

        assert sub.to_wire() == {"name": "tickers", "markets": ["ETH-USDC"], "foo": 1}

    def test_remove_wallet_keeps_other_fields(self) -> None:
        """Test remove_wallet on a plain mapping."""
        assert remove_wallet(
            {"name": "candles", "markets": ["ETH-USDC"], "interval": "1m", "wallet": "0x1"}
        ) == {"name": "candles", "markets": ["ETH-USDC"], "interval": "1m"}

    def test_to_subscription_passes_instances_through(self) -> None:
        """Test that Subscription instances are not copied."""
        sub = Subscription(name="trades")

        assert to_subscription(sub) is sub

    def test_name_is_required(self) -> None:
        """Test that a subscription without name is rejected."""
        with pytest.raises(ValidationError):
            to_subscription({"markets": ["ETH-USDC"]})

    def test_frozen(self) -> None:
        """Test that subscriptions are immutable."""
        sub = Subscription(name="trades")

        with pytest.raises(ValidationError):
            sub.name = "tickers"


class TestWebSocketRequest:
    """Test request frame serialization."""

    def test_omits_absent_keys(self) -> None:
        """Test that unset cid, subscriptions and token are omitted."""
        request = WebSocketRequest(method=RequestMethod.SUBSCRIPTIONS)

        assert json.loads(request.to_json()) == {"method": "subscriptions"}

    def test_full_frame(self) -> None:
        """Test a subscribe frame with every key."""
        request = WebSocketRequest(
            method=RequestMethod.SUBSCRIBE,
            cid="abc",
            subscriptions=["tickers", {"name": "orders"}],
            token="tok",
        )

        assert json.loads(request.to_json()) == {
            "method": "subscribe",
            "cid": "abc",
            "subscriptions": ["tickers", {"name": "orders"}],
            "token": "tok",
        }

    def test_rejects_unknown_method(self) -> None:
        """Test that only known methods are accepted."""
        with pytest.raises(ValidationError):
            WebSocketRequest(method="ping")
