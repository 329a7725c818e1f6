"""Tests for short-form to long-form message normalization."""

import pytest

from idex_ws.client.normalizer import IdexNormalizer, transform_message
from idex_ws.exceptions import MalformedMessageError

TICKER_SHORT = {
    "m": "ETH-USDC",
    "t": 1590408000000,
    "o": "202.11928302",
    "h": "207.58100029",
    "l": "201.85600392",
    "c": "206.00192301",
    "Q": "9.50000000",
    "v": "11297.01959248",
    "q": "2327207.76033252",
    "P": "1.92",
    "n": 14201,
    "a": "206.00207150",
    "b": "206.00084721",
    "u": 848728,
}

ORDER_SHORT = {
    "m": "ETH-USDC",
    "i": "92782120-a775-11ea-aa55-4da1cc97a06d",
    "w": "0xA71C4aeeAabBBB8D2910F41C2ca3964b81F7310d",
    "t": 1590394500000,
    "T": 1590394200000,
    "x": "fill",
    "X": "filled",
    "o": "market",
    "S": "buy",
    "q": "1.50000000",
    "z": "1.50000000",
    "Z": "302.87250000",
    "f": "gtc",
    "V": "dc",
}

FILL_SHORT = {
    "i": "974480d0-a776-11ea-895b-bfcbb5bdaa50",
    "p": "201.91500000",
    "q": "1.50000000",
    "Q": "302.87250000",
    "t": 1590394500000,
    "s": "sell",
    "u": 981372,
    "f": "0.00300000",
    "a": "ETH",
    "l": "taker",
    "S": "pending",
}


class TestTickers:
    """Test tickers normalization."""

    def test_expands_all_fields(self) -> None:
        """Test that every short key maps to its long name."""
        ticker = IdexNormalizer.normalize_ticker(TICKER_SHORT)

        assert ticker == {
            "market": "ETH-USDC",
            "time": 1590408000000,
            "open": "202.11928302",
            "high": "207.58100029",
            "low": "201.85600392",
            "close": "206.00192301",
            "close_quantity": "9.50000000",
            "base_volume": "11297.01959248",
            "quote_volume": "2327207.76033252",
            "percent_change": "1.92",
            "num_trades": 14201,
            "ask": "206.00207150",
            "bid": "206.00084721",
            "sequence": 848728,
        }

    def test_omits_num_trades_when_absent(self) -> None:
        """Test that a missing optional field is omitted, not set to None."""
        short = {k: v for k, v in TICKER_SHORT.items() if k != "n"}

        ticker = IdexNormalizer.normalize_ticker(short)

        assert "num_trades" not in ticker
        assert None not in ticker.values()

    def test_missing_required_field_raises(self) -> None:
        """Test that a missing required field is reported as malformed."""
        short = {k: v for k, v in TICKER_SHORT.items() if k != "c"}

        with pytest.raises(MalformedMessageError, match="tickers"):
            transform_message({"type": "tickers", "data": short})


class TestOrderBooks:
    """Test order book normalization."""

    def test_l1orderbook(self) -> None:
        """Test level-1 order book field names."""
        book = IdexNormalizer.normalize_l1orderbook(
            {"m": "ETH-USDC", "t": 1, "b": "1.0", "B": "2.0", "a": "1.1", "A": "3.0"}
        )

        assert book == {
            "market": "ETH-USDC",
            "time": 1,
            "bid_price": "1.0",
            "bid_quantity": "2.0",
            "ask_price": "1.1",
            "ask_quantity": "3.0",
        }

    def test_l2orderbook_only_bids(self) -> None:
        """Test that an update with one side only omits the other side."""
        bids = [["202.00200000", "13.88204000", 2]]

        book = IdexNormalizer.normalize_l2orderbook(
            {"m": "ETH-USDC", "t": 1, "u": 42, "b": bids}
        )

        assert book == {"market": "ETH-USDC", "time": 1, "sequence": 42, "bids": bids}
        assert "asks" not in book

    def test_l2orderbook_empty_side_is_kept(self) -> None:
        """Test that a present but empty side is carried through unchanged."""
        book = IdexNormalizer.normalize_l2orderbook(
            {"m": "ETH-USDC", "t": 1, "u": 42, "b": [], "a": []}
        )

        assert book["bids"] == []
        assert book["asks"] == []


class TestOrders:
    """Test orders normalization, including nested fills."""

    def test_order_without_optional_fields(self) -> None:
        """Test that optional order fields are absent when not sent."""
        order = IdexNormalizer.normalize_order(ORDER_SHORT)

        for key in (
            "client_order_id",
            "order_book_sequence_number",
            "original_quote_quantity",
            "avg_execution_price",
            "limit_order_price",
            "stop_order_price",
            "fills",
        ):
            assert key not in order
        assert order["order_id"] == ORDER_SHORT["i"]
        assert order["self_trade_prevention"] == "dc"
        assert order["type"] == "market"

    def test_order_with_optional_fields_and_fills(self) -> None:
        """Test that optional fields are copied and fills normalized element-wise."""
        short = {
            **ORDER_SHORT,
            "c": "client-1",
            "u": 981372,
            "v": "201.91500000",
            "F": [FILL_SHORT, {**FILL_SHORT, "g": "0.0012", "T": "0x01"}],
        }

        order = IdexNormalizer.normalize_order(short)

        assert order["client_order_id"] == "client-1"
        assert order["order_book_sequence_number"] == 981372
        assert order["avg_execution_price"] == "201.91500000"
        assert len(order["fills"]) == 2

        first, second = order["fills"]
        assert first == {
            "fill_id": FILL_SHORT["i"],
            "price": "201.91500000",
            "quantity": "1.50000000",
            "quote_quantity": "302.87250000",
            "time": 1590394500000,
            "maker_side": "sell",
            "sequence": 981372,
            "fee": "0.00300000",
            "fee_asset": "ETH",
            "liquidity": "taker",
            "tx_status": "pending",
        }
        assert second["gas"] == "0.0012"
        assert second["tx_id"] == "0x01"

    def test_missing_field_in_fill_raises(self) -> None:
        """Test that nested fills are held to the same required fields."""
        broken_fill = {k: v for k, v in FILL_SHORT.items() if k != "S"}
        message = {"type": "orders", "data": {**ORDER_SHORT, "F": [broken_fill]}}

        with pytest.raises(MalformedMessageError):
            transform_message(message)


class TestOtherTopics:
    """Test trades, candles and balances."""

    def test_trade(self) -> None:
        """Test trades field names."""
        trade = IdexNormalizer.normalize_trade(
            {
                "m": "ETH-USDC",
                "i": "a0b6a470-a6bf-11ea-90a3-8de307b3b6da",
                "p": "202.74900000",
                "q": "10.00000000",
                "Q": "2027.49000000",
                "t": 1590394500000,
                "s": "sell",
                "u": 848778,
            }
        )

        assert trade["fill_id"] == "a0b6a470-a6bf-11ea-90a3-8de307b3b6da"
        assert trade["maker_side"] == "sell"
        assert trade["quote_quantity"] == "2027.49000000"

    def test_candle(self) -> None:
        """Test candles field names."""
        candle = IdexNormalizer.normalize_candle(
            {
                "m": "ETH-USDC",
                "t": 1,
                "i": "1m",
                "s": 0,
                "e": 60000,
                "o": "1",
                "h": "2",
                "l": "0.5",
                "c": "1.5",
                "v": "100",
                "n": 3,
                "u": 7,
            }
        )

        assert candle["interval"] == "1m"
        assert candle["start"] == 0
        assert candle["end"] == 60000
        assert candle["num_trades"] == 3

    def test_balance(self) -> None:
        """Test balances field names."""
        balance = IdexNormalizer.normalize_balance(
            {"w": "0xabc", "a": "USDC", "q": "10", "f": "8", "l": "2", "d": "10.00"}
        )

        assert balance == {
            "wallet": "0xabc",
            "asset": "USDC",
            "quantity": "10",
            "available_for_trade": "8",
            "locked": "2",
            "usd_value": "10.00",
        }


class TestTransformMessage:
    """Test message level dispatch."""

    def test_replaces_data_and_keeps_envelope(self) -> None:
        """Test that only data is expanded and the input is not mutated."""
        message = {"type": "tickers", "data": dict(TICKER_SHORT)}

        result = transform_message(message)

        assert result["type"] == "tickers"
        assert result["data"]["market"] == "ETH-USDC"
        assert message["data"] == TICKER_SHORT

    @pytest.mark.parametrize(
        "message",
        [
            {"type": "error", "data": {"code": "INVALID_PARAMETER", "message": "bad"}},
            {"type": "subscriptions", "subscriptions": [{"name": "tickers"}]},
            {"type": "futureTopic", "data": {"x": 1}},
        ],
    )
    def test_passthrough(self, message: dict) -> None:
        """Test that error, subscriptions and unknown types are unchanged."""
        assert transform_message(message) == message
