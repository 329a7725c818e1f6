"""
IDEX WebSocket message normalizer.

Converts the bandwidth optimized short-form payloads pushed by the IDEX
WebSocket API into long-form dicts with descriptive field names.

IDEX Message Format:
    {
        "type": "tickers",
        "data": {
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
            "u": 848728
        }
    }

Normalized:
    {
        "type": "tickers",
        "data": {
            "market": "ETH-USDC",
            "time": 1590408000000,
            ...
            "num_trades": 14201,
            "sequence": 848728
        }
    }

Optional fields (``n`` above) only appear in the output when the server sent
them. ``error`` and ``subscriptions`` messages, and unknown message types,
pass through unchanged.
"""

from typing import Any, Callable, Dict, Mapping, Sequence, Tuple

import structlog

from idex_ws.exceptions import MalformedMessageError

logger = structlog.get_logger(__name__)

# (short key, long key, optional)
FieldSpec = Tuple[str, str, bool]

TICKER_FIELDS: Sequence[FieldSpec] = (
    ("m", "market", False),
    ("t", "time", False),
    ("o", "open", False),
    ("h", "high", False),
    ("l", "low", False),
    ("c", "close", False),
    ("Q", "close_quantity", False),
    ("v", "base_volume", False),
    ("q", "quote_volume", False),
    ("P", "percent_change", False),
    ("n", "num_trades", True),
    ("a", "ask", False),
    ("b", "bid", False),
    ("u", "sequence", False),
)

TRADE_FIELDS: Sequence[FieldSpec] = (
    ("m", "market", False),
    ("i", "fill_id", False),
    ("p", "price", False),
    ("q", "quantity", False),
    ("Q", "quote_quantity", False),
    ("t", "time", False),
    ("s", "maker_side", False),
    ("u", "sequence", False),
)

CANDLE_FIELDS: Sequence[FieldSpec] = (
    ("m", "market", False),
    ("t", "time", False),
    ("i", "interval", False),
    ("s", "start", False),
    ("e", "end", False),
    ("o", "open", False),
    ("h", "high", False),
    ("l", "low", False),
    ("c", "close", False),
    ("v", "volume", False),
    ("n", "num_trades", False),
    ("u", "sequence", False),
)

L1_ORDERBOOK_FIELDS: Sequence[FieldSpec] = (
    ("m", "market", False),
    ("t", "time", False),
    ("b", "bid_price", False),
    ("B", "bid_quantity", False),
    ("a", "ask_price", False),
    ("A", "ask_quantity", False),
)

L2_ORDERBOOK_FIELDS: Sequence[FieldSpec] = (
    ("m", "market", False),
    ("t", "time", False),
    ("u", "sequence", False),
    ("b", "bids", True),
    ("a", "asks", True),
)

BALANCE_FIELDS: Sequence[FieldSpec] = (
    ("w", "wallet", False),
    ("a", "asset", False),
    ("q", "quantity", False),
    ("f", "available_for_trade", False),
    ("l", "locked", False),
    ("d", "usd_value", False),
)

ORDER_FILL_FIELDS: Sequence[FieldSpec] = (
    ("i", "fill_id", False),
    ("p", "price", False),
    ("q", "quantity", False),
    ("Q", "quote_quantity", False),
    ("t", "time", False),
    ("s", "maker_side", False),
    ("u", "sequence", False),
    ("f", "fee", False),
    ("a", "fee_asset", False),
    ("g", "gas", True),
    ("l", "liquidity", False),
    ("T", "tx_id", True),
    ("S", "tx_status", False),
)

# Fills (F) are handled separately, see normalize_order
ORDER_FIELDS: Sequence[FieldSpec] = (
    ("m", "market", False),
    ("i", "order_id", False),
    ("c", "client_order_id", True),
    ("w", "wallet", False),
    ("t", "time", False),
    ("T", "time_of_original_order", False),
    ("x", "execution_type", False),
    ("X", "status", False),
    ("u", "order_book_sequence_number", True),
    ("o", "type", False),
    ("S", "side", False),
    ("q", "original_quantity", False),
    ("Q", "original_quote_quantity", True),
    ("z", "executed_quantity", False),
    ("Z", "cumulative_quote_quantity", False),
    ("v", "avg_execution_price", True),
    ("p", "limit_order_price", True),
    ("P", "stop_order_price", True),
    ("f", "time_in_force", False),
    ("V", "self_trade_prevention", False),
)

PASSTHROUGH_TYPES = frozenset({"error", "subscriptions"})


def _expand(short: Mapping[str, Any], fields: Sequence[FieldSpec]) -> Dict[str, Any]:
    """Map short keys to long keys, skipping optional fields that are absent."""
    expanded: Dict[str, Any] = {}
    for short_key, long_key, optional in fields:
        if optional:
            value = short.get(short_key)
            if value is not None:
                expanded[long_key] = value
        else:
            expanded[long_key] = short[short_key]
    return expanded


class IdexNormalizer:
    """
    Normalizes IDEX short-form WebSocket payloads.

    All methods are pure. A missing required field raises
    MalformedMessageError; no other validation is performed.

    Example:
        >>> IdexNormalizer.normalize_l1orderbook(
        ...     {"m": "ETH-USDC", "t": 1, "b": "1.0", "B": "2", "a": "1.1", "A": "3"}
        ... )["bid_price"]
        '1.0'
    """

    @staticmethod
    def normalize_ticker(ticker: Mapping[str, Any]) -> Dict[str, Any]:
        """Normalize a tickers payload."""
        return _expand(ticker, TICKER_FIELDS)

    @staticmethod
    def normalize_trade(trade: Mapping[str, Any]) -> Dict[str, Any]:
        """Normalize a trades payload."""
        return _expand(trade, TRADE_FIELDS)

    @staticmethod
    def normalize_candle(candle: Mapping[str, Any]) -> Dict[str, Any]:
        """Normalize a candles payload."""
        return _expand(candle, CANDLE_FIELDS)

    @staticmethod
    def normalize_l1orderbook(l1orderbook: Mapping[str, Any]) -> Dict[str, Any]:
        """Normalize a level-1 order book payload."""
        return _expand(l1orderbook, L1_ORDERBOOK_FIELDS)

    @staticmethod
    def normalize_l2orderbook(l2orderbook: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Normalize a level-2 order book payload.

        Price levels are passed through as received:
        [price, quantity, num_orders].
        """
        return _expand(l2orderbook, L2_ORDERBOOK_FIELDS)

    @staticmethod
    def normalize_balance(balance: Mapping[str, Any]) -> Dict[str, Any]:
        """Normalize a balances payload."""
        return _expand(balance, BALANCE_FIELDS)

    @staticmethod
    def normalize_order_fill(fill: Mapping[str, Any]) -> Dict[str, Any]:
        """Normalize a single fill nested in an orders payload."""
        return _expand(fill, ORDER_FILL_FIELDS)

    @staticmethod
    def normalize_order(order: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Normalize an orders payload.

        Fills are only present on order updates that executed, and are
        normalized element-wise.
        """
        normalized = _expand(order, ORDER_FIELDS)
        fills = order.get("F")
        if fills is not None:
            normalized["fills"] = [
                IdexNormalizer.normalize_order_fill(fill) for fill in fills
            ]
        return normalized

    @staticmethod
    def normalize_message(message: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Normalize a full inbound message.

        Args:
            message: Parsed JSON message with a ``type`` discriminator.

        Returns:
            Dict[str, Any]: The message with ``data`` expanded to long form,
            or the message unchanged for error, subscriptions and unknown types.

        Raises:
            MalformedMessageError: If a required field is missing.
        """
        message_type = message.get("type")
        if message_type in PASSTHROUGH_TYPES:
            return message  # type: ignore[return-value]

        normalize = _TOPIC_NORMALIZERS.get(message_type)
        if normalize is None:
            return message  # type: ignore[return-value]

        try:
            data = normalize(message["data"])
        except KeyError as e:
            logger.error(
                "message_normalization_failed_missing_field",
                exchange="idex",
                message_type=message_type,
                missing_field=str(e),
            )
            raise MalformedMessageError(
                f"Missing required field in IDEX {message_type} message: {e}"
            ) from e
        except (TypeError, AttributeError) as e:
            logger.error(
                "message_normalization_failed_invalid_data",
                exchange="idex",
                message_type=message_type,
                error=str(e),
            )
            raise MalformedMessageError(
                f"Invalid data in IDEX {message_type} message: {e}"
            ) from e

        return {**message, "data": data}


_TOPIC_NORMALIZERS: Dict[Any, Callable[[Mapping[str, Any]], Dict[str, Any]]] = {
    "tickers": IdexNormalizer.normalize_ticker,
    "trades": IdexNormalizer.normalize_trade,
    "candles": IdexNormalizer.normalize_candle,
    "l1orderbook": IdexNormalizer.normalize_l1orderbook,
    "l2orderbook": IdexNormalizer.normalize_l2orderbook,
    "balances": IdexNormalizer.normalize_balance,
    "orders": IdexNormalizer.normalize_order,
}


def transform_message(message: Mapping[str, Any]) -> Dict[str, Any]:
    """Normalize an inbound message. See IdexNormalizer.normalize_message."""
    return IdexNormalizer.normalize_message(message)
