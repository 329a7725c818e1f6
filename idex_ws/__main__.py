"""
Stream IDEX WebSocket messages to stdout.

Usage:
    python -m idex_ws --sandbox --topic tickers --market ETH-USDC
    python -m idex_ws --config config --topic orders --wallet 0xabc

Each normalized message is printed as one JSON line. Logs go to stderr.

Environment Variables:
    IDEX_API_KEY / IDEX_API_SECRET: needed for authenticated topics
    LOG_LEVEL: Logging level (default: INFO)
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

import structlog

from idex_ws.client.rest import IdexRestClient
from idex_ws.client.websocket import WebSocketClient
from idex_ws.config.loader import ConfigLoadError, load_config
from idex_ws.exceptions import IdexWebSocketError
from idex_ws.logging_config import setup_logging_from_config
from idex_ws.models.subscriptions import AUTHENTICATED_SUBSCRIPTION_NAMES

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="idex_ws",
        description="Stream normalized IDEX WebSocket messages as JSON lines",
    )
    parser.add_argument("--config", help="Configuration directory with client.yaml")
    parser.add_argument("--base-url", help="WebSocket API base URL")
    parser.add_argument("--sandbox", action="store_true", help="Use sandbox endpoints")
    parser.add_argument(
        "--topic",
        action="append",
        dest="topics",
        default=[],
        help="Topic to subscribe to (repeatable), e.g. tickers, trades, orders",
    )
    parser.add_argument(
        "--market",
        action="append",
        dest="markets",
        default=[],
        help="Market symbol (repeatable), e.g. ETH-USDC",
    )
    parser.add_argument("--interval", help="Candle interval, e.g. 1m")
    parser.add_argument("--wallet", help="Wallet for authenticated topics")
    parser.add_argument("--cid", help="Correlation id for the subscribe request")
    return parser


def build_subscriptions(args: argparse.Namespace) -> List[Dict[str, Any]]:
    """Turn command line arguments into subscription dicts."""
    subscriptions: List[Dict[str, Any]] = []
    for topic in args.topics:
        subscription: Dict[str, Any] = {"name": topic}
        if topic in AUTHENTICATED_SUBSCRIPTION_NAMES:
            if args.wallet:
                subscription["wallet"] = args.wallet
        else:
            if args.markets:
                subscription["markets"] = list(args.markets)
            if topic == "candles" and args.interval:
                subscription["interval"] = args.interval
        subscriptions.append(subscription)
    return subscriptions


def print_message(message: Dict[str, Any]) -> None:
    """Write one message as a JSON line."""
    sys.stdout.write(json.dumps(message) + "\n")
    sys.stdout.flush()


async def run(args: argparse.Namespace) -> None:
    """Connect, subscribe and stream until interrupted."""
    config = load_config(args.config)
    setup_logging_from_config(config.logging)

    ws_config = config.websocket
    rest_config = config.rest
    if args.sandbox:
        ws_config = ws_config.model_copy(update={"sandbox": True})
        rest_config = rest_config.model_copy(update={"sandbox": True})
    if args.base_url:
        ws_config = ws_config.model_copy(update={"base_url": args.base_url, "sandbox": False})

    rest: Optional[IdexRestClient] = None
    if rest_config.has_credentials:
        rest = IdexRestClient.from_config(rest_config)

    client = WebSocketClient.from_config(
        ws_config,
        fetch_token=rest.get_ws_token if rest else None,
    )
    client.on_response(print_message)
    client.on_error(lambda error: logger.warning("stream_error", error=str(error)))

    try:
        await client.connect()
        subscriptions = build_subscriptions(args)
        if subscriptions:
            await client.subscribe(subscriptions, cid=args.cid)
        else:
            client.list_subscriptions(cid=args.cid)

        # Stream until cancelled
        await asyncio.Event().wait()
    finally:
        client.disconnect()
        if rest is not None:
            await rest.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        return 0
    except (ConfigLoadError, IdexWebSocketError) as e:
        sys.stderr.write(f"error: {e}\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
