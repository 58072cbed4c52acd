#!/usr/bin/env python3
"""
Market Event Listener - print decoded settlement events of one market contract

Subscribes to OrderFilled, OrderCancelled and Error events over the websocket
RPC endpoint and prints each decoded event until interrupted.

Configuration:
- Uses MARKET_* environment variables (see Settings)
- Market contract address via --market

Usage:
    python examples/listeners/market_event_listener.py --market 0x...
"""

import argparse
import asyncio
import contextlib
import signal

from market_protocol_client.config.constants import (
    ERROR_EVENT,
    ORDER_CANCELLED_EVENT,
    ORDER_FILLED_EVENT,
)
from market_protocol_client.core.exceptions import ProviderError
from market_protocol_client.market import Market
from market_protocol_client.models.events import (
    MarketEvent,
    OrderCancelledEvent,
    OrderErrorEvent,
    OrderFilledEvent,
)


def print_event(event: MarketEvent) -> None:
    """Print one decoded event."""
    print("=" * 60)
    if isinstance(event, OrderFilledEvent):
        print(f"📈 OrderFilled  qty={event.filled_qty} price={event.price}")
        print(f"   maker={event.maker} taker={event.taker}")
        print(f"   fees: maker={event.paid_maker_fee} taker={event.paid_taker_fee}")
    elif isinstance(event, OrderCancelledEvent):
        print(f"🗑️  OrderCancelled qty={event.cancelled_qty} maker={event.maker}")
    elif isinstance(event, OrderErrorEvent):
        error = event.error_code.to_market_error()
        print(f"⚠️  Error {event.error_code.name} -> {error.value}")
    print(f"   order={event.order_hash}")
    print(f"   tx={event.transaction_hash} block={event.block_number}")


async def main(market_address: str) -> None:
    market = Market.from_env()
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)

    def on_error(error: Exception) -> None:
        print(f"❌ Subscription lost: {error}")
        stop_event.set()

    async with market:
        subscription_id = await market.events.subscribe(
            market_address,
            [ORDER_FILLED_EVENT, ORDER_CANCELLED_EVENT, ERROR_EVENT],
            print_event,
            on_error=on_error,
        )
        print(f"👂 Listening to {market_address} (Ctrl+C to stop)")
        try:
            await stop_event.wait()
        finally:
            with contextlib.suppress(ProviderError):
                await market.events.unsubscribe(subscription_id)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Print MARKET Protocol settlement events")
    parser.add_argument("--market", required=True, help="Market contract address")
    args = parser.parse_args()
    asyncio.run(main(args.market))
