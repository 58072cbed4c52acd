#!/usr/bin/env python3
"""Deposit collateral into (or withdraw it from) a market's collateral pool."""

import asyncio

from market_protocol_client.core.exceptions import MarketProtocolClientError
from market_protocol_client.market import Market

# ============================================================================
# CONFIGURATION - Edit these variables
# ============================================================================

# Market contract whose collateral pool receives the deposit
MARKET_ADDRESS = "0x0000000000000000000000000000000000000000"

# Amount in collateral token base units (negative to withdraw)
AMOUNT = 10**18

# ============================================================================
# Connection settings come from MARKET_* environment variables (or .env)
# The collateral token must already be approved for the pool before depositing.
# ============================================================================


async def main():
    """Move collateral and print the resulting pool balance."""
    if AMOUNT == 0:
        print("❌ Error: AMOUNT must be non-zero")
        return

    market = Market.from_env()
    user = market.client.default_account
    if user is None:
        print("❌ Error: set MARKET_PRIVATE_KEY or MARKET_DEFAULT_ACCOUNT")
        return

    async with market:
        before = await market.get_user_account_balance(MARKET_ADDRESS, user)
        print(f"💰 Collateral balance before: {before}")

        try:
            if AMOUNT > 0:
                print(f"📤 Depositing {AMOUNT}...")
                tx_hash = await market.deposit_collateral(MARKET_ADDRESS, AMOUNT)
            else:
                print(f"📥 Withdrawing {-AMOUNT}...")
                tx_hash = await market.withdraw_collateral(MARKET_ADDRESS, -AMOUNT)
        except MarketProtocolClientError as e:
            print(f"❌ Transaction failed: {e}")
            return

        print(f"   ✅ Confirmed: {tx_hash}")
        after = await market.get_user_account_balance(MARKET_ADDRESS, user)
        print(f"💰 Collateral balance after: {after}")


if __name__ == "__main__":
    asyncio.run(main())
