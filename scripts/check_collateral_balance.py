#!/usr/bin/env python3
"""Check collateral pool and fee token balances for the configured account."""

import asyncio

from market_protocol_client.market import Market

# ============================================================================
# CONFIGURATION - Edit these variables
# ============================================================================

# Market contracts to check (empty list = every whitelisted market)
MARKETS: list[str] = []

# ============================================================================
# Connection settings come from MARKET_* environment variables (or .env)
# ============================================================================


async def main():
    """Print balances of the configured account in each market."""
    market = Market.from_env()
    user = market.client.default_account
    if user is None:
        print("❌ Error: set MARKET_PRIVATE_KEY or MARKET_DEFAULT_ACCOUNT")
        return

    async with market:
        markets = MARKETS or await market.get_address_white_list()
        print(f"🔍 Checking balances for: {user}")
        print(f"🪙 Fee token balance: {await market.get_fee_token_balance(user)}\n")

        print("=" * 60)
        for market_address in markets:
            specs = await market.get_contract_specs(market_address)
            balance = await market.get_user_account_balance(market_address, user)
            enabled = await market.is_user_enabled_for_contract(market_address, user)

            print(f"📍 Market: {market_address}")
            print(f"   Collateral pool: {specs.collateral_pool_address}")
            print(f"   Collateral balance (base units): {balance}")
            print(f"   Enabled for trading: {'yes' if enabled else 'no'}")
            print("-" * 60)

    print("✅ Balance check complete")


if __name__ == "__main__":
    asyncio.run(main())
