"""Constants for the MARKET Protocol client."""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

# Sentinel taker meaning "any counterparty"; as fee recipient it means "no fees charged"
NULL_ADDRESS = "0x0000000000000000000000000000000000000000"

# Market contract event names
ORDER_FILLED_EVENT = "OrderFilled"
ORDER_CANCELLED_EVENT = "OrderCancelled"
ERROR_EVENT = "Error"

# Settlement event confirmation
DEFAULT_EVENT_TIMEOUT_SECONDS = 120
TRANSACTION_TIMEOUT_SECONDS = 120

# Log subscription transport (connection establishment only; state reads are never retried)
WS_CONNECT_ATTEMPTS = 3
WS_CONNECT_BACKOFF_SECONDS = 1

# Contract ABIs
ABI_DIR = Path(__file__).parent / "abis"

MARKET_CONTRACT_ABI_NAME = "MarketContract"
MARKET_COLLATERAL_POOL_ABI_NAME = "MarketCollateralPool"
MARKET_TOKEN_ABI_NAME = "MarketToken"
MARKET_CONTRACT_REGISTRY_ABI_NAME = "MarketContractRegistry"
ORDER_LIB_ABI_NAME = "OrderLib"


@lru_cache(maxsize=None)
def _load_abi_text(name: str) -> str:
    abi_path = ABI_DIR / f"{name}.json"
    with open(abi_path) as f:
        return f.read()


def load_abi(name: str) -> list[dict[str, Any]]:
    """Load a contract ABI shipped with the package.

    Returns a fresh list on each call so callers may not mutate the cached copy.
    """
    return json.loads(_load_abi_text(name))
