"""
Raffle protocol constants.

These values are part of the public rules of the raffle; changing them changes
how draws are requested and MUST be announced.
"""

from __future__ import annotations

from typing import Final, Tuple

# One ether (or any 18-decimal token) in its smallest unit.
WEI_PER_ETHER: Final[int] = 10**18

# Block confirmations the coordinator waits before answering a request.
REQUEST_CONFIRMATIONS: Final[int] = 3

# Random words requested per draw (one winner per round).
NUM_WORDS: Final[int] = 1

# Networks where a local coordinator is deployed instead of a live one.
DEVELOPMENT_CHAINS: Final[Tuple[str, ...]] = ("hardhat", "localhost")

# Amount a fresh local subscription is funded with.
VRF_SUB_FUND_AMOUNT: Final[int] = 30 * WEI_PER_ETHER

# Local coordinator pricing (flat premium plus gas at a fixed link price).
BASE_FEE: Final[int] = WEI_PER_ETHER // 4  # 0.25 LINK per request
GAS_PRICE_LINK: Final[int] = 10**9  # LINK per gas

# Key hashes are bytes32 on the wire.
KEY_HASH_LEN: Final[int] = 32


def to_wei(ether: str) -> int:
    """Convert a decimal ether string (e.g. "0.01") to an integer amount, exactly."""
    s = ether.strip()
    if s.startswith("-"):
        raise ValueError(f"amount must not be negative: {ether!r}")
    whole, _, frac = s.partition(".")
    if len(frac) > 18:
        raise ValueError(f"too many decimal places: {ether!r}")
    return int(whole or "0") * WEI_PER_ETHER + int((frac or "0").ljust(18, "0"))


__all__ = [
    "WEI_PER_ETHER",
    "REQUEST_CONFIRMATIONS",
    "NUM_WORDS",
    "DEVELOPMENT_CHAINS",
    "VRF_SUB_FUND_AMOUNT",
    "BASE_FEE",
    "GAS_PRICE_LINK",
    "KEY_HASH_LEN",
    "to_wei",
]
