"""
Raffle package.

A time-boxed raffle driven by two external collaborators:
- a randomness coordinator that answers a randomness request with a callback,
- an upkeep trigger (keeper) that asks whether a draw is due and starts it.

Only light, stable exports are surfaced here to avoid import cycles.
"""

from __future__ import annotations

from .version import __version__

__all__ = ["__version__"]
