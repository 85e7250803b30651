"""Rank tiers and their total order.

Ten tiers, lowest to highest. The order is fixed; every pair is comparable.
"""

from __future__ import annotations

from enum import Enum

from tier_lobby.errors import ValidationError


class RankTier(str, Enum):
    IRON = "IRON"
    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"
    EMERALD = "EMERALD"
    DIAMOND = "DIAMOND"
    MASTER = "MASTER"
    GRANDMASTER = "GRANDMASTER"
    CHALLENGER = "CHALLENGER"


TIERS: tuple[RankTier, ...] = tuple(RankTier)

_LEVELS: dict[RankTier, int] = {tier: i for i, tier in enumerate(TIERS)}


def level(tier: RankTier) -> int:
    """IRON=0 … CHALLENGER=9."""
    return _LEVELS[tier]


def dominates(a: RankTier, b: RankTier) -> bool:
    return level(a) >= level(b)


def parse_tier(value: str | RankTier) -> RankTier:
    """Accept a tier or its name in any case ("gold", "Gold", "GOLD")."""
    if isinstance(value, RankTier):
        return value
    try:
        return RankTier(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown tier {value!r}") from None
