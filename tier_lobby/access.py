"""Chat and room access decisions.

These never raise: callers turn a False into a user-visible refusal.
"""

from __future__ import annotations

from tier_lobby.ranks import RankTier, dominates, level


def can_read(user_rank: RankTier, room_rank: RankTier) -> bool:
    return dominates(user_rank, room_rank)


def can_write(user_rank: RankTier, room_rank: RankTier, is_verified: bool) -> bool:
    """Posting needs the tier AND a verified identity."""
    return can_read(user_rank, room_rank) and bool(is_verified)


def in_range(rank: RankTier, min_rank: RankTier, max_rank: RankTier) -> bool:
    """Two-sided eligibility check used by matching rooms."""
    return level(min_rank) <= level(rank) <= level(max_rank)
