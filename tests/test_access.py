"""Tests for tier_lobby.access — read/write gating and range eligibility."""

from tier_lobby.access import can_read, can_write, in_range
from tier_lobby.ranks import RankTier


def test_read_requires_dominance():
    assert can_read(RankTier.GOLD, RankTier.GOLD)
    assert can_read(RankTier.DIAMOND, RankTier.GOLD)
    assert not can_read(RankTier.SILVER, RankTier.GOLD)


def test_write_requires_verification():
    assert can_write(RankTier.GOLD, RankTier.GOLD, True)
    assert not can_write(RankTier.GOLD, RankTier.GOLD, False)


def test_write_requires_dominance_even_when_verified():
    assert not can_write(RankTier.SILVER, RankTier.GOLD, True)


def test_unverified_low_rank_denied():
    assert not can_write(RankTier.SILVER, RankTier.GOLD, False)


def test_in_range_is_two_sided():
    assert in_range(RankTier.GOLD, RankTier.GOLD, RankTier.DIAMOND)
    assert in_range(RankTier.DIAMOND, RankTier.GOLD, RankTier.DIAMOND)
    assert in_range(RankTier.PLATINUM, RankTier.GOLD, RankTier.DIAMOND)
    assert not in_range(RankTier.SILVER, RankTier.GOLD, RankTier.DIAMOND)
    assert not in_range(RankTier.MASTER, RankTier.GOLD, RankTier.DIAMOND)
