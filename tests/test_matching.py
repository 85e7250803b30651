"""Tests for tier_lobby.matching.MatchingCoordinator."""

import pytest

from tier_lobby.errors import AlreadyQueued, Conflict, NotFound, PermissionDenied, ValidationError
from tier_lobby.matching import MatchingCoordinator
from tier_lobby.models import ROLES, Role
from tier_lobby.ranks import RankTier


@pytest.fixture
def coord() -> MatchingCoordinator:
    c = MatchingCoordinator()
    c.create_room("Gold+ scrim", RankTier.GOLD, RankTier.DIAMOND, room_id="room1")
    c.create_room("Silver friendly", RankTier.BRONZE, RankTier.GOLD, room_id="room2")
    return c


class TestUsers:
    def test_unknown_user_is_nowhere(self, coord: MatchingCoordinator) -> None:
        assert coord.location("ghost").kind == "nowhere"

    def test_unknown_user_lookup(self, coord: MatchingCoordinator) -> None:
        with pytest.raises(NotFound):
            coord.user("ghost")

    def test_register_refreshes_rank(self, coord: MatchingCoordinator, make_profile) -> None:
        coord.register(make_profile("u1"), ["MID"])
        user = coord.register(make_profile("u1", RankTier.PLATINUM))
        assert user.rank is RankTier.PLATINUM
        assert user.preferred_roles == [Role.MID]

    def test_lookup_does_not_register(self, coord: MatchingCoordinator, make_profile) -> None:
        snapshot = coord.lookup(make_profile("u1"))
        assert snapshot.id == "u1"
        assert snapshot.waiting_time == 0
        with pytest.raises(NotFound):
            coord.user("u1")

    def test_lookup_returns_stored_record(self, coord: MatchingCoordinator, make_profile) -> None:
        coord.enter_queue(make_profile("u1"), ["TOP"])
        coord.tick()
        assert coord.lookup(make_profile("u1")).waiting_time == 1


class TestQueue:
    def test_enter_and_leave(self, coord: MatchingCoordinator, make_profile) -> None:
        user = coord.enter_queue(make_profile("u1"), ["mid", "adc", "mid"])
        assert user.preferred_roles == [Role.MID, Role.ADC]
        assert coord.location("u1").kind == "queue"
        assert [u.id for u in coord.queue()] == ["u1"]

        assert coord.leave_queue("u1") is True
        assert coord.leave_queue("u1") is False
        assert coord.queue() == []
        assert coord.location("u1").kind == "nowhere"

    def test_fifo(self, coord: MatchingCoordinator, make_profile) -> None:
        for uid in ("a", "b", "c"):
            coord.enter_queue(make_profile(uid), ["TOP"])
        assert [u.id for u in coord.queue()] == ["a", "b", "c"]

    def test_already_queued(self, coord: MatchingCoordinator, make_profile) -> None:
        coord.enter_queue(make_profile("u1"), ["TOP"])
        with pytest.raises(AlreadyQueued):
            coord.enter_queue(make_profile("u1"), ["MID"])
        assert isinstance(AlreadyQueued("x"), Conflict)

    def test_empty_roles_rejected(self, coord: MatchingCoordinator, make_profile) -> None:
        with pytest.raises(ValidationError):
            coord.enter_queue(make_profile("u1"), [])
        assert coord.location("u1").kind == "nowhere"

    def test_unknown_role_rejected(self, coord: MatchingCoordinator, make_profile) -> None:
        with pytest.raises(ValidationError):
            coord.enter_queue(make_profile("u1"), ["CARRY"])

    def test_queue_leaves_room(self, coord: MatchingCoordinator, make_profile) -> None:
        coord.request_join_room(make_profile("u1"), "room1", Role.MID)
        coord.enter_queue(make_profile("u1"), ["MID"])
        assert coord.room_state("room1").slots[Role.MID] is None
        assert coord.location("u1").kind == "queue"


class TestJoinRoom:
    def test_join_sets_location(self, coord: MatchingCoordinator, make_profile) -> None:
        state = coord.request_join_room(make_profile("u1"), "room1", "jungle")
        assert state.slots[Role.JUNGLE].id == "u1"
        loc = coord.location("u1")
        assert (loc.kind, loc.room_id, loc.role) == ("slot", "room1", Role.JUNGLE)

    def test_join_leaves_queue(self, coord: MatchingCoordinator, make_profile) -> None:
        coord.enter_queue(make_profile("u1"), ["MID"])
        coord.request_join_room(make_profile("u1"), "room1", Role.MID)
        assert coord.queue() == []

    def test_move_between_rooms(self, coord: MatchingCoordinator, make_profile) -> None:
        coord.request_join_room(make_profile("u1"), "room1", Role.MID)
        coord.request_join_room(make_profile("u1"), "room2", Role.TOP)
        assert coord.room_state("room1").slots[Role.MID] is None
        assert coord.room_state("room2").slots[Role.TOP].id == "u1"
        assert coord.location("u1").room_id == "room2"

    def test_switch_role_in_same_room(self, coord: MatchingCoordinator, make_profile) -> None:
        coord.request_join_room(make_profile("u1"), "room1", Role.MID)
        state = coord.request_join_room(make_profile("u1"), "room1", Role.ADC)
        assert state.slots[Role.MID] is None
        assert state.slots[Role.ADC].id == "u1"
        assert coord.location("u1").role is Role.ADC

    def test_conflict_keeps_previous_location(self, coord: MatchingCoordinator, make_profile) -> None:
        coord.request_join_room(make_profile("u1"), "room1", Role.MID)
        coord.request_join_room(make_profile("u2"), "room2", Role.TOP)
        with pytest.raises(Conflict):
            coord.request_join_room(make_profile("u2"), "room1", Role.MID)
        assert coord.location("u2").room_id == "room2"
        assert coord.room_state("room2").slots[Role.TOP].id == "u2"

    def test_rank_outside_range(self, coord: MatchingCoordinator, make_profile) -> None:
        with pytest.raises(PermissionDenied):
            coord.request_join_room(make_profile("low", RankTier.SILVER), "room1", Role.MID)
        with pytest.raises(PermissionDenied):
            coord.request_join_room(make_profile("high", RankTier.MASTER), "room1", Role.MID)
        assert coord.room_state("room1").filled == 0

    def test_unknown_room(self, coord: MatchingCoordinator, make_profile) -> None:
        with pytest.raises(NotFound):
            coord.request_join_room(make_profile("u1"), "nope", Role.MID)

    def test_full_room_ready(self, coord: MatchingCoordinator, make_profile) -> None:
        for i, role in enumerate(ROLES):
            state = coord.request_join_room(make_profile(f"u{i}"), "room1", role)
        assert state.ready is True
        assert state.filled == 5
        assert state.estimated_start_time is not None


class TestWaiting:
    def test_join_waiting_from_slot(self, coord: MatchingCoordinator, make_profile) -> None:
        coord.request_join_room(make_profile("u1"), "room1", Role.MID)
        state = coord.request_join_waiting(make_profile("u1"), "room1")
        assert state.slots[Role.MID] is None
        assert [u.id for u in state.waiting] == ["u1"]
        assert coord.location("u1").kind == "waiting"

    def test_join_waiting_twice_is_noop(self, coord: MatchingCoordinator, make_profile) -> None:
        coord.request_join_waiting(make_profile("u1"), "room1")
        state = coord.request_join_waiting(make_profile("u1"), "room1")
        assert [u.id for u in state.waiting] == ["u1"]

    def test_waiting_to_slot(self, coord: MatchingCoordinator, make_profile) -> None:
        coord.request_join_waiting(make_profile("u1"), "room1")
        state = coord.request_join_room(make_profile("u1"), "room1", Role.SUPPORT)
        assert state.waiting == []
        assert state.slots[Role.SUPPORT].id == "u1"

    def test_waiting_respects_range(self, coord: MatchingCoordinator, make_profile) -> None:
        with pytest.raises(PermissionDenied):
            coord.request_join_waiting(make_profile("low", RankTier.IRON), "room1")


class TestLeave:
    def test_leave_room(self, coord: MatchingCoordinator, make_profile) -> None:
        coord.request_join_room(make_profile("u1"), "room1", Role.MID)
        assert coord.request_leave_room("u1") is True
        assert coord.request_leave_room("u1") is False
        assert coord.location("u1").kind == "nowhere"
        assert coord.room_state("room1").filled == 0

    def test_leave_room_ignores_queue(self, coord: MatchingCoordinator, make_profile) -> None:
        coord.enter_queue(make_profile("u1"), ["MID"])
        assert coord.request_leave_room("u1") is False
        assert coord.location("u1").kind == "queue"


class TestTick:
    def test_tick_counts_queue_and_rooms(self, coord: MatchingCoordinator, make_profile) -> None:
        coord.enter_queue(make_profile("q"), ["TOP"])
        coord.request_join_room(make_profile("s"), "room1", Role.MID)
        coord.request_join_waiting(make_profile("w"), "room2")
        coord.register(make_profile("idle"))

        coord.tick()
        coord.tick()

        assert coord.user("q").waiting_time == 2
        assert coord.user("s").waiting_time == 2
        assert coord.user("w").waiting_time == 2
        assert coord.user("idle").waiting_time == 0


def test_user_in_exactly_one_place(coord: MatchingCoordinator, make_profile):
    """Walk one user through every kind of placement."""
    p = make_profile("u1")
    coord.enter_queue(p, ["MID"])
    coord.request_join_waiting(p, "room2")
    coord.request_join_room(p, "room1", Role.MID)
    coord.request_join_waiting(p, "room1")

    assert coord.queue() == []
    assert coord.room_state("room2").waiting == []
    room1 = coord.room_state("room1")
    assert room1.filled == 0
    assert [u.id for u in room1.waiting] == ["u1"]
