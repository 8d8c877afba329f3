"""
Tests for VoteCoordinator: roster gating, set semantics, thresholds and
epoch resets.
"""

import threading

import pytest

from domain.models.match_record import LifecycleState, VoteKind
from services.error_codes import MATCH_NOT_FOUND, NOT_A_PARTICIPANT
from services.exceptions import StateConflictError
from services.vote_coordinator import VoteCoordinator
from tests.conftest import ROSTER
from utils.formatting import build_vote_triggered_message


@pytest.fixture
def coordinator(registry, gateway):
    registry.upsert("m1", "VOTING", ROSTER, "room-1")
    return VoteCoordinator(registry, gateway, rehost_threshold=6, cancel_threshold=6)


def test_first_vote_is_accepted(coordinator):
    result = coordinator.submit_vote("m1", "p1", VoteKind.REHOST)

    assert result.success
    assert result.value.vote_count == 1
    assert result.value.threshold == 6
    assert result.value.triggered is False


def test_repeat_vote_does_not_double_count(coordinator, registry):
    coordinator.submit_vote("m1", "p1", VoteKind.REHOST)
    result = coordinator.submit_vote("m1", "p1", VoteKind.REHOST)

    assert result.value.vote_count == 1
    assert registry.get("m1").rehost_voters == {"p1"}


def test_non_participant_is_rejected(coordinator, registry):
    result = coordinator.submit_vote("m1", "outsider", VoteKind.REHOST)

    assert not result.success
    assert result.error == "not a participant"
    assert result.error_code == NOT_A_PARTICIPANT
    assert registry.get("m1").rehost_voters == set()


def test_unknown_match_is_rejected(coordinator):
    result = coordinator.submit_vote("m404", "p1", VoteKind.CANCEL)

    assert not result.success
    assert result.error == "match not found"
    assert result.error_code == MATCH_NOT_FOUND


def test_sixth_distinct_vote_triggers_and_resets(coordinator, registry, gateway):
    for player in ROSTER[:5]:
        assert coordinator.submit_vote("m1", player, VoteKind.REHOST).value.triggered is False
    assert gateway.sent == []

    result = coordinator.submit_vote("m1", "p6", VoteKind.REHOST)

    assert result.value.triggered is True
    assert result.value.vote_count == 6
    assert result.value.announced is True
    assert gateway.sent == [("room-1", build_vote_triggered_message(VoteKind.REHOST, 6))]
    record = registry.get("m1")
    assert record.rehost_voters == set()
    assert record.cancel_voters == set()


def test_new_epoch_counts_from_one(coordinator):
    for player in ROSTER[:6]:
        coordinator.submit_vote("m1", player, VoteKind.REHOST)

    result = coordinator.submit_vote("m1", "p1", VoteKind.REHOST)

    assert result.value.vote_count == 1
    assert result.value.triggered is False


def test_trigger_clears_the_other_ledger(coordinator, registry):
    coordinator.submit_vote("m1", "p9", VoteKind.CANCEL)
    for player in ROSTER[:6]:
        coordinator.submit_vote("m1", player, VoteKind.REHOST)

    assert registry.get("m1").cancel_voters == set()


def test_kinds_accumulate_independently(coordinator):
    for player in ROSTER[:5]:
        coordinator.submit_vote("m1", player, VoteKind.REHOST)

    result = coordinator.submit_vote("m1", "p1", VoteKind.CANCEL)

    assert result.value.vote_count == 1
    assert coordinator.get_tally("m1").value.rehost_count == 5


def test_cancel_trigger_announces_cancel(coordinator, gateway):
    for player in ROSTER[:6]:
        coordinator.submit_vote("m1", player, VoteKind.CANCEL)

    assert gateway.messages_to("room-1") == [build_vote_triggered_message(VoteKind.CANCEL, 6)]


def test_failed_announcement_keeps_epoch_cleared(coordinator, registry, gateway):
    gateway.fail_send = True
    for player in ROSTER[:5]:
        coordinator.submit_vote("m1", player, VoteKind.REHOST)

    result = coordinator.submit_vote("m1", "p6", VoteKind.REHOST)

    assert result.value.triggered is True
    assert result.value.announced is False
    assert registry.get("m1").rehost_voters == set()


def test_vote_by_chat_room_id(coordinator, registry):
    result = coordinator.submit_vote("room-1", "p3", VoteKind.CANCEL)

    assert result.value.match_id == "m1"
    assert registry.get("m1").cancel_voters == {"p3"}


def test_custom_threshold(registry, gateway):
    registry.upsert("m1", "VOTING", ROSTER, "room-1")
    coordinator = VoteCoordinator(registry, gateway, rehost_threshold=2)

    coordinator.submit_vote("m1", "p1", VoteKind.REHOST)
    result = coordinator.submit_vote("m1", "p2", VoteKind.REHOST)

    assert result.value.triggered is True
    assert coordinator.threshold_for(VoteKind.CANCEL) == 6


def test_ledger_outside_roster_raises_conflict(coordinator, registry):
    registry.get("m1").rehost_voters.add("ghost")

    with pytest.raises(StateConflictError):
        coordinator.submit_vote("m1", "p1", VoteKind.REHOST)


def test_concurrent_votes_trigger_exactly_once(registry, gateway):
    roster = [f"p{i}" for i in range(1, 61)]
    registry.upsert("m1", "VOTING", roster, "room-1")
    coordinator = VoteCoordinator(registry, gateway, rehost_threshold=6)
    barrier = threading.Barrier(6)
    outcomes = []

    def vote(player):
        barrier.wait()
        outcomes.append(coordinator.submit_vote("m1", player, VoteKind.REHOST).value)

    threads = [threading.Thread(target=vote, args=(p,)) for p in roster[:6]]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(1 for o in outcomes if o.triggered) == 1
    assert len(gateway.sent) == 1


def test_list_tallies_reports_every_match(coordinator, registry):
    registry.upsert("m2", "ONGOING", ROSTER, "room-2")
    coordinator.submit_vote("m2", "p1", VoteKind.CANCEL)

    tallies = {t.match_id: t for t in coordinator.list_tallies()}

    assert set(tallies) == {"m1", "m2"}
    assert tallies["m2"].cancel_count == 1
    assert tallies["m2"].lifecycle_state is LifecycleState.ONGOING
    assert tallies["m1"].rehost_threshold == 6


def test_get_tally_unknown_match(coordinator):
    assert coordinator.get_tally("nope").error_code == MATCH_NOT_FOUND
