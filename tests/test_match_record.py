"""
Tests for match record domain types.
"""

import pytest

from domain.models.match_record import HubMatch, LifecycleState, TeamRatings, VoteKind


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("VOTING", LifecycleState.VOTING),
        ("ongoing", LifecycleState.ONGOING),
        ("FINISHED", LifecycleState.FINISHED),
        ("CANCELLED", LifecycleState.CANCELLED),
        ("ABORTED", LifecycleState.CANCELLED),
        ("READY", LifecycleState.OTHER),
        ("", LifecycleState.UNKNOWN),
        (None, LifecycleState.UNKNOWN),
        (LifecycleState.ONGOING, LifecycleState.ONGOING),
    ],
)
def test_lifecycle_state_from_raw(raw, expected):
    assert LifecycleState.from_raw(raw) is expected


def test_vote_kind_parse_accepts_chat_form():
    assert VoteKind.parse("!rehost") is VoteKind.REHOST
    assert VoteKind.parse("CANCEL") is VoteKind.CANCEL


def test_vote_kind_parse_rejects_unknown():
    with pytest.raises(ValueError):
        VoteKind.parse("!surrender")


def test_team_ratings_difference_is_absolute():
    assert TeamRatings(1900, 2000).difference == 100
    assert TeamRatings(2000, 1900).difference == 100


def test_hub_match_team_ratings_requires_both_factions():
    assert HubMatch("m1", "ONGOING", faction1_rating=2000).team_ratings is None
    ratings = HubMatch("m1", "ONGOING", faction1_rating=2000, faction2_rating=1950).team_ratings
    assert ratings.difference == 50
