"""
Pytest fixtures for tests.

Provides a scripted FACEIT gateway and shared roster constants so service
tests run without network access.
"""

import pytest

from domain.models.match_record import HubMatch, TeamRatings
from services.exceptions import GatewayError
from services.match_registry import MatchRegistry

# =============================================================================
# CENTRALIZED CONSTANTS
# =============================================================================

TEST_HUB_ID = "hub-1"
"""Hub id used by poller tests."""

ROSTER = [f"p{i}" for i in range(1, 11)]
"""Ten FACEIT player ids forming one 5v5 match."""


def make_hub_match(match_id="m1", status="VOTING", roster=ROSTER, chat_room_id=None,
                   faction1_rating=None, faction2_rating=None):
    """Build a HubMatch as the gateway would return it."""
    return HubMatch(
        match_id=match_id,
        status=status,
        roster_player_ids=frozenset(roster),
        chat_room_id=chat_room_id or f"match-{match_id}",
        faction1_rating=faction1_rating,
        faction2_rating=faction2_rating,
    )


class FakeGateway:
    """
    In-memory stand-in for FaceitGateway.

    Set hub_matches / ratings / room_messages / players to script responses;
    set the fail_* flags (or add room ids to fail_rooms / fail_send_rooms) to make
    the matching call raise GatewayError.
    """

    def __init__(self):
        self.hub_matches: list[HubMatch] = []
        self.ratings: dict[str, TeamRatings] = {}
        self.room_messages: dict[str, list] = {}
        self.players: dict[str, dict] = {}
        self.sent: list[tuple[str, str]] = []
        self.list_calls: list[tuple] = []
        self.message_reads: list[tuple] = []
        self.fail_list = False
        self.fail_send = False
        self.fail_ratings = False
        self.fail_rooms: set[str] = set()
        self.fail_send_rooms: set[str] = set()

    def list_hub_matches(self, hub_id, status_filter="ongoing", limit=50):
        self.list_calls.append((hub_id, status_filter, limit))
        if self.fail_list:
            raise GatewayError("hub listing unavailable", status=503)
        return list(self.hub_matches)

    def get_team_ratings(self, match_id):
        if self.fail_ratings:
            raise GatewayError("match details unavailable", status=500)
        return self.ratings.get(match_id)

    def send_chat_message(self, chat_room_id, text):
        if self.fail_send or chat_room_id in self.fail_send_rooms:
            raise GatewayError("chat unavailable", status=503)
        self.sent.append((chat_room_id, text))
        return {}

    def get_room_messages(self, chat_room_id, since=None, limit=50):
        self.message_reads.append((chat_room_id, since))
        if chat_room_id in self.fail_rooms:
            raise GatewayError("room unavailable", status=502)
        messages = self.room_messages.get(chat_room_id, [])
        if since is not None:
            messages = [m for m in messages if m.timestamp >= since]
        return sorted(messages, key=lambda m: m.timestamp)

    def find_player(self, nickname):
        player = self.players.get(nickname)
        if player is None:
            raise GatewayError(f"player {nickname} not found", status=404)
        return player

    def messages_to(self, chat_room_id):
        return [text for room, text in self.sent if room == chat_room_id]


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def registry():
    return MatchRegistry()
