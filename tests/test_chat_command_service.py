"""
Tests for the chat command listener.
"""

import pytest

from domain.models.match_record import ChatMessage, VoteKind
from services.chat_command_service import ChatCommandListener, parse_chat_command
from services.match_registry import MatchRegistry
from services.vote_coordinator import VoteCoordinator
from tests.conftest import ROSTER
from utils.formatting import build_vote_progress_message, build_vote_triggered_message

HELP = "help text"
# Listener clock in seconds; its cursors start at 500 ms
TRACKED_AT = 0.5


def msg(message_id, sender, body, timestamp, room="room-1"):
    return ChatMessage(
        message_id=str(message_id), room_id=room, sender_id=sender, body=body, timestamp=timestamp
    )


@pytest.fixture
def coordinator(registry, gateway):
    registry.upsert("m1", "VOTING", ROSTER, "room-1")
    return VoteCoordinator(registry, gateway)


@pytest.fixture
def listener(gateway, registry, coordinator):
    return ChatCommandListener(
        gateway, registry, coordinator, help_text=HELP, bot_user_id="bot", clock=lambda: TRACKED_AT
    )


@pytest.mark.parametrize(
    "text, expected",
    [
        ("!rehost", "rehost"),
        ("  !CANCEL please ", "cancel"),
        ("!help", "help"),
        ("rehost", None),
        ("!", None),
        ("", None),
    ],
)
def test_parse_chat_command(text, expected):
    assert parse_chat_command(text) == expected


def test_vote_command_records_vote_and_replies_progress(listener, registry, gateway):
    handled = listener.handle_message(msg(1, "p1", "!rehost", 1000))

    assert handled is True
    assert registry.get("m1").rehost_voters == {"p1"}
    assert gateway.messages_to("room-1") == [build_vote_progress_message(VoteKind.REHOST, 1, 6)]


def test_help_command_reposts_help(listener, gateway):
    listener.handle_message(msg(1, "p1", "!help", 1000))

    assert gateway.messages_to("room-1") == [HELP]


def test_non_participant_vote_is_ignored(listener, registry, gateway):
    assert listener.handle_message(msg(1, "spectator", "!cancel", 1000)) is True
    assert registry.get("m1").cancel_voters == set()
    assert gateway.sent == []


def test_bot_messages_and_chatter_are_ignored(listener, gateway):
    assert listener.handle_message(msg(1, "bot", "!help", 1000)) is False
    assert listener.handle_message(msg(2, "p1", "gl hf", 1001)) is False
    assert listener.handle_message(msg(3, "p1", "!surrender", 1002)) is False
    assert gateway.sent == []


def test_trigger_posts_only_the_announcement(listener, gateway):
    for i, player in enumerate(ROSTER[:6]):
        listener.handle_message(msg(i, player, "!cancel", 1000 + i))

    sent = gateway.messages_to("room-1")
    assert sent[-1] == build_vote_triggered_message(VoteKind.CANCEL, 6)
    assert len(sent) == 6


def test_run_cycle_handles_each_message_once(listener, gateway, registry):
    gateway.room_messages["room-1"] = [
        msg(1, "p1", "!rehost", 1000),
        msg(2, "p2", "!rehost", 1000),
    ]

    first = listener.run_cycle()
    second = listener.run_cycle()

    assert first.commands_handled == 2
    assert second.commands_handled == 0
    assert registry.get("m1").rehost_voters == {"p1", "p2"}
    assert gateway.message_reads == [("room-1", 500), ("room-1", 1000)]


def test_run_cycle_picks_up_new_message_at_same_timestamp(listener, gateway):
    gateway.room_messages["room-1"] = [msg(1, "p1", "!rehost", 1000)]
    listener.run_cycle()

    gateway.room_messages["room-1"].append(msg(2, "p2", "!rehost", 1000))
    report = listener.run_cycle()

    assert report.commands_handled == 1


def test_run_cycle_reports_failed_rooms(listener, gateway, registry):
    registry.upsert("m2", "VOTING", ROSTER, "room-2")
    gateway.fail_rooms.add("room-2")

    report = listener.run_cycle()

    assert report.failed_rooms == ["room-2"]
    assert report.rooms_read == 1


def test_cursor_dropped_after_retention_window(listener, gateway, registry):
    gateway.room_messages["room-1"] = [msg(1, "p1", "!help", 1000)]
    listener.cursor_retention_cycles = 2
    listener.run_cycle()

    registry.remove("m1")
    for _ in range(2):
        report = listener.run_cycle()
        assert report.rooms_read == 0
        assert "room-1" in listener._cursors

    listener.run_cycle()
    assert listener._cursors == {}


def test_history_before_tracking_is_not_handled(listener, gateway, registry):
    gateway.room_messages["room-1"] = [
        msg(1, "p1", "!rehost", 100),
        msg(2, "p2", "!help", 499),
    ]

    report = listener.run_cycle()

    assert report.rooms_read == 1
    assert report.commands_handled == 0
    assert registry.get("m1").rehost_voters == set()
    assert gateway.sent == []


def six_rehost_votes():
    return [msg(i, player, "!rehost", 1000 + i) for i, player in enumerate(ROSTER[:6])]


def test_match_reappearing_does_not_replay_votes(listener, gateway, registry):
    gateway.room_messages["room-1"] = six_rehost_votes()
    assert listener.run_cycle().commands_handled == 6

    # Match drops out of one hub listing, then comes back
    registry.remove("m1")
    listener.run_cycle()
    registry.upsert("m1", "ONGOING", ROSTER, "room-1")
    report = listener.run_cycle()

    assert report.commands_handled == 0
    assert registry.get("m1").rehost_voters == set()
    announcement = build_vote_triggered_message(VoteKind.REHOST, 6)
    assert gateway.messages_to("room-1").count(announcement) == 1


def test_restarted_listener_does_not_replay_votes(listener, gateway, registry):
    gateway.room_messages["room-1"] = six_rehost_votes()
    listener.run_cycle()
    sent_before_restart = list(gateway.sent)

    fresh_registry = MatchRegistry()
    fresh_registry.upsert("m1", "ONGOING", ROSTER, "room-1")
    restarted = ChatCommandListener(
        gateway,
        fresh_registry,
        VoteCoordinator(fresh_registry, gateway),
        help_text=HELP,
        bot_user_id="bot",
        clock=lambda: 60.0,
    )
    report = restarted.run_cycle()

    assert report.commands_handled == 0
    assert fresh_registry.get("m1").rehost_voters == set()
    assert gateway.sent == sent_before_restart


def test_reply_failure_does_not_raise(listener, gateway):
    gateway.fail_send = True

    assert listener.handle_message(msg(1, "p1", "!help", 1000)) is True


def test_overlapping_read_cycle_is_skipped(listener):
    with listener._cycle_guard:
        assert listener.run_cycle() is None
