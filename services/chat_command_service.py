"""
Chat command listener.

Reads new messages from the chat rooms of tracked matches and routes
`!rehost`, `!cancel` and `!help` to the vote coordinator. Each room keeps a
timestamp cursor so a message is handled once.

A room's cursor starts at the moment the listener first sees the room, so
chat history written before that (including before a restart) is never
replayed as fresh votes.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from domain.models.match_record import ChatMessage, VoteKind
from services.exceptions import GatewayError
from services.match_registry import MatchRegistry
from services.vote_coordinator import VoteCoordinator
from utils.formatting import build_vote_progress_message

logger = logging.getLogger("faceit_bot.services.chat_commands")

COMMAND_PREFIX = "!"
VOTE_COMMANDS = {
    "rehost": VoteKind.REHOST,
    "cancel": VoteKind.CANCEL,
}
HELP_COMMAND = "help"

# Read cycles a room may be missing from the registry before its cursor is dropped
CURSOR_RETENTION_CYCLES = 20


def parse_chat_command(text: str) -> str | None:
    """
    Extract the command name from a chat line.

    Returns:
        Lowercase command without the prefix ('rehost'), or None if the line
        is not a command
    """
    stripped = text.strip()
    if not stripped.startswith(COMMAND_PREFIX):
        return None
    name = stripped[len(COMMAND_PREFIX):].split(maxsplit=1)
    if not name:
        return None
    return name[0].lower()


@dataclass
class _RoomCursor:
    timestamp: int = 0
    seen_ids: set[str] = field(default_factory=set)
    missed_cycles: int = 0

    def is_new(self, message: ChatMessage) -> bool:
        if message.timestamp > self.timestamp:
            return True
        return message.timestamp == self.timestamp and message.message_id not in self.seen_ids

    def advance(self, message: ChatMessage) -> None:
        if message.timestamp > self.timestamp:
            self.timestamp = message.timestamp
            self.seen_ids = set()
        self.seen_ids.add(message.message_id)


@dataclass
class ChatCycleReport:
    rooms_read: int = 0
    commands_handled: int = 0
    failed_rooms: list[str] = field(default_factory=list)


class ChatCommandListener:
    """
    Polls match chat rooms for player commands.

    Cursors are kept for rooms of tracked matches. A room that drops out of
    the registry keeps its cursor for `cursor_retention_cycles` read cycles,
    so a match that briefly disappears from the hub listing does not have
    its chat re-read when it comes back.
    """

    def __init__(
        self,
        gateway,
        registry: MatchRegistry,
        coordinator: VoteCoordinator,
        *,
        help_text: str,
        bot_user_id: str | None = None,
        page_limit: int = 50,
        cursor_retention_cycles: int = CURSOR_RETENTION_CYCLES,
        clock: Callable[[], float] = time.time,
    ):
        self.gateway = gateway
        self.registry = registry
        self.coordinator = coordinator
        self.help_text = help_text
        self.bot_user_id = bot_user_id
        self.page_limit = page_limit
        self.cursor_retention_cycles = cursor_retention_cycles
        self._clock = clock
        self._cursors: dict[str, _RoomCursor] = {}
        self._cycle_guard = threading.Lock()

    def run_cycle(self) -> ChatCycleReport | None:
        """
        Read every tracked room once and handle new commands.

        Returns:
            ChatCycleReport, or None if another read cycle was already running
        """
        if not self._cycle_guard.acquire(blocking=False):
            logger.info("Chat read cycle still running; skipping")
            return None
        try:
            return self._read_rooms()
        finally:
            self._cycle_guard.release()

    def _cursor_for(self, room_id: str) -> _RoomCursor:
        cursor = self._cursors.get(room_id)
        if cursor is None:
            # Chat timestamps are epoch milliseconds
            cursor = _RoomCursor(timestamp=int(self._clock() * 1000))
            self._cursors[room_id] = cursor
            logger.debug(f"Started chat cursor for room {room_id} at {cursor.timestamp}")
        cursor.missed_cycles = 0
        return cursor

    def _expire_cursors(self, rooms: set[str]) -> None:
        for room_id in list(self._cursors):
            if room_id in rooms:
                continue
            cursor = self._cursors[room_id]
            cursor.missed_cycles += 1
            if cursor.missed_cycles > self.cursor_retention_cycles:
                del self._cursors[room_id]

    def _read_rooms(self) -> ChatCycleReport:
        report = ChatCycleReport()
        rooms = {r.chat_room_id for r in self.registry.all_records() if r.chat_room_id}
        self._expire_cursors(rooms)

        for room_id in sorted(rooms):
            cursor = self._cursor_for(room_id)
            try:
                messages = self.gateway.get_room_messages(
                    room_id, since=cursor.timestamp, limit=self.page_limit
                )
            except GatewayError as exc:
                logger.warning(f"Failed to read chat room {room_id}: {exc}")
                report.failed_rooms.append(room_id)
                continue

            report.rooms_read += 1
            for message in messages:
                if not cursor.is_new(message):
                    continue
                cursor.advance(message)
                if self.handle_message(message):
                    report.commands_handled += 1
        return report

    def handle_message(self, message: ChatMessage) -> bool:
        """
        Handle one chat message.

        Returns:
            True if the message was a recognized command
        """
        if self.bot_user_id and message.sender_id == self.bot_user_id:
            return False
        command = parse_chat_command(message.body)
        if command is None:
            return False

        if command == HELP_COMMAND:
            self._reply(message.room_id, self.help_text)
            return True

        kind = VOTE_COMMANDS.get(command)
        if kind is None:
            return False

        result = self.coordinator.submit_vote(message.room_id, message.sender_id, kind)
        if not result:
            logger.info(
                f"Rejected !{command} from {message.sender_id} in room {message.room_id}: {result.error}"
            )
            return True

        outcome = result.value
        if not outcome.triggered:
            self._reply(
                message.room_id,
                build_vote_progress_message(kind, outcome.vote_count, outcome.threshold),
            )
        return True

    def _reply(self, room_id: str, text: str) -> None:
        try:
            self.gateway.send_chat_message(room_id, text)
        except GatewayError as exc:
            logger.warning(f"Failed to reply in chat room {room_id}: {exc}")
