"""
Match record domain model for hub match tracking and vote ledgers.
"""

from dataclasses import dataclass, field
from enum import Enum


class LifecycleState(Enum):
    """Normalized FACEIT match status."""

    UNKNOWN = "unknown"
    VOTING = "voting"  # Map/side veto, votes accepted
    ONGOING = "ongoing"
    FINISHED = "finished"
    CANCELLED = "cancelled"
    OTHER = "other"  # READY, CONFIGURING, CHECK_IN, CAPTAIN_PICK, ...

    @classmethod
    def from_raw(cls, raw: "str | LifecycleState | None") -> "LifecycleState":
        """
        Map a raw FACEIT status string onto a lifecycle state.

        Matching is case-insensitive. ABORTED is treated as CANCELLED; any
        other non-empty status that is not explicitly modelled becomes OTHER.
        """
        if isinstance(raw, LifecycleState):
            return raw
        if not raw or not str(raw).strip():
            return cls.UNKNOWN
        normalized = str(raw).strip().upper()
        return _RAW_STATUS_MAP.get(normalized, cls.OTHER)


_RAW_STATUS_MAP = {
    "VOTING": LifecycleState.VOTING,
    "ONGOING": LifecycleState.ONGOING,
    "FINISHED": LifecycleState.FINISHED,
    "CANCELLED": LifecycleState.CANCELLED,
    "ABORTED": LifecycleState.CANCELLED,
    "UNKNOWN": LifecycleState.UNKNOWN,
}


class VoteKind(Enum):
    """Kinds of chat votes a participant can cast."""

    REHOST = "rehost"
    CANCEL = "cancel"

    @classmethod
    def parse(cls, value: str) -> "VoteKind":
        """Parse '!rehost', 'rehost', 'CANCEL', ... into a VoteKind."""
        cleaned = value.strip().lstrip("!").lower()
        for kind in cls:
            if kind.value == cleaned:
                return kind
        raise ValueError(f"Unknown vote kind: {value!r}")


@dataclass(frozen=True)
class TeamRatings:
    """Average ratings for the two factions of a match."""

    faction1_rating: float
    faction2_rating: float

    @property
    def difference(self) -> float:
        return abs(self.faction1_rating - self.faction2_rating)


@dataclass(frozen=True)
class HubMatch:
    """A single match as reported by the hub match listing."""

    match_id: str
    status: str
    roster_player_ids: frozenset[str] = frozenset()
    chat_room_id: str | None = None
    faction1_rating: float | None = None
    faction2_rating: float | None = None

    @property
    def lifecycle_state(self) -> LifecycleState:
        return LifecycleState.from_raw(self.status)

    @property
    def team_ratings(self) -> TeamRatings | None:
        """Ratings carried on the listing item, if both factions have one."""
        if self.faction1_rating is None or self.faction2_rating is None:
            return None
        return TeamRatings(self.faction1_rating, self.faction2_rating)


@dataclass(frozen=True)
class ChatMessage:
    """A message read from a FACEIT chat room."""

    message_id: str
    room_id: str
    sender_id: str
    body: str
    timestamp: int  # milliseconds since epoch


@dataclass
class MatchRecord:
    """
    Tracked state for one hub match.

    Tracks:
    - Observed lifecycle (current and previous state)
    - Chat room identity (set once)
    - Greeting / rating-gap notice flags
    - Rehost and cancel ledgers for the current voting epoch
    """

    match_id: str
    chat_room_id: str | None = None
    lifecycle_state: LifecycleState = LifecycleState.UNKNOWN
    previous_lifecycle_state: LifecycleState = LifecycleState.UNKNOWN
    has_greeted: bool = False
    elo_notified: bool = False
    rehost_voters: set[str] = field(default_factory=set)
    cancel_voters: set[str] = field(default_factory=set)
    roster_player_ids: set[str] = field(default_factory=set)

    @property
    def state_changed(self) -> bool:
        """True when the last upsert observed a different state."""
        return self.previous_lifecycle_state != self.lifecycle_state

    def voters_for(self, kind: VoteKind) -> set[str]:
        if kind is VoteKind.REHOST:
            return self.rehost_voters
        return self.cancel_voters

    def is_participant(self, user_id: str) -> bool:
        return user_id in self.roster_player_ids

    def clear_ledgers(self) -> None:
        """Start a new voting epoch."""
        self.rehost_voters.clear()
        self.cancel_voters.clear()

    def mark_greeted(self) -> None:
        self.has_greeted = True
