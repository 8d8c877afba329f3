"""
Match registry.

Handles in-memory state for tracked hub matches, separated from polling and
voting logic.

Thread Safety:
    Every public method takes _lock. Callers that need a multi-step
    read-modify-write (poll cycle upserts + prune, vote ledger updates) hold
    lock() for the whole sequence. The lock is reentrant, so the public
    methods can still be called inside it.
"""

import threading
from collections.abc import Iterable
from contextlib import contextmanager
from typing import Generator

from domain.models.match_record import LifecycleState, MatchRecord


class MatchRegistry:
    """
    Authoritative store of MatchRecords keyed by match_id.

    Responsibilities:
    - Create and refresh records from observed hub state
    - Route chat rooms back to their match
    - Drop records for matches that left the hub's active list

    Owned by the poller and vote coordinator; the command surface only reads
    snapshots through them.
    """

    def __init__(self):
        self._records: dict[str, MatchRecord] = {}
        self._lock = threading.RLock()

    @contextmanager
    def lock(self) -> Generator[None, None, None]:
        """
        Hold the registry lock for an atomic multi-step operation.

        Example:
            with registry.lock():
                record = registry.get(match_id)
                record.rehost_voters.add(user_id)
        """
        with self._lock:
            yield

    def upsert(
        self,
        match_id: str,
        observed_state: "str | LifecycleState | None",
        roster: Iterable[str] = (),
        chat_room_id: str | None = None,
    ) -> MatchRecord:
        """
        Create or refresh the record for a match.

        New records start with previous state UNKNOWN, empty ledgers and
        has_greeted False. Existing records shift their current state into
        previous_lifecycle_state before taking the observed one. A non-empty
        roster replaces the stored one and votes from players no longer on it
        are dropped; an empty roster (the listing omitted it) keeps the stored
        roster and ledgers. The chat room is only set while still unknown.

        Args:
            match_id: External match identifier
            observed_state: Raw FACEIT status string or a LifecycleState
            roster: Player ids eligible to vote
            chat_room_id: Chat room for the match, if known

        Returns:
            The resulting MatchRecord
        """
        state = LifecycleState.from_raw(observed_state)
        with self._lock:
            record = self._records.get(match_id)
            if record is None:
                record = MatchRecord(
                    match_id=match_id,
                    chat_room_id=chat_room_id,
                    lifecycle_state=state,
                    previous_lifecycle_state=LifecycleState.UNKNOWN,
                    roster_player_ids=set(roster),
                )
                self._records[match_id] = record
                return record

            record.previous_lifecycle_state = record.lifecycle_state
            record.lifecycle_state = state
            observed_roster = set(roster)
            if observed_roster:
                record.roster_player_ids = observed_roster
                # Substituted-out players lose their votes
                record.rehost_voters &= observed_roster
                record.cancel_voters &= observed_roster
            if record.chat_room_id is None and chat_room_id:
                record.chat_room_id = chat_room_id
            return record

    def remove(self, match_id: str) -> None:
        """Delete a record. No-op if the match is not tracked."""
        with self._lock:
            self._records.pop(match_id, None)

    def get(self, match_id: str) -> MatchRecord | None:
        with self._lock:
            return self._records.get(match_id)

    def find_by_chat_room(self, chat_room_id: str) -> MatchRecord | None:
        """Find the match whose chat room is chat_room_id (linear scan)."""
        with self._lock:
            for record in self._records.values():
                if record.chat_room_id == chat_room_id:
                    return record
            return None

    def resolve(self, match_or_room_id: str) -> MatchRecord | None:
        """Look up by match id first, then by chat room id."""
        with self._lock:
            return self._records.get(match_or_room_id) or self.find_by_chat_room(match_or_room_id)

    def prune_missing(self, current_match_ids: Iterable[str]) -> list[str]:
        """
        Remove every record whose match_id is not in current_match_ids.

        Returns:
            The removed match ids, in registry order
        """
        keep = set(current_match_ids)
        with self._lock:
            removed = [match_id for match_id in self._records if match_id not in keep]
            for match_id in removed:
                del self._records[match_id]
            return removed

    def all_records(self) -> list[MatchRecord]:
        """Snapshot list of tracked records."""
        with self._lock:
            return list(self._records.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, match_id: object) -> bool:
        with self._lock:
            return match_id in self._records
