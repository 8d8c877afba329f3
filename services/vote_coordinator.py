"""
Vote coordinator.

Handles rehost/cancel voting per match. Each vote kind runs its own
ACCUMULATING -> TRIGGERED cycle: votes accumulate in a set until the
threshold is reached, the announcement is dispatched and both ledgers are
cleared, which starts a new epoch.
"""

import logging
from dataclasses import dataclass

from domain.models.match_record import LifecycleState, MatchRecord, VoteKind
from services.error_codes import MATCH_NOT_FOUND, NOT_A_PARTICIPANT
from services.exceptions import GatewayError, StateConflictError
from services.match_registry import MatchRegistry
from services.result import Result
from utils.formatting import build_vote_triggered_message

logger = logging.getLogger("faceit_bot.services.vote_coordinator")

MATCH_NOT_FOUND_REASON = "match not found"
NOT_A_PARTICIPANT_REASON = "not a participant"


@dataclass(frozen=True)
class VoteOutcome:
    """
    Accepted vote.

    vote_count is the ledger size after the vote was added; when triggered is
    True it is the count that crossed the threshold and the ledger has since
    been cleared.
    """

    match_id: str
    kind: VoteKind
    vote_count: int
    threshold: int
    triggered: bool
    announced: bool = False


@dataclass(frozen=True)
class VoteTally:
    match_id: str
    lifecycle_state: LifecycleState
    rehost_count: int
    cancel_count: int
    rehost_threshold: int
    cancel_threshold: int


class VoteCoordinator:
    """
    Manages rehost and cancel votes for tracked matches.

    This service handles:
    - Roster gating (only match participants may vote)
    - Set-semantics ledgers (repeat votes never double-count)
    - Threshold checks and the one-shot chat announcement per epoch
    """

    def __init__(
        self,
        registry: MatchRegistry,
        gateway,
        *,
        rehost_threshold: int = 6,
        cancel_threshold: int = 6,
    ):
        """
        Initialize VoteCoordinator.

        Args:
            registry: Shared MatchRegistry
            gateway: Object exposing send_chat_message(chat_room_id, text)
            rehost_threshold: Distinct voters required to trigger a rehost
            cancel_threshold: Distinct voters required to trigger a cancel
        """
        self.registry = registry
        self.gateway = gateway
        self.thresholds = {
            VoteKind.REHOST: rehost_threshold,
            VoteKind.CANCEL: cancel_threshold,
        }

    def threshold_for(self, kind: VoteKind) -> int:
        return self.thresholds[kind]

    def submit_vote(self, match_ref: str, user_id: str, kind: VoteKind) -> Result[VoteOutcome]:
        """
        Record a vote and fire the action if the threshold is reached.

        Thread-safe: the ledger read-modify-write runs under the registry lock;
        the chat announcement is sent after the lock is released.

        Args:
            match_ref: Match id or chat room id
            user_id: FACEIT player id of the voter
            kind: REHOST or CANCEL

        Returns:
            Result with VoteOutcome, or a failure with MATCH_NOT_FOUND /
            NOT_A_PARTICIPANT
        """
        threshold = self.threshold_for(kind)

        with self.registry.lock():
            record = self.registry.resolve(match_ref)
            if record is None:
                return Result.fail(MATCH_NOT_FOUND_REASON, code=MATCH_NOT_FOUND)
            if not record.is_participant(user_id):
                return Result.fail(NOT_A_PARTICIPANT_REASON, code=NOT_A_PARTICIPANT)

            ledger = record.voters_for(kind)
            ledger.add(user_id)
            if not ledger <= record.roster_player_ids:
                raise StateConflictError(
                    f"{kind.value} ledger for match {record.match_id} holds non-roster voters"
                )
            vote_count = len(ledger)
            triggered = vote_count >= threshold
            if triggered:
                record.clear_ledgers()
            match_id = record.match_id
            chat_room_id = record.chat_room_id

        logger.info(
            f"{kind.value} vote from {user_id} on match {match_id}: {vote_count}/{threshold}"
        )

        announced = False
        if triggered:
            logger.info(f"{kind.value} threshold reached for match {match_id}, new epoch started")
            announced = self._announce(match_id, chat_room_id, kind, vote_count)

        return Result.ok(
            VoteOutcome(
                match_id=match_id,
                kind=kind,
                vote_count=vote_count,
                threshold=threshold,
                triggered=triggered,
                announced=announced,
            )
        )

    def _announce(self, match_id: str, chat_room_id: str | None, kind: VoteKind, vote_count: int) -> bool:
        """Send the trigger announcement. Failures are logged; the epoch stays cleared."""
        if not chat_room_id:
            logger.warning(f"Match {match_id} has no chat room; {kind.value} announcement not sent")
            return False
        try:
            self.gateway.send_chat_message(chat_room_id, build_vote_triggered_message(kind, vote_count))
        except GatewayError as exc:
            logger.error(f"Failed to announce {kind.value} for match {match_id}: {exc}")
            return False
        return True

    def _tally(self, record: MatchRecord) -> VoteTally:
        return VoteTally(
            match_id=record.match_id,
            lifecycle_state=record.lifecycle_state,
            rehost_count=len(record.rehost_voters),
            cancel_count=len(record.cancel_voters),
            rehost_threshold=self.threshold_for(VoteKind.REHOST),
            cancel_threshold=self.threshold_for(VoteKind.CANCEL),
        )

    def get_tally(self, match_ref: str) -> Result[VoteTally]:
        """Current vote counts for a match."""
        with self.registry.lock():
            record = self.registry.resolve(match_ref)
            if record is None:
                return Result.fail(MATCH_NOT_FOUND_REASON, code=MATCH_NOT_FOUND)
            return Result.ok(self._tally(record))

    def list_tallies(self) -> list[VoteTally]:
        """Vote counts for every tracked match."""
        with self.registry.lock():
            return [self._tally(record) for record in self.registry.all_records()]
