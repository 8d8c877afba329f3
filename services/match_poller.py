"""
Match poller.

Synchronizes the match registry with the hub's active match list once per
cycle: detects lifecycle transitions, greets players when the map veto
starts, prunes matches that left the hub and flags lopsided team ratings.

A failed match listing aborts the cycle before any mutation, so the registry
never holds a partially applied cycle.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from domain.models.match_record import HubMatch, LifecycleState, TeamRatings
from services.exceptions import GatewayError
from services.match_registry import MatchRegistry
from utils.formatting import build_elo_notice_message, build_greeting_message

logger = logging.getLogger("faceit_bot.services.poller")

# States in which the rating gap still matters to players
ELO_CHECK_STATES = (LifecycleState.VOTING, LifecycleState.ONGOING)


@dataclass(frozen=True)
class MatchStateChanged:
    match_id: str
    previous: LifecycleState
    current: LifecycleState


@dataclass
class PollCycleReport:
    """What one poll cycle observed and did."""

    observed: list[str] = field(default_factory=list)
    state_changes: list[MatchStateChanged] = field(default_factory=list)
    greeted: list[str] = field(default_factory=list)
    greeting_failures: list[str] = field(default_factory=list)
    pruned: list[str] = field(default_factory=list)
    elo_notices: list[str] = field(default_factory=list)
    aborted: bool = False


StateChangeCallback = Callable[[MatchStateChanged], None]


class MatchPoller:
    """
    Periodic hub synchronization.

    Responsibilities:
    - Upsert every reported match and emit MatchStateChanged on transitions
    - Send the welcome/help message once per match (retried until it succeeds)
    - Remove records for matches no longer reported
    - Send the rating-gap notice for unbalanced matches

    Cycles never overlap: a run_cycle() call made while another is in
    progress returns None immediately.
    """

    def __init__(
        self,
        gateway,
        registry: MatchRegistry,
        hub_id: str,
        *,
        status_filter: str = "ongoing",
        match_limit: int = 50,
        elo_diff_threshold: float = 70,
        repeat_elo_notice: bool = False,
        greeting_text: str | None = None,
        rehost_threshold: int = 6,
        cancel_threshold: int = 6,
    ):
        """
        Initialize MatchPoller.

        Args:
            gateway: FaceitGateway (or compatible) used for all API calls
            registry: Shared MatchRegistry
            hub_id: Hub to poll
            status_filter: Hub listing type passed to the gateway
            match_limit: Page size for the hub listing
            elo_diff_threshold: Rating gap that triggers the notice
            repeat_elo_notice: Re-send the notice every cycle while the gap holds
            greeting_text: Welcome message; defaults to the standard help text
            rehost_threshold: Rehost votes quoted in the default welcome message
            cancel_threshold: Cancel votes quoted in the default welcome message
        """
        self.gateway = gateway
        self.registry = registry
        self.hub_id = hub_id
        self.status_filter = status_filter
        self.match_limit = match_limit
        self.elo_diff_threshold = elo_diff_threshold
        self.repeat_elo_notice = repeat_elo_notice
        self.greeting_text = greeting_text or build_greeting_message(
            rehost_threshold, cancel_threshold, elo_diff_threshold
        )
        self._subscribers: list[StateChangeCallback] = []
        self._cycle_guard = threading.Lock()

    def subscribe(self, callback: StateChangeCallback) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: StateChangeCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @property
    def is_running(self) -> bool:
        return self._cycle_guard.locked()

    def chat_room_for(self, match_ref: str) -> str:
        """
        Chat room of a tracked match (by match or room id). Untracked matches
        fall back to the match id, which FACEIT uses as the room id.
        """
        record = self.registry.resolve(match_ref)
        if record is not None and record.chat_room_id:
            return record.chat_room_id
        return match_ref

    def run_cycle(self) -> PollCycleReport | None:
        """
        Run one synchronization cycle.

        Returns:
            PollCycleReport, or None if another cycle was already running
        """
        if not self._cycle_guard.acquire(blocking=False):
            logger.info("Poll cycle still running; skipping this tick")
            return None
        try:
            return self._run_cycle()
        finally:
            self._cycle_guard.release()

    def _run_cycle(self) -> PollCycleReport:
        report = PollCycleReport()

        try:
            matches = self.gateway.list_hub_matches(
                self.hub_id, self.status_filter, limit=self.match_limit
            )
        except GatewayError as exc:
            logger.error(f"Failed to fetch matches for hub {self.hub_id}: {exc}")
            report.aborted = True
            return report

        greeting_candidates = self._apply_matches(matches, report)

        for change in report.state_changes:
            self._notify(change)

        for match_id, chat_room_id in greeting_candidates:
            self._send_greeting(match_id, chat_room_id, report)

        self._check_rating_gaps(matches, report)

        logger.debug(
            f"Poll cycle: {len(report.observed)} matches, {len(report.state_changes)} changes, "
            f"{len(report.greeted)} greeted, {len(report.pruned)} pruned"
        )
        return report

    def _apply_matches(
        self, matches: list[HubMatch], report: PollCycleReport
    ) -> list[tuple[str, str]]:
        """Upsert all reported matches and prune the rest as one atomic step."""
        greeting_candidates = []
        with self.registry.lock():
            for match in matches:
                record = self.registry.upsert(
                    match.match_id,
                    match.lifecycle_state,
                    match.roster_player_ids,
                    match.chat_room_id,
                )
                report.observed.append(match.match_id)

                if record.state_changed:
                    report.state_changes.append(
                        MatchStateChanged(
                            match_id=record.match_id,
                            previous=record.previous_lifecycle_state,
                            current=record.lifecycle_state,
                        )
                    )

                if (
                    record.lifecycle_state is LifecycleState.VOTING
                    and not record.has_greeted
                    and record.chat_room_id
                ):
                    greeting_candidates.append((record.match_id, record.chat_room_id))

            report.pruned = self.registry.prune_missing(report.observed)

        for match_id in report.pruned:
            logger.info(f"Match {match_id} left the hub's active list; stopped tracking")
        return greeting_candidates

    def _notify(self, change: MatchStateChanged) -> None:
        logger.info(
            f"Match {change.match_id} state changed: "
            f"{change.previous.value} -> {change.current.value}"
        )
        for callback in list(self._subscribers):
            try:
                callback(change)
            except Exception as exc:
                logger.error(f"State change subscriber failed for {change.match_id}: {exc}", exc_info=True)

    def _send_greeting(self, match_id: str, chat_room_id: str, report: PollCycleReport) -> None:
        try:
            self.gateway.send_chat_message(chat_room_id, self.greeting_text)
        except GatewayError as exc:
            logger.warning(f"Failed to greet match {match_id}, will retry next cycle: {exc}")
            report.greeting_failures.append(match_id)
            return

        with self.registry.lock():
            record = self.registry.get(match_id)
            if record is not None:
                record.mark_greeted()
        report.greeted.append(match_id)
        logger.info(f"Greeting sent to match {match_id}")

    def _check_rating_gaps(self, matches: list[HubMatch], report: PollCycleReport) -> None:
        for match in matches:
            record = self.registry.get(match.match_id)
            if record is None or record.lifecycle_state not in ELO_CHECK_STATES:
                continue
            if record.elo_notified and not self.repeat_elo_notice:
                continue
            if not record.chat_room_id:
                continue

            ratings = self._ratings_for(match)
            if ratings is None or ratings.difference < self.elo_diff_threshold:
                continue

            try:
                self.gateway.send_chat_message(
                    record.chat_room_id,
                    build_elo_notice_message(
                        ratings.difference, ratings.faction1_rating, ratings.faction2_rating
                    ),
                )
            except GatewayError as exc:
                logger.warning(f"Failed to send elo notice for match {match.match_id}: {exc}")
                continue

            with self.registry.lock():
                record.elo_notified = True
            report.elo_notices.append(match.match_id)
            logger.info(f"Elo differential {ratings.difference:.0f} flagged for match {match.match_id}")

    def _ratings_for(self, match: HubMatch) -> TeamRatings | None:
        ratings = match.team_ratings
        if ratings is not None:
            return ratings
        try:
            return self.gateway.get_team_ratings(match.match_id)
        except GatewayError as exc:
            logger.warning(f"Could not load team ratings for match {match.match_id}: {exc}")
            return None
