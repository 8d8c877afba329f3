"""
Shared chat message texts and Discord formatting helpers.
"""

from domain.models.match_record import LifecycleState, VoteKind

STATE_EMOJIS = {
    LifecycleState.UNKNOWN: "❔",
    LifecycleState.VOTING: "🗳️",
    LifecycleState.ONGOING: "🎮",
    LifecycleState.FINISHED: "🏁",
    LifecycleState.CANCELLED: "⚠️",
    LifecycleState.OTHER: "⏳",
}

STATE_NAMES = {
    LifecycleState.UNKNOWN: "Unknown",
    LifecycleState.VOTING: "Map veto",
    LifecycleState.ONGOING: "Ongoing",
    LifecycleState.FINISHED: "Finished",
    LifecycleState.CANCELLED: "Cancelled",
    LifecycleState.OTHER: "Other",
}


def format_state(state: LifecycleState) -> str:
    """Return state with emoji and name (e.g., '🎮 Ongoing')."""
    return f"{STATE_EMOJIS.get(state, '')} {STATE_NAMES.get(state, state.value)}".strip()


def build_greeting_message(rehost_threshold: int, cancel_threshold: int, elo_threshold: float) -> str:
    """Welcome text posted once per match when the veto phase starts."""
    return (
        "👋 Hello! Map veto phase has started. I'm here to assist and monitor the process. "
        "Good luck! 🎮\n\n"
        "Available commands:\n"
        f"!rehost - Vote for match rehost (requires {rehost_threshold} players)\n"
        f"!cancel - Vote for match cancellation (requires {cancel_threshold} players)\n"
        f"Teams with an elo differential of {elo_threshold:g} or more will be flagged."
    )


def build_vote_progress_message(kind: VoteKind, vote_count: int, threshold: int) -> str:
    return f"🗳️ {kind.value.capitalize()} vote: {vote_count}/{threshold}"


def build_vote_triggered_message(kind: VoteKind, vote_count: int) -> str:
    """Announcement posted to the match room when a vote crosses its threshold."""
    if kind is VoteKind.REHOST:
        return f"🔁 Rehost vote passed with {vote_count} votes. The match will be rehosted."
    return f"⛔ Cancel vote passed with {vote_count} votes. The match will be cancelled."


def build_elo_notice_message(difference: float, faction1_rating: float, faction2_rating: float) -> str:
    return (
        f"⚖️ Elo differential is {difference:.0f} "
        f"({faction1_rating:.0f} vs {faction2_rating:.0f}). "
        "Players may vote !cancel if they consider this match unbalanced."
    )


def format_state_change(match_id: str, previous: LifecycleState, current: LifecycleState) -> str:
    return f"Match `{match_id}`: {format_state(previous)} → {format_state(current)}"


def format_match_line(tally) -> str:
    """One line summary of a VoteTally used by /matches."""
    return (
        f"`{tally.match_id}` {format_state(tally.lifecycle_state)} · "
        f"rehost {tally.rehost_count}/{tally.rehost_threshold} · "
        f"cancel {tally.cancel_count}/{tally.cancel_threshold}"
    )
