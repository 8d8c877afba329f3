"""
Domain models - pure data structures representing hub matches and votes.
"""

from domain.models.match_record import (
    ChatMessage,
    HubMatch,
    LifecycleState,
    MatchRecord,
    TeamRatings,
    VoteKind,
)

__all__ = [
    "ChatMessage",
    "HubMatch",
    "LifecycleState",
    "MatchRecord",
    "TeamRatings",
    "VoteKind",
]
