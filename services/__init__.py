"""
Application services layer.

Services own the match registry, the poll cycle, voting and player links.
The Discord cogs only call into them.
"""

from services.chat_command_service import ChatCommandListener
from services.match_poller import MatchPoller, MatchStateChanged, PollCycleReport
from services.match_registry import MatchRegistry
from services.player_link_service import PlayerLink, PlayerLinkService

# Result type for consistent error handling
from services.result import Result
from services.vote_coordinator import VoteCoordinator, VoteOutcome, VoteTally

__all__ = [
    # Concrete services
    "ChatCommandListener",
    "MatchPoller",
    "MatchRegistry",
    "PlayerLinkService",
    "VoteCoordinator",
    # Value types
    "MatchStateChanged",
    "PlayerLink",
    "PollCycleReport",
    "VoteOutcome",
    "VoteTally",
    # Result type
    "Result",
]
