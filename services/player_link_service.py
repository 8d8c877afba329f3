"""
Player link service.

Maps Discord users to FACEIT player ids so votes cast from Discord are
attributed to the right roster member. Links are in-memory only.
"""

import logging
import threading
from dataclasses import dataclass

from services.error_codes import (
    EXTERNAL_API_ERROR,
    PLAYER_NOT_FOUND,
    PLAYER_NOT_LINKED,
    VALIDATION_ERROR,
)
from services.exceptions import GatewayError
from services.result import Result

logger = logging.getLogger("faceit_bot.services.player_link")


@dataclass(frozen=True)
class PlayerLink:
    discord_id: int
    faceit_player_id: str
    nickname: str


class PlayerLinkService:
    """Resolve FACEIT nicknames and remember which Discord user owns them."""

    def __init__(self, gateway):
        self.gateway = gateway
        self._links: dict[int, PlayerLink] = {}
        self._lock = threading.Lock()

    def link(self, discord_id: int, nickname: str) -> Result[PlayerLink]:
        """
        Link a Discord user to the FACEIT player with this nickname.

        Re-linking replaces the previous link.
        """
        nickname = nickname.strip()
        if not nickname:
            return Result.fail("Nickname is required.", code=VALIDATION_ERROR)

        try:
            player = self.gateway.find_player(nickname)
        except GatewayError as exc:
            if exc.status == 404:
                return Result.fail(f"No FACEIT player named {nickname}.", code=PLAYER_NOT_FOUND)
            logger.error(f"FACEIT player lookup failed for {nickname}: {exc}")
            return Result.fail("FACEIT is unavailable, try again later.", code=EXTERNAL_API_ERROR)

        player_id = player.get("player_id") if isinstance(player, dict) else None
        if not player_id:
            return Result.fail(f"No FACEIT player named {nickname}.", code=PLAYER_NOT_FOUND)

        link = PlayerLink(
            discord_id=discord_id,
            faceit_player_id=player_id,
            nickname=player.get("nickname") or nickname,
        )
        with self._lock:
            self._links[discord_id] = link
        logger.info(f"Linked Discord user {discord_id} to FACEIT player {link.nickname} ({player_id})")
        return Result.ok(link)

    def unlink(self, discord_id: int) -> bool:
        with self._lock:
            return self._links.pop(discord_id, None) is not None

    def get_link(self, discord_id: int) -> Result[PlayerLink]:
        with self._lock:
            link = self._links.get(discord_id)
        if link is None:
            return Result.fail(
                "Link your FACEIT account first with /link.", code=PLAYER_NOT_LINKED
            )
        return Result.ok(link)
