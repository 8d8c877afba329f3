"""
FACEIT API gateway.

Thin authenticated client over two FACEIT APIs:
- Data API (open.faceit.com/data/v4): hub matches, match details, players.
  Authenticated with the server-side API key.
- Chat API (api.faceit.com/chat/v1): room messages. Authenticated with the
  OAuth access token issued to the bot account.

Reads are retried with exponential backoff on transient failures (HTTP 429,
5xx, connection errors). Writes are only retried when rate limited.
"""

import logging
import time
from collections.abc import Callable
from typing import Any

import requests

from domain.models.match_record import ChatMessage, HubMatch, TeamRatings
from services.exceptions import GatewayAuthError, GatewayError

logger = logging.getLogger("faceit_bot.infrastructure.gateway")

DEFAULT_DATA_API_BASE = "https://open.faceit.com/data/v4"
DEFAULT_CHAT_API_BASE = "https://api.faceit.com/chat/v1"
MAX_PAGE_LIMIT = 100
MAX_CHAT_PAGE_LIMIT = 50


def _faction_roster(faction: dict) -> list[str]:
    """Player ids for one faction; newer payloads use 'roster', older 'players'."""
    players = faction.get("roster") or faction.get("players") or []
    return [p["player_id"] for p in players if isinstance(p, dict) and p.get("player_id")]


def _faction_rating(faction: dict) -> float | None:
    stats = faction.get("stats") or {}
    rating = stats.get("rating")
    if rating is None:
        return None
    try:
        return float(rating)
    except (TypeError, ValueError):
        return None


def parse_hub_match(item: dict) -> HubMatch:
    """
    Convert a hub listing / match details payload into a HubMatch.

    When the payload carries no chat_room_id the match id is used, which is
    how FACEIT names match rooms.
    """
    match_id = item.get("match_id") or item.get("id")
    if not match_id:
        raise GatewayError("Match payload has no match_id")

    teams = item.get("teams") or {}
    faction1 = teams.get("faction1") or {}
    faction2 = teams.get("faction2") or {}

    return HubMatch(
        match_id=match_id,
        status=item.get("status") or item.get("state") or "",
        roster_player_ids=frozenset(_faction_roster(faction1) + _faction_roster(faction2)),
        chat_room_id=item.get("chat_room_id") or match_id,
        faction1_rating=_faction_rating(faction1),
        faction2_rating=_faction_rating(faction2),
    )


def parse_chat_message(room_id: str, payload: dict) -> ChatMessage | None:
    """Convert a chat API message; returns None for payloads without a sender or body."""
    sender = payload.get("from") or payload.get("user_id") or payload.get("sender")
    if isinstance(sender, dict):
        sender = sender.get("id") or sender.get("user_id")
    body = payload.get("body") or payload.get("message") or ""
    if not sender or not body:
        return None
    try:
        timestamp = int(payload.get("timestamp") or 0)
    except (TypeError, ValueError):
        timestamp = 0
    return ChatMessage(
        message_id=str(payload.get("id") or payload.get("message_id") or ""),
        room_id=room_id,
        sender_id=str(sender),
        body=str(body),
        timestamp=timestamp,
    )


class FaceitGateway:
    """
    HTTP client for the FACEIT Data and Chat APIs.

    Example:
        gateway = FaceitGateway(api_key="...", chat_token="...")
        matches = gateway.list_hub_matches(hub_id)
        gateway.send_chat_message(matches[0].chat_room_id, "hello")
    """

    def __init__(
        self,
        api_key: str | None,
        chat_token: str | None = None,
        *,
        data_api_base: str = DEFAULT_DATA_API_BASE,
        chat_api_base: str = DEFAULT_CHAT_API_BASE,
        timeout_seconds: float = 10.0,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key
        self.chat_token = chat_token
        self.data_api_base = data_api_base.rstrip("/")
        self.chat_api_base = chat_api_base.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_retries = max(0, max_retries)
        self.backoff_seconds = backoff_seconds
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------

    def _headers(self, token: str | None, api_name: str) -> dict[str, str]:
        if not token:
            raise GatewayAuthError(f"No credentials configured for the FACEIT {api_name} API")
        return {"Authorization": f"Bearer {token}"}

    def _retry_delay(self, attempt: int, response: requests.Response | None) -> float:
        """Honor Retry-After when present, otherwise exponential backoff."""
        if response is not None:
            retry_after = response.headers.get("Retry-After")
            if retry_after:
                try:
                    return max(0.0, float(retry_after))
                except ValueError:
                    pass
        return self.backoff_seconds * (2**attempt)

    def _request(
        self,
        method: str,
        url: str,
        *,
        token: str | None,
        api_name: str,
        idempotent: bool,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        headers = self._headers(token, api_name)
        attempt = 0
        while True:
            response = None
            try:
                response = self.session.request(
                    method,
                    url,
                    headers=headers,
                    params=params,
                    json=json,
                    timeout=self.timeout_seconds,
                )
            except requests.RequestException as exc:
                error = GatewayError(f"{method} {url} failed: {exc}")
                retryable = idempotent
            else:
                if response.status_code < 400:
                    if not response.content:
                        return {}
                    try:
                        return response.json()
                    except ValueError as exc:
                        raise GatewayError(f"{method} {url} returned invalid JSON") from exc

                status = response.status_code
                if status in (401, 403):
                    raise GatewayAuthError(
                        f"{method} {url} rejected credentials ({status})", status=status
                    )
                error = GatewayError(f"{method} {url} returned HTTP {status}", status=status)
                retryable = status == 429 or (idempotent and error.is_transient)

            if not retryable or attempt >= self.max_retries:
                raise error

            delay = self._retry_delay(attempt, response)
            logger.warning(
                f"{error}; retrying in {delay:.1f}s (attempt {attempt + 1}/{self.max_retries})"
            )
            self._sleep(delay)
            attempt += 1

    def _data_get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self._request(
            "GET",
            f"{self.data_api_base}{path}",
            token=self.api_key,
            api_name="Data",
            idempotent=True,
            params=params,
        )

    # ------------------------------------------------------------------
    # Data API
    # ------------------------------------------------------------------

    def list_hub_matches(
        self, hub_id: str, status_filter: str = "ongoing", limit: int = 50
    ) -> list[HubMatch]:
        """
        List a hub's matches.

        Args:
            hub_id: FACEIT hub id
            status_filter: Listing type: "ongoing", "upcoming", "past" or "all"
            limit: Page size (capped at 100)

        Returns:
            Matches in the order FACEIT returned them. Items without a match id
            are skipped.

        Raises:
            GatewayError: On network, auth or HTTP failure
        """
        payload = self._data_get(
            f"/hubs/{hub_id}/matches",
            params={"type": status_filter, "offset": 0, "limit": min(limit, MAX_PAGE_LIMIT)},
        )
        items = payload.get("items") if isinstance(payload, dict) else None
        if items is None:
            raise GatewayError(f"Hub {hub_id} match listing has no items")

        matches = []
        for item in items:
            try:
                matches.append(parse_hub_match(item))
            except GatewayError as exc:
                logger.warning(f"Skipping hub match item: {exc}")
        return matches

    def get_match_details(self, match_id: str) -> dict:
        return self._data_get(f"/matches/{match_id}")

    def get_team_ratings(self, match_id: str) -> TeamRatings | None:
        """
        Average faction ratings for a match.

        Returns:
            TeamRatings, or None when either faction has no rating
        """
        details = self.get_match_details(match_id)
        return parse_hub_match(details).team_ratings

    def find_player(self, nickname: str) -> dict:
        """
        Look up a player by FACEIT nickname.

        Raises:
            GatewayError: status 404 when the nickname does not exist
        """
        return self._data_get("/players", params={"nickname": nickname})

    # ------------------------------------------------------------------
    # Chat API
    # ------------------------------------------------------------------

    def send_chat_message(self, chat_room_id: str, text: str) -> dict:
        """
        Post a message to a match chat room.

        Raises:
            GatewayError: On failure (only HTTP 429 is retried)
        """
        result = self._request(
            "POST",
            f"{self.chat_api_base}/rooms/{chat_room_id}/messages",
            token=self.chat_token,
            api_name="Chat",
            idempotent=False,
            json={"body": text},
        )
        logger.debug(f"Sent chat message to room {chat_room_id}")
        return result

    def get_room_messages(
        self, chat_room_id: str, since: int | None = None, limit: int = 50
    ) -> list[ChatMessage]:
        """
        Read recent messages from a chat room.

        Args:
            chat_room_id: Room to read
            since: Only messages from this timestamp (ms) on, if given
            limit: Page size, clamped to 1..50

        Returns:
            Parsed messages sorted by timestamp
        """
        params: dict[str, Any] = {"limit": min(max(1, limit), MAX_CHAT_PAGE_LIMIT)}
        if since is not None:
            params["timestamp_from"] = since
        payload = self._request(
            "GET",
            f"{self.chat_api_base}/rooms/{chat_room_id}/messages",
            token=self.chat_token,
            api_name="Chat",
            idempotent=True,
            params=params,
        )
        raw_messages = payload.get("messages") if isinstance(payload, dict) else None
        if not isinstance(raw_messages, list):
            raise GatewayError(f"Chat room {chat_room_id} returned no message list")

        messages = []
        for raw in raw_messages:
            if isinstance(raw, dict):
                message = parse_chat_message(chat_room_id, raw)
                if message is not None:
                    messages.append(message)
        return sorted(messages, key=lambda m: m.timestamp)
