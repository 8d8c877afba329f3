"""
Centralized configuration for the FACEIT hub vote bot.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _parse_int(env_var: str, default: int) -> int:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float(env_var: str, default: float) -> float:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _parse_bool(env_var: str, default: bool) -> bool:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _parse_optional_int(env_var: str) -> int | None:
    raw = os.getenv(env_var)
    if not raw:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


DISCORD_BOT_TOKEN = os.getenv("DISCORD_BOT_TOKEN")
ADMIN_USER_IDS: list[int] = []

_admin_env = os.getenv("ADMIN_USER_IDS", "")
if _admin_env:
    try:
        ADMIN_USER_IDS = [int(uid.strip()) for uid in _admin_env.split(",") if uid.strip()]
    except ValueError:
        ADMIN_USER_IDS = []

# Channel that receives match state change notices (optional)
NOTIFY_CHANNEL_ID: int | None = _parse_optional_int("NOTIFY_CHANNEL_ID")

# FACEIT credentials: Data API key (server side) and the bot account's chat access token
FACEIT_API_KEY = os.getenv("FACEIT_API_KEY")
FACEIT_CHAT_TOKEN = os.getenv("FACEIT_CHAT_TOKEN")
FACEIT_HUB_ID = os.getenv("FACEIT_HUB_ID") or os.getenv("HUB_ID")
FACEIT_BOT_USER_ID = os.getenv("FACEIT_BOT_USER_ID")  # Own chat messages are ignored
FACEIT_DATA_API_BASE = os.getenv("FACEIT_DATA_API_BASE", "https://open.faceit.com/data/v4")
FACEIT_CHAT_API_BASE = os.getenv("FACEIT_CHAT_API_BASE", "https://api.faceit.com/chat/v1")

# Gateway request policy
FACEIT_REQUEST_TIMEOUT_SECONDS = _parse_float("FACEIT_REQUEST_TIMEOUT_SECONDS", 10.0)
FACEIT_MAX_RETRIES = _parse_int("FACEIT_MAX_RETRIES", 3)
FACEIT_RETRY_BACKOFF_SECONDS = _parse_float("FACEIT_RETRY_BACKOFF_SECONDS", 1.0)

# Polling
POLL_INTERVAL_MS = _parse_int("POLL_INTERVAL_MS", 30000)  # 30 seconds
HUB_MATCH_STATUS_FILTER = os.getenv("HUB_MATCH_STATUS_FILTER", "ongoing")
HUB_MATCH_LIMIT = _parse_int("HUB_MATCH_LIMIT", 50)
CHAT_COMMANDS_ENABLED = _parse_bool("CHAT_COMMANDS_ENABLED", True)

# Voting
REHOST_VOTE_THRESHOLD = _parse_int("REHOST_VOTE_THRESHOLD", 6)
CANCEL_VOTE_THRESHOLD = _parse_int("CANCEL_VOTE_THRESHOLD", 6)

# Elo differential autocheck
ELO_DIFF_THRESHOLD = _parse_float("ELO_DIFF_THRESHOLD", 70.0)
REPEAT_ELO_NOTICE = _parse_bool("REPEAT_ELO_NOTICE", False)  # Re-announce every cycle while the gap holds
