"""
Command helper utilities for Discord slash commands.

Turns service Results into consistent ephemeral replies.
"""

from typing import TYPE_CHECKING

import discord

from services import error_codes
from utils.interaction_safety import safe_followup

if TYPE_CHECKING:
    from services.result import Result

# Codes whose message is written for players and shown as-is
_USER_FACING_CODES = {
    error_codes.PLAYER_NOT_LINKED,
    error_codes.PLAYER_NOT_FOUND,
    error_codes.EXTERNAL_API_ERROR,
    error_codes.VALIDATION_ERROR,
}


def format_result_error(result: "Result") -> str:
    """Render a failed Result for a Discord reply."""
    if result.error_code in _USER_FACING_CODES or not result.error_code:
        return f"❌ {result.error}"
    return f"❌ [{result.error_code}] {result.error}"


async def handle_result(
    interaction: discord.Interaction,
    result: "Result",
    success_msg: str | None = None,
    ephemeral: bool = True,
) -> bool:
    """
    Handle a service Result, sending the matching Discord followup.

    Returns:
        True if the result was successful, False otherwise

    Usage:
        result = await asyncio.to_thread(link_service.link, user_id, nickname)
        if not await handle_result(interaction, result):
            return  # Error was already reported to user
    """
    if not result.success:
        await safe_followup(interaction, content=format_result_error(result), ephemeral=True)
        return False

    if success_msg:
        await safe_followup(interaction, content=success_msg, ephemeral=ephemeral)
    return True
