"""
Helpers that keep slash command responses from failing on expired or
already-acknowledged interactions.
"""

import logging

import discord

logger = logging.getLogger("faceit_bot.utils.interaction_safety")


async def safe_defer(interaction: discord.Interaction, ephemeral: bool = False) -> bool:
    """
    Defer the interaction response.

    Returns:
        True if a followup can be sent afterwards, False if the interaction
        is gone (expired or unknown).
    """
    if interaction.response.is_done():
        return True
    try:
        await interaction.response.defer(ephemeral=ephemeral)
        return True
    except discord.errors.NotFound:
        logger.warning(f"Interaction {interaction.id} expired before it could be deferred")
        return False
    except discord.errors.HTTPException as exc:
        logger.warning(f"Failed to defer interaction {interaction.id}: {exc}")
        return False


async def safe_followup(
    interaction: discord.Interaction,
    content: str | None = None,
    embed: discord.Embed | None = None,
    ephemeral: bool = False,
):
    """
    Send a followup message, logging instead of raising on Discord errors.

    Returns:
        The sent message, or None if sending failed
    """
    kwargs = {"ephemeral": ephemeral}
    if content is not None:
        kwargs["content"] = content
    if embed is not None:
        kwargs["embed"] = embed
    try:
        return await interaction.followup.send(**kwargs)
    except discord.errors.HTTPException as exc:
        logger.warning(f"Failed to send followup for interaction {interaction.id}: {exc}")
        return None
