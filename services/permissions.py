"""
Permission checking utilities for operator-only commands.
"""

import discord

from config import ADMIN_USER_IDS


def has_admin_permission(interaction: discord.Interaction, admin_user_ids: list[int] | None = None) -> bool:
    """
    Check if the user may run operator commands (/sendtest, /poll).

    The ADMIN_USER_IDS allowlist wins; otherwise Administrator or Manage
    Server in the current guild is required.
    """
    allowlist = ADMIN_USER_IDS if admin_user_ids is None else admin_user_ids
    if allowlist and interaction.user.id in allowlist:
        return True

    if interaction.guild:
        get_member = getattr(interaction.guild, "get_member", None)
        if callable(get_member):
            member = get_member(interaction.user.id)
            if member and getattr(member, "guild_permissions", None):
                return (
                    member.guild_permissions.administrator
                    or member.guild_permissions.manage_guild
                )

    # interaction.user may already be a Member with guild_permissions
    perms = getattr(interaction.user, "guild_permissions", None)
    if perms:
        return bool(getattr(perms, "administrator", False) or getattr(perms, "manage_guild", False))

    return False
