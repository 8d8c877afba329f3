"""
FACEIT hub commands: match listing, Discord-side voting and the poll loop.
"""

import asyncio
import logging

import discord
from discord import app_commands
from discord.ext import commands, tasks

from domain.models.match_record import VoteKind
from services.exceptions import GatewayError
from services.permissions import has_admin_permission
from services.vote_coordinator import VoteOutcome
from utils.command_helpers import format_result_error, handle_result
from utils.formatting import (
    build_vote_progress_message,
    format_match_line,
    format_state_change,
)
from utils.interaction_safety import safe_defer, safe_followup

logger = logging.getLogger("faceit_bot.commands.faceit")

ADMIN_ONLY_MESSAGE = "❌ Admin only! You need Administrator or Manage Server permissions."
MAX_MATCH_LINES = 25


def render_vote_outcome(outcome: VoteOutcome) -> str:
    """Reply text for an accepted vote."""
    if not outcome.triggered:
        return "✅ Vote recorded. " + build_vote_progress_message(
            outcome.kind, outcome.vote_count, outcome.threshold
        )
    text = (
        f"✅ Vote recorded. {outcome.kind.value.capitalize()} threshold reached "
        f"({outcome.vote_count}/{outcome.threshold})."
    )
    if not outcome.announced:
        text += " ⚠️ The announcement could not be posted to match chat."
    return text


class FaceitCommands(commands.Cog):
    """Slash commands and the background poll loop for the FACEIT hub."""

    def __init__(
        self,
        bot: commands.Bot,
        vote_coordinator,
        match_poller,
        chat_listener,
        player_link_service,
        gateway,
        *,
        help_text: str = "",
        notify_channel_id: int | None = None,
        poll_interval_seconds: float = 30.0,
        chat_commands_enabled: bool = True,
    ):
        self.bot = bot
        self.vote_coordinator = vote_coordinator
        self.match_poller = match_poller
        self.chat_listener = chat_listener
        self.player_link_service = player_link_service
        self.gateway = gateway
        self.help_text = help_text
        self.notify_channel_id = notify_channel_id
        self.chat_commands_enabled = chat_commands_enabled
        self._loop: asyncio.AbstractEventLoop | None = None
        self.poll_hub.change_interval(seconds=poll_interval_seconds)

    async def cog_load(self):
        self._loop = asyncio.get_running_loop()
        self.match_poller.subscribe(self._on_state_changed)
        self.poll_hub.start()

    def cog_unload(self):
        """Clean up when cog is unloaded."""
        self.poll_hub.cancel()
        self.match_poller.unsubscribe(self._on_state_changed)

    # -- background loop -------------------------------------------------

    @tasks.loop(seconds=30)
    async def poll_hub(self):
        """Synchronize hub matches, then read match chats for commands."""
        try:
            await self._run_poll_cycle()
        except Exception as exc:
            # tasks.loop stops on unhandled errors
            logger.error(f"Poll loop iteration failed: {exc}", exc_info=True)

    @poll_hub.before_loop
    async def before_poll_hub(self):
        """Wait until bot is ready before starting task."""
        await self.bot.wait_until_ready()
        logger.info("Starting FACEIT hub poll loop")

    async def _run_poll_cycle(self):
        report = await asyncio.to_thread(self.match_poller.run_cycle)
        if report is None or report.aborted:
            return report
        if self.chat_commands_enabled:
            await asyncio.to_thread(self.chat_listener.run_cycle)
        return report

    def _on_state_changed(self, change) -> None:
        """Poller subscriber; runs on the worker thread of the poll cycle."""
        if self.notify_channel_id is None or self._loop is None:
            return
        asyncio.run_coroutine_threadsafe(
            self._post_state_change(change.match_id, change.previous, change.current),
            self._loop,
        )

    async def _post_state_change(self, match_id, previous, current):
        channel = self.bot.get_channel(self.notify_channel_id)
        if channel is None:
            logger.warning(f"Notify channel {self.notify_channel_id} not found")
            return
        try:
            await channel.send(format_state_change(match_id, previous, current))
        except discord.HTTPException as exc:
            logger.warning(f"Failed to post state change for match {match_id}: {exc}")

    # -- player commands -------------------------------------------------

    @app_commands.command(name="matches", description="Show tracked hub matches and vote tallies")
    async def matches(self, interaction: discord.Interaction):
        if not await safe_defer(interaction, ephemeral=True):
            return

        tallies = await asyncio.to_thread(self.vote_coordinator.list_tallies)
        if not tallies:
            await safe_followup(interaction, content="No tracked matches right now.", ephemeral=True)
            return

        lines = [format_match_line(tally) for tally in tallies[:MAX_MATCH_LINES]]
        if len(tallies) > MAX_MATCH_LINES:
            lines.append(f"…and {len(tallies) - MAX_MATCH_LINES} more")
        embed = discord.Embed(
            title=f"Tracked matches ({len(tallies)})",
            description="\n".join(lines),
            color=discord.Color.orange(),
        )
        await safe_followup(interaction, embed=embed, ephemeral=True)

    @app_commands.command(name="rehost", description="Vote to rehost a match you are playing in")
    @app_commands.describe(match="FACEIT match id")
    async def rehost(self, interaction: discord.Interaction, match: str):
        await self._vote(interaction, match, VoteKind.REHOST)

    @app_commands.command(name="cancel", description="Vote to cancel a match you are playing in")
    @app_commands.describe(match="FACEIT match id")
    async def cancel(self, interaction: discord.Interaction, match: str):
        await self._vote(interaction, match, VoteKind.CANCEL)

    async def _vote(self, interaction: discord.Interaction, match: str, kind: VoteKind):
        logger.info(f"/{kind.value} by {interaction.user.id} ({interaction.user}) on match {match}")
        if not await safe_defer(interaction, ephemeral=True):
            return

        link_result = self.player_link_service.get_link(interaction.user.id)
        if not await handle_result(interaction, link_result):
            return

        result = await asyncio.to_thread(
            self.vote_coordinator.submit_vote,
            match.strip(),
            link_result.value.faceit_player_id,
            kind,
        )
        if not result:
            await safe_followup(interaction, content=format_result_error(result), ephemeral=True)
            return
        await safe_followup(interaction, content=render_vote_outcome(result.value), ephemeral=True)

    @app_commands.command(name="link", description="Link your Discord account to a FACEIT player")
    @app_commands.describe(nickname="Your FACEIT nickname")
    async def link(self, interaction: discord.Interaction, nickname: str):
        if not await safe_defer(interaction, ephemeral=True):
            return

        result = await asyncio.to_thread(
            self.player_link_service.link, interaction.user.id, nickname
        )
        if not await handle_result(interaction, result):
            return
        player = result.value
        await safe_followup(
            interaction,
            content=f"✅ Linked to FACEIT player **{player.nickname}**.",
            ephemeral=True,
        )

    @app_commands.command(name="testhelp", description="Show bot commands")
    async def testhelp(self, interaction: discord.Interaction):
        text = (
            f"{self.help_text}\n\n"
            "Discord commands:\n"
            "/link nickname - Link your FACEIT account (needed to vote from Discord)\n"
            "/matches - Show tracked matches\n"
            "/rehost match - Vote for a rehost\n"
            "/cancel match - Vote for a cancellation"
        )
        await interaction.response.send_message(text, ephemeral=True)

    # -- operator commands -----------------------------------------------

    @app_commands.command(name="sendtest", description="Send a message to a match chat (Admin only)")
    @app_commands.describe(match="FACEIT match id or chat room id", message="Message text")
    async def sendtest(self, interaction: discord.Interaction, match: str, message: str):
        if not await safe_defer(interaction, ephemeral=True):
            return
        if not has_admin_permission(interaction):
            await safe_followup(interaction, content=ADMIN_ONLY_MESSAGE, ephemeral=True)
            return

        room_id = self.match_poller.chat_room_for(match.strip())
        try:
            await asyncio.to_thread(self.gateway.send_chat_message, room_id, message)
        except GatewayError as exc:
            logger.error(f"/sendtest to room {room_id} failed: {exc}")
            await safe_followup(
                interaction, content=f"❌ Failed to send message: {exc}", ephemeral=True
            )
            return
        await safe_followup(interaction, content=f"✅ Sent to room `{room_id}`.", ephemeral=True)

    @app_commands.command(name="poll", description="Run one hub poll cycle now (Admin only)")
    async def poll(self, interaction: discord.Interaction):
        if not await safe_defer(interaction, ephemeral=True):
            return
        if not has_admin_permission(interaction):
            await safe_followup(interaction, content=ADMIN_ONLY_MESSAGE, ephemeral=True)
            return

        report = await self._run_poll_cycle()
        if report is None:
            content = "⏳ A poll cycle is already running."
        elif report.aborted:
            content = "❌ Could not fetch hub matches. Check the logs."
        else:
            content = (
                f"✅ Poll complete: {len(report.observed)} matches, "
                f"{len(report.state_changes)} state changes, {len(report.greeted)} greeted, "
                f"{len(report.pruned)} pruned, {len(report.elo_notices)} elo notices."
            )
        await safe_followup(interaction, content=content, ephemeral=True)


async def setup(bot: commands.Bot):
    """Setup function called when loading the cog."""
    config = getattr(bot, "service_config", None)
    await bot.add_cog(
        FaceitCommands(
            bot,
            getattr(bot, "vote_coordinator", None),
            getattr(bot, "match_poller", None),
            getattr(bot, "chat_listener", None),
            getattr(bot, "player_link_service", None),
            getattr(bot, "faceit_gateway", None),
            help_text=config.help_text if config else "",
            notify_channel_id=config.notify_channel_id if config else None,
            poll_interval_seconds=config.poll_interval_ms / 1000 if config else 30.0,
            chat_commands_enabled=config.chat_commands_enabled if config else True,
        )
    )
