"""Discord bot entry point for ServerReport."""

from __future__ import annotations

import atexit
import logging
import os
from typing import Optional

import discord
from discord.ext import commands
from dotenv import load_dotenv

from ...config import Settings, database_path, get_settings
from ...identity import IdentityLinker
from ...service import ReportService
from ...state import ReportState
from ...telemetry import get_telemetry
from ...telemetry_decorator import track_command
from .handlers import Reply, handle_report, handle_status

logger = logging.getLogger(__name__)


async def _send_reply(ctx: commands.Context, reply: Reply) -> None:
    await ctx.reply(content=reply.content, embed=reply.embed)


def build_bot(
    service: ReportService,
    linker: IdentityLinker,
    *,
    settings: Optional[Settings] = None,
    intents: Optional[discord.Intents] = None,
) -> commands.Bot:
    settings = settings or service.settings
    if intents is None:
        intents = discord.Intents.default()
        intents.message_content = True
    bot = commands.Bot(command_prefix=settings.discord_command_prefix, intents=intents)
    setattr(bot, "report_service", service)

    @bot.event
    async def on_ready() -> None:
        logger.info("Discord bot logged in as %s", bot.user)
        await bot.change_presence(
            activity=discord.Activity(type=discord.ActivityType.watching, name="reports")
        )

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError) -> None:
        if isinstance(error, commands.CommandNotFound):
            return
        logger.error("Error executing %s: %s", ctx.command, error, exc_info=error)
        await ctx.reply("An error occurred while executing this command.")

    @bot.command(name="report", help="Create a new report: !report <title> | <description> | [category] | [priority]")
    @track_command("discord")
    async def report(ctx: commands.Context, *, args: str = "") -> None:
        reply = handle_report(service, linker, ctx.author.id, ctx.author.name, args)
        await _send_reply(ctx, reply)

    @bot.command(name="status", help="Check report status: !status <report_id>")
    @track_command("discord")
    async def status(ctx: commands.Context, *, args: str = "") -> None:
        reply = handle_status(service, linker, ctx.author.id, ctx.author.name, args)
        await _send_reply(ctx, reply)

    return bot


def main() -> None:
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    token = os.environ.get("DISCORD_TOKEN")
    if not token:
        raise RuntimeError("DISCORD_TOKEN environment variable must be set")
    settings = get_settings()
    state = ReportState(database_path())
    bot = build_bot(ReportService(state, settings), IdentityLinker(state), settings=settings)
    atexit.register(get_telemetry().flush)
    bot.run(token)


__all__ = ["build_bot", "main"]
