"""Discord embed/message builders.

Pure construction helpers for Discord UI objects. Keeping these in a
separate module makes them easy to unit test and reuse across handlers.
"""

from __future__ import annotations

from typing import Optional

import discord

from ...models import Report

REPORT_COLOUR = 0x0099FF
_FIELD_LIMIT = 1024
_DESCRIPTION_LIMIT = 4096


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def build_report_embed(report: Report, *, heading: Optional[str] = None) -> discord.Embed:
    """Construct the embed shown by `!status` and after `!report`."""

    title = report.title if heading is None else f"{heading}: {report.title}"
    embed = discord.Embed(
        title=_truncate(title, 256),
        description=_truncate(report.description, _DESCRIPTION_LIMIT),
        colour=discord.Colour(REPORT_COLOUR),
    )
    embed.add_field(name="Status", value=report.status.value, inline=True)
    embed.add_field(name="Priority", value=report.priority.value, inline=True)
    embed.add_field(
        name="Category",
        value=_truncate(report.category or "N/A", _FIELD_LIMIT),
        inline=True,
    )
    embed.add_field(
        name="Created",
        value=report.created_at.strftime("%Y-%m-%d %H:%M UTC"),
        inline=False,
    )
    embed.set_footer(text=f"Report #{report.id} · via {report.source.value}")
    return embed


__all__ = ["REPORT_COLOUR", "build_report_embed"]
