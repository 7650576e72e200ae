"""Discord adapter: `!report` and `!status` prefix commands."""

from __future__ import annotations

from .bot import build_bot, main

__all__ = ["build_bot", "main"]
