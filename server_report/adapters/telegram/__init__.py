"""Telegram adapter: `/start`, `/report`, `/status`, `/list` and `/help`."""

from __future__ import annotations

from .bot import build_application, main

__all__ = ["build_application", "main"]
