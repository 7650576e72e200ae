"""Configuration loading utilities for ServerReport."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml


DEFAULT_SETTINGS_PATH = Path(__file__).parent / "data" / "settings.yaml"


@dataclass(frozen=True)
class Settings:
    """Typed view over the settings YAML file."""

    title_min_length: int
    description_min_length: int
    bot_list_limit: int
    discord_command_prefix: str
    web_auth_header: str
    web_host: str
    web_port: int

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Settings":
        validation = data.get("validation", {}) or {}
        bots = data.get("bots", {}) or {}
        web = data.get("web", {}) or {}
        return Settings(
            title_min_length=int(validation.get("title_min_length", 5)),
            description_min_length=int(validation.get("description_min_length", 10)),
            bot_list_limit=int(bots.get("list_limit", 10)),
            discord_command_prefix=str(bots.get("discord_prefix", "!")),
            web_auth_header=str(web.get("auth_header", "X-User-Id")),
            web_host=str(web.get("host", "0.0.0.0")),
            web_port=int(web.get("port", 3000)),
        )


class SettingsLoader:
    """Loads and caches settings from YAML configuration files."""

    def __init__(self, path: Path | None = None) -> None:
        env_path = os.environ.get("SERVER_REPORT_SETTINGS")
        self._path = path or (Path(env_path) if env_path else DEFAULT_SETTINGS_PATH)
        self._cache: Settings | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self, force: bool = False) -> Settings:
        if self._cache is not None and not force:
            return self._cache
        with self._path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        self._cache = Settings.from_dict(data)
        return self._cache


def get_settings() -> Settings:
    """Convenience accessor for default settings."""

    return SettingsLoader().load()


def database_path() -> Path:
    """Location of the shared report database."""

    return Path(os.environ.get("SERVER_REPORT_DB", "server_report.db"))


__all__ = ["Settings", "SettingsLoader", "database_path", "get_settings"]
