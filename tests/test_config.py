"""Tests for settings loading."""
from __future__ import annotations

from server_report.config import DEFAULT_SETTINGS_PATH, Settings, SettingsLoader, database_path


def test_packaged_settings_match_defaults():
    settings = SettingsLoader(DEFAULT_SETTINGS_PATH).load()

    assert settings == Settings.from_dict({})
    assert settings.title_min_length == 5
    assert settings.description_min_length == 10
    assert settings.bot_list_limit == 10
    assert settings.discord_command_prefix == "!"
    assert settings.web_auth_header == "X-User-Id"
    assert settings.web_port == 3000


def test_loader_reads_custom_file_and_caches(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("validation:\n  title_min_length: 8\nbots:\n  list_limit: 3\n", encoding="utf-8")
    loader = SettingsLoader(path)

    settings = loader.load()
    assert settings.title_min_length == 8
    assert settings.bot_list_limit == 3
    assert settings.description_min_length == 10

    path.write_text("validation:\n  title_min_length: 2\n", encoding="utf-8")
    assert loader.load() is settings
    assert loader.load(force=True).title_min_length == 2


def test_environment_overrides_paths(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("web:\n  port: 8080\n", encoding="utf-8")
    monkeypatch.setenv("SERVER_REPORT_SETTINGS", str(path))
    monkeypatch.setenv("SERVER_REPORT_DB", str(tmp_path / "reports.db"))

    assert SettingsLoader().path == path
    assert SettingsLoader().load().web_port == 8080
    assert database_path() == tmp_path / "reports.db"


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert SettingsLoader(path).load() == Settings.from_dict({})
