"""Tests for YAML config loading and environment overrides."""
import pytest
from pydantic import ValidationError

from livechat.chat.engine import DEFAULT_ROOM_NAME
from livechat.chat.history import API_HISTORY_SIZE, JOIN_HISTORY_SIZE, MAX_HISTORY
from livechat.config import AppConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("LIVECHAT_SETTINGS", raising=False)


class TestDefaults:
    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = load_config(settings_path=tmp_path / "missing.yaml")

        assert cfg == AppConfig()
        assert cfg.server.port == 3000
        assert cfg.server.allowed_origins == ["*"]
        assert cfg.room.max_history == 1000
        assert cfg.room.join_history == 50
        assert cfg.room.api_history == 20

    def test_empty_file_gives_defaults(self, tmp_path):
        settings_file = tmp_path / "livechat.settings.yaml"
        settings_file.write_text("", encoding="utf-8")

        assert load_config(settings_path=settings_file) == AppConfig()

    def test_room_defaults_match_engine_constants(self):
        room = AppConfig().room

        assert room.name == DEFAULT_ROOM_NAME
        assert room.max_history == MAX_HISTORY
        assert room.join_history == JOIN_HISTORY_SIZE
        assert room.api_history == API_HISTORY_SIZE


class TestYamlLoading:
    def test_sections_are_read(self, tmp_path):
        settings_file = tmp_path / "livechat.settings.yaml"
        settings_file.write_text(
            "server:\n"
            "  port: 8080\n"
            "  allowed_origins: [\"https://chat.example.com\"]\n"
            "logging:\n"
            "  level: debug\n"
            "room:\n"
            "  name: Lobby\n"
            "  max_history: 200\n",
            encoding="utf-8",
        )

        cfg = load_config(settings_path=settings_file)

        assert cfg.server.port == 8080
        assert cfg.server.allowed_origins == ["https://chat.example.com"]
        assert cfg.logging.level == "debug"
        assert cfg.room.name == "Lobby"
        assert cfg.room.max_history == 200
        assert cfg.room.join_history == 50

    def test_settings_path_from_env(self, tmp_path, monkeypatch):
        settings_file = tmp_path / "custom.yaml"
        settings_file.write_text("room:\n  name: FromEnv\n", encoding="utf-8")
        monkeypatch.setenv("LIVECHAT_SETTINGS", str(settings_file))

        assert load_config().room.name == "FromEnv"

    def test_invalid_history_bound_rejected(self, tmp_path):
        settings_file = tmp_path / "livechat.settings.yaml"
        settings_file.write_text("room:\n  max_history: 0\n", encoding="utf-8")

        with pytest.raises(ValidationError):
            load_config(settings_path=settings_file)


class TestPortOverride:
    def test_port_env_overrides_file(self, tmp_path, monkeypatch):
        settings_file = tmp_path / "livechat.settings.yaml"
        settings_file.write_text("server:\n  port: 8080\n", encoding="utf-8")
        monkeypatch.setenv("PORT", "5000")

        assert load_config(settings_path=settings_file).server.port == 5000

    def test_port_env_without_server_section(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PORT", "4321")

        cfg = load_config(settings_path=tmp_path / "missing.yaml")

        assert cfg.server.port == 4321
        assert cfg.server.host == "0.0.0.0"
