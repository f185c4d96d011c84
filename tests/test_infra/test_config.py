"""Tests for config loading."""

from pathlib import Path

import pytest

from agentrelay.config import AppConfig, FilesConfig, init_config, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("MONGODB_URI", "AGENTRELAY_DB", "AGENTRELAY_AGENT", "AGENTRELAY_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


class TestConfig:
    def test_load_defaults(self):
        """Loading with no file should return defaults."""
        config = load_config(Path("/nonexistent/config.toml"))
        assert config.default_agent == "codex"
        assert config.time_zone == "UTC"
        assert config.agents.timeout == 600.0
        assert config.agents.max_buffer == 10 * 1024 * 1024
        assert config.agents.file_instructions_every == 10
        assert config.agents.models == {}
        assert config.mongodb.enabled is False
        assert config.mongodb.database == "agentrelay"

    def test_resolved_paths(self):
        config = AppConfig(state_dir="~/relay-state")
        assert "~" not in str(config.resolved_state_dir)
        files = FilesConfig(image_dir="~/imgs")
        assert files.resolved_image_dir.startswith("/")

    def test_init_config(self, tmp_path):
        path = tmp_path / "nested" / "config.toml"
        result = init_config(path)
        assert result == path
        assert path.exists()
        config = load_config(path)
        assert config.config_path == path
        assert config.default_agent == "codex"

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            '[general]\ndefault_agent = "claude"\ntime_zone = "Europe/Paris"\n'
            "[agents]\ntimeout = 30\nfile_instructions_every = 0\n"
            '[agents.models]\ncodex = "gpt-5.2"\nclaude = ""\n'
            "[mongodb]\nenabled = true\n"
        )
        config = load_config(path)
        assert config.default_agent == "claude"
        assert config.time_zone == "Europe/Paris"
        assert config.agents.timeout == 30.0
        assert config.agents.file_instructions_every == 1
        assert config.agents.models == {"codex": "gpt-5.2"}
        assert config.mongodb.enabled is True

    def test_env_overlay(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URI", "mongodb://db:27017")
        monkeypatch.setenv("AGENTRELAY_DB", "relay_test")
        monkeypatch.setenv("AGENTRELAY_AGENT", " Gemini ")
        monkeypatch.setenv("AGENTRELAY_TIMEOUT", "12.5")
        config = load_config(Path("/nonexistent/config.toml"))
        assert config.mongodb.uri == "mongodb://db:27017"
        assert config.mongodb.enabled is True
        assert config.mongodb.database == "relay_test"
        assert config.default_agent == "gemini"
        assert config.agents.timeout == 12.5

    def test_invalid_timeout_env_ignored(self, monkeypatch):
        monkeypatch.setenv("AGENTRELAY_TIMEOUT", "soon")
        config = load_config(Path("/nonexistent/config.toml"))
        assert config.agents.timeout == 600.0
