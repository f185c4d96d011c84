"""Tests for the click command line."""

import json
from unittest.mock import AsyncMock

import pytest
from click.testing import CliRunner
from pymongo.errors import ServerSelectionTimeoutError

from agentrelay.cli import cli
from agentrelay.config import load_config
from agentrelay.infra import codex_sessions
from agentrelay.infra.process import CommandExecutionError

SESSION_ID = "019a0000-1111-7222-8333-444455556666"


@pytest.fixture
def runner(monkeypatch, tmp_path):
    for name in ("MONGODB_URI", "AGENTRELAY_DB", "AGENTRELAY_AGENT", "AGENTRELAY_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    config_path = tmp_path / "config.toml"
    monkeypatch.setattr("agentrelay.config.DEFAULT_CONFIG_PATH", config_path)
    monkeypatch.setattr("agentrelay.commands.config_cmd.DEFAULT_CONFIG_PATH", config_path)
    return CliRunner()


@pytest.fixture
def sessions_dir(tmp_path, monkeypatch):
    root = tmp_path / "sessions" / "2025" / "03" / "04"
    root.mkdir(parents=True)
    meta = {
        "type": "session_meta",
        "payload": {"id": SESSION_ID, "timestamp": "2025-03-04T09:15:00Z", "cwd": "/work/app"},
    }
    (root / f"rollout-2025-03-04T09-15-00-{SESSION_ID}.jsonl").write_text(json.dumps(meta) + "\n")
    monkeypatch.setattr(codex_sessions, "DEFAULT_SESSIONS_DIR", tmp_path / "sessions")
    return tmp_path / "sessions"


class TestAgentsCommands:
    def test_agents_list_marks_default(self, runner, monkeypatch):
        monkeypatch.setenv("AGENTRELAY_AGENT", "gemini")
        result = runner.invoke(cli, ["agents", "list"])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert len(lines) == 4
        assert lines[2].startswith("* gemini")
        assert "session-listing" in lines[2]
        assert "model=opencode/gpt-5-nano" in lines[3]


class TestSessionsCommands:
    def test_sessions_list(self, runner, sessions_dir):
        result = runner.invoke(cli, ["sessions", "list"])
        assert result.exit_code == 0
        assert SESSION_ID in result.output
        assert "2025-03-04 09:15" in result.output
        assert "/work/app" in result.output

    def test_sessions_list_empty(self, runner, sessions_dir):
        result = runner.invoke(cli, ["sessions", "list", "--cwd", "/elsewhere"])
        assert result.exit_code == 0
        assert "No sessions found." in result.output

    def test_attach_rejects_bad_id(self, runner):
        result = runner.invoke(cli, ["sessions", "attach", "42", "not a session"])
        assert result.exit_code != 0
        assert "Not a Codex session id" in result.output


def codex_reply(thread_id="t1", text="hi"):
    return "\n".join([
        json.dumps({"type": "thread.started", "thread_id": thread_id}),
        json.dumps({"type": "item.completed", "item": {"type": "message", "text": text}}),
    ])


def call_command(call):
    return call.args[1][1]


@pytest.fixture
def fake_exec(monkeypatch):
    fake = AsyncMock(return_value=codex_reply())
    monkeypatch.setattr("agentrelay.infra.process.exec_local", fake)
    return fake


class TestChatCommands:
    def test_send_prints_reply(self, runner, fake_exec):
        result = runner.invoke(cli, ["chat", "send", "42", "hello", "--topic", "7"])
        assert result.exit_code == 0
        assert result.output.strip() == "hi"
        call = fake_exec.call_args
        assert call_command(call).startswith("codex exec --json")
        assert "hello" in call.kwargs["env"]["AGENT_PROMPT"]

    def test_send_with_agent_and_image(self, runner, fake_exec):
        fake_exec.return_value = json.dumps({"response": "nice picture"})
        result = runner.invoke(
            cli, ["chat", "send", "42", "look", "--agent", "gemini", "--image", "/tmp/cat.png"]
        )
        assert result.exit_code == 0
        assert "nice picture" in result.output
        first_call = fake_exec.await_args_list[0]
        assert call_command(first_call).startswith("gemini ")
        assert "- /tmp/cat.png" in first_call.kwargs["env"]["AGENT_PROMPT"]

    def test_send_failure_is_one_error_line(self, runner, fake_exec):
        fake_exec.side_effect = CommandExecutionError(
            "Command failed with exit code 2: bash", stderr="bad flag", returncode=2
        )
        result = runner.invoke(cli, ["chat", "send", "42", "hello"])
        assert result.exit_code == 1
        assert "Error: Command failed with exit code 2: bash" in result.output
        assert "Traceback" not in result.output

    def test_send_unknown_agent(self, runner, fake_exec):
        result = runner.invoke(cli, ["chat", "send", "42", "hello", "--agent", "nope"])
        assert result.exit_code == 1
        assert "Error: Unknown agent: nope" in result.output
        fake_exec.assert_not_awaited()

    def test_once(self, runner, fake_exec):
        result = runner.invoke(cli, ["chat", "once", "ping"])
        assert result.exit_code == 0
        assert result.output.strip() == "hi"
        assert fake_exec.call_args.kwargs["env"]["AGENT_PROMPT"] == "ping"

    def test_reset(self, runner, fake_exec):
        result = runner.invoke(cli, ["chat", "reset", "42", "--topic", "7"])
        assert result.exit_code == 0
        assert "Session reset for Codex in 42:7." in result.output

    def test_agent_set_and_clear(self, runner):
        result = runner.invoke(cli, ["chat", "agent", "42", "gemini"])
        assert result.exit_code == 0
        assert "Agent for 42:root: Gemini" in result.output

        result = runner.invoke(cli, ["chat", "agent", "42", "--clear"])
        assert result.exit_code == 0
        assert "Agent for 42:root: Codex" in result.output

    def test_agent_unknown(self, runner):
        result = runner.invoke(cli, ["chat", "agent", "42", "nope"])
        assert result.exit_code == 1
        assert "Error: Unknown agent: nope" in result.output

    def test_unreachable_mongo_exits_cleanly(self, runner, monkeypatch):
        monkeypatch.setattr(
            "agentrelay.context.AppContext.initialize",
            AsyncMock(side_effect=ServerSelectionTimeoutError("no servers available")),
        )
        result = runner.invoke(cli, ["chat", "once", "ping"])
        assert result.exit_code == 1
        assert "Could not initialize agentrelay: no servers available" in result.output


class TestConfigCommands:
    def test_set_requires_init(self, runner):
        result = runner.invoke(cli, ["config", "set", "agents.thinking", "high"])
        assert "No config file found" in result.output

    def test_init_then_set_project_keys(self, runner, tmp_path):
        assert runner.invoke(cli, ["config", "init"]).exit_code == 0
        for key, value in [
            ("agents.models.codex", "gpt-5.2"),
            ("general.default_agent", "claude"),
            ("agents.timeout", "30"),
            ("mongodb.enabled", "false"),
        ]:
            result = runner.invoke(cli, ["config", "set", key, value])
            assert result.exit_code == 0
            assert f"Set {key} = {value}" in result.output

        config = load_config(tmp_path / "config.toml")
        assert config.agents.models == {"codex": "gpt-5.2"}
        assert config.default_agent == "claude"
        assert config.agents.timeout == 30.0
        assert config.mongodb.enabled is False

        shown = runner.invoke(cli, ["config", "show"])
        assert "Default agent: claude" in shown.output
        assert "codex: gpt-5.2" in shown.output
