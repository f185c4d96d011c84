"""Tests for local process execution."""

import asyncio
import os
import shlex

import pytest

from agentrelay.infra.process import (
    CommandExecutionError,
    CommandTimeoutError,
    exec_local,
    prepare_agent_command,
    wrap_command_with_pty,
)


class TestExecLocal:
    @pytest.mark.asyncio
    async def test_returns_stdout(self):
        output = await exec_local("sh", ["-c", "echo hello"])
        assert output == "hello\n"

    @pytest.mark.asyncio
    async def test_env_is_merged(self):
        output = await exec_local(
            "sh", ["-c", 'printf %s "$AGENT_PROMPT"'], env={"AGENT_PROMPT": "it's \"quoted\""}
        )
        assert output == "it's \"quoted\""

    @pytest.mark.asyncio
    async def test_stdin_is_closed(self):
        output = await exec_local("sh", ["-c", "cat; echo done"], timeout=5)
        assert output == "done\n"

    @pytest.mark.asyncio
    async def test_non_zero_exit_carries_output(self):
        with pytest.raises(CommandExecutionError) as exc_info:
            await exec_local("sh", ["-c", "echo partial; echo oops >&2; exit 3"])
        err = exc_info.value
        assert not isinstance(err, CommandTimeoutError)
        assert err.returncode == 3
        assert err.stdout == "partial\n"
        assert err.stderr == "oops\n"

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        with pytest.raises(CommandTimeoutError) as exc_info:
            await exec_local("sh", ["-c", "echo started; exec sleep 10"], timeout=0.5)
        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_output_cap(self):
        with pytest.raises(CommandExecutionError) as exc_info:
            await exec_local("sh", ["-c", "exec head -c 100000 /dev/zero"], max_buffer=1000)
        assert len(exc_info.value.stdout) == 1000

    @pytest.mark.asyncio
    async def test_cancel_kills_process(self, tmp_path):
        pid_file = tmp_path / "pid"
        task = asyncio.create_task(
            exec_local("sh", ["-c", f"echo $$ > {pid_file}; exec sleep 30"], timeout=60)
        )
        for _ in range(100):
            if pid_file.exists() and pid_file.read_text().strip():
                break
            await asyncio.sleep(0.05)
        pid = int(pid_file.read_text())

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)

    @pytest.mark.asyncio
    async def test_bash_login_shell_command(self):
        output = await exec_local(
            "bash", ["-lc", 'echo "$AGENT_PROMPT"'], env={"AGENT_PROMPT": "hi $HOME"}
        )
        assert output == "hi $HOME\n"


class TestPrepareAgentCommand:
    def test_plain(self):
        assert prepare_agent_command("codex exec 'x'") == "codex exec 'x'"

    def test_merge_stderr(self):
        assert prepare_agent_command("opencode run", merge_stderr=True) == "opencode run 2>&1"

    def test_pty_wrap_round_trips(self):
        command = "claude -p 'it'\\''s'"
        wrapped = wrap_command_with_pty(command)
        tokens = shlex.split(wrapped)
        assert tokens[:4] == ["script", "-q", "-e", "-c"]
        assert tokens[4] == command
        assert tokens[5] == "/dev/null"

    def test_pty_then_merge(self):
        result = prepare_agent_command("x", needs_pty=True, merge_stderr=True)
        assert result.startswith("script -q -e -c 'x'")
        assert result.endswith(" 2>&1")
