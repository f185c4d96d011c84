"""Tests for BootstrapService."""

import pytest

from agentrelay.services.bootstrap import BootstrapService


class TestBootstrapService:
    @pytest.mark.asyncio
    async def test_header_only_when_no_files(self, tmp_path):
        service = BootstrapService(tmp_path, config_path="/etc/relay.toml")
        context = await service.build_bootstrap_context("1:root:codex")
        lines = context.splitlines()
        assert lines[0] == "Bootstrap config:"
        assert "Config file: /etc/relay.toml" in lines
        assert f"Soul file: {tmp_path / 'soul.md'}" in lines
        assert "Soul (soul.md):" not in context
        assert lines[-1] == "Conversation: 1:root:codex"

    @pytest.mark.asyncio
    async def test_includes_existing_files(self, tmp_path):
        (tmp_path / "soul.md").write_text("Be kind.\n")
        (tmp_path / "memory.md").write_text("User likes tea.")
        service = BootstrapService(tmp_path)
        context = await service.build_bootstrap_context()
        assert "Config file:" not in context
        assert "Soul (soul.md):\nBe kind.\nEnd of soul." in context
        assert "Memory (memory.md):\nUser likes tea.\nEnd of memory." in context
        assert "Tools (tools.md):" not in context
        assert context.index("Soul (soul.md)") < context.index("Memory (memory.md)")
        assert "Conversation:" not in context

    @pytest.mark.asyncio
    async def test_empty_file_skipped(self, tmp_path):
        (tmp_path / "tools.md").write_text("   \n")
        context = await BootstrapService(tmp_path).build_bootstrap_context()
        assert "Tools (tools.md):" not in context
