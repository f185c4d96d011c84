"""CLI handlers for local Codex session commands."""

from __future__ import annotations

import click

from agentrelay.commands._helpers import get_context, make_scope, run
from agentrelay.infra import codex_sessions
from agentrelay.models.agent import AgentType


@click.group("sessions")
def sessions_group():
    """Browse and attach local Codex sessions."""
    pass


@sessions_group.command("list")
@click.option("--cwd", default="", help="Only sessions started under this directory")
@click.option("--limit", "-l", default=codex_sessions.DEFAULT_LIMIT, help="Max results")
def sessions_list(cwd: str, limit: int):
    """List recent Codex sessions, newest first."""
    sessions = codex_sessions.list_local_sessions(limit=limit, cwd=cwd)
    if not sessions:
        click.echo("No sessions found.")
        return
    for s in sessions:
        when = s.timestamp.replace("T", " ").replace("Z", "")[:16]
        click.echo(f"  {s.id}  {when}  {s.cwd or '-'}")
        if s.display_name:
            click.echo(f"      {s.display_name}")


@sessions_group.command("attach")
@click.argument("chat_id")
@click.argument("session_id")
@click.option("--topic", "-t", default="", help="Topic/thread inside the chat")
def sessions_attach(chat_id: str, session_id: str, topic: str):
    """Continue Codex session SESSION_ID from conversation CHAT_ID."""
    if not codex_sessions.is_valid_session_id(session_id):
        raise click.ClickException(f"Not a Codex session id: {session_id}")

    async def _attach():
        ctx = await get_context()
        try:
            scope = make_scope(chat_id, topic)
            key = await ctx.agent_runner.attach_session(
                scope, session_id, agent_id=AgentType.CODEX.value
            )
            click.echo(f"Attached {session_id} to {key}")
        finally:
            await ctx.close()

    run(_attach())

    preview = codex_sessions.get_last_message(session_id)
    if preview:
        click.echo(f"Last message: {preview[:240]}")
