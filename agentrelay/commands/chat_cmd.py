"""CLI handlers for chat commands."""

from __future__ import annotations

import click

from agentrelay.commands._helpers import get_context, make_scope, run
from agentrelay.infra.agents.registry import UnknownAgentError, get_agent_label
from agentrelay.infra.process import CommandExecutionError
from agentrelay.models.conversation import TurnOptions


@click.group("chat")
def chat_group():
    """Talk to agents in a conversation."""
    pass


@chat_group.command("send")
@click.argument("chat_id")
@click.argument("prompt")
@click.option("--topic", "-t", default="", help="Topic/thread inside the chat")
@click.option("--agent", "-a", default="", help="Agent for this turn only")
@click.option("--image", "images", multiple=True, help="Attached image path")
@click.option("--document", "documents", multiple=True, help="Attached document path")
def chat_send(
    chat_id: str,
    prompt: str,
    topic: str,
    agent: str,
    images: tuple[str, ...],
    documents: tuple[str, ...],
):
    """Send PROMPT to the conversation's agent and print the reply."""

    async def _send():
        ctx = await get_context()
        try:
            reply = await ctx.agent_runner.submit_turn(
                make_scope(chat_id, topic),
                prompt,
                TurnOptions(agent_id=agent, image_paths=images, document_paths=documents),
            )
            click.echo(reply)
        except (UnknownAgentError, CommandExecutionError) as e:
            raise click.ClickException(str(e)) from e
        finally:
            await ctx.close()

    run(_send())


@chat_group.command("once")
@click.argument("prompt")
def chat_once(prompt: str):
    """Run PROMPT on the default agent without any session."""

    async def _once():
        ctx = await get_context()
        try:
            click.echo(await ctx.agent_runner.run_one_shot(prompt))
        except (UnknownAgentError, CommandExecutionError) as e:
            raise click.ClickException(str(e)) from e
        finally:
            await ctx.close()

    run(_once())


@chat_group.command("reset")
@click.argument("chat_id")
@click.option("--topic", "-t", default="", help="Topic/thread inside the chat")
def chat_reset(chat_id: str, topic: str):
    """Start a fresh agent session for the conversation."""

    async def _reset():
        ctx = await get_context()
        try:
            scope = make_scope(chat_id, topic)
            agent_id = ctx.agent_runner.resolve_agent_id(scope)
            await ctx.agent_runner.reset(scope, agent_id)
            click.echo(f"Session reset for {get_agent_label(agent_id)} in {scope.topic_key}.")
        finally:
            await ctx.close()

    run(_reset())


@chat_group.command("agent")
@click.argument("chat_id")
@click.argument("agent", required=False, default="")
@click.option("--topic", "-t", default="", help="Topic/thread inside the chat")
@click.option("--clear", is_flag=True, help="Go back to the default agent")
def chat_agent(chat_id: str, agent: str, topic: str, clear: bool):
    """Show or set the agent used by a conversation."""

    async def _agent():
        ctx = await get_context()
        try:
            scope = make_scope(chat_id, topic)
            runner = ctx.agent_runner
            if clear:
                await runner.clear_agent_override(scope)
            elif agent:
                try:
                    await runner.set_agent_override(scope, agent)
                except UnknownAgentError as e:
                    raise click.ClickException(str(e)) from e
            current = runner.resolve_agent_id(scope)
            click.echo(f"Agent for {scope.topic_key}: {get_agent_label(current)}")
        finally:
            await ctx.close()

    run(_agent())
