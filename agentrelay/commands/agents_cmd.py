"""CLI handlers for agent commands."""

from __future__ import annotations

import click

from agentrelay.commands._helpers import get_context, run
from agentrelay.config import load_config
from agentrelay.infra.agents.base import supports_model_listing, supports_session_listing
from agentrelay.infra.agents.registry import UnknownAgentError, get_agent, list_agents
from agentrelay.infra.process import CommandExecutionError


@click.group("agents")
def agents_group():
    """Inspect supported agents."""
    pass


@agents_group.command("list")
def agents_list():
    """List supported agents and their capabilities."""
    config = load_config()
    for descriptor in list_agents():
        adapter = get_agent(descriptor.id)
        marker = "*" if descriptor.id == config.default_agent else " "
        model = config.agents.models.get(descriptor.id) or descriptor.default_model or "(default)"
        caps = []
        if supports_session_listing(adapter):
            caps.append("session-listing")
        if supports_model_listing(adapter):
            caps.append("model-listing")
        click.echo(f"{marker} {descriptor.id:<9} {descriptor.label:<9} model={model}"
                   + (f" [{', '.join(caps)}]" if caps else ""))


@agents_group.command("models")
@click.argument("agent")
def agents_models(agent: str):
    """List models AGENT can use, when its CLI supports it."""

    async def _models():
        ctx = await get_context()
        try:
            models = await ctx.agent_runner.list_models(agent)
            click.echo(models or f"{agent} cannot list models.")
        except (UnknownAgentError, CommandExecutionError) as e:
            raise click.ClickException(str(e)) from e
        finally:
            await ctx.close()

    run(_models())
