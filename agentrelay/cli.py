"""Click CLI definitions - main entry point."""

from __future__ import annotations

import logging
import sys

import click

from agentrelay.commands.agents_cmd import agents_group
from agentrelay.commands.chat_cmd import chat_group
from agentrelay.commands.config_cmd import config_group
from agentrelay.commands.sessions_cmd import sessions_group


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, debug: bool) -> None:
    """agentrelay - hold conversations with command-line AI agents."""
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


cli.add_command(chat_group, "chat")
cli.add_command(agents_group, "agents")
cli.add_command(sessions_group, "sessions")
cli.add_command(config_group, "config")


if __name__ == "__main__":
    cli()
