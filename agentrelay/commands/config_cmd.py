"""CLI handlers for config commands."""

from __future__ import annotations

import json

import click

from agentrelay.config import DEFAULT_CONFIG_PATH, init_config, load_config


@click.group("config")
def config_group():
    """Manage configuration."""
    pass


@config_group.command("init")
def config_init():
    """Create default configuration file."""
    path = init_config()
    click.echo(f"Configuration created at: {path}")


@config_group.command("show")
def config_show():
    """Show current configuration."""
    config = load_config()
    agents = config.agents
    click.echo(f"Config file: {config.config_path}")
    click.echo(f"  Default agent: {config.default_agent}")
    click.echo(f"  Time zone: {config.time_zone}")
    click.echo(f"  State dir: {config.resolved_state_dir}")
    click.echo(f"  Timeout: {agents.timeout:g}s, max buffer: {agents.max_buffer} bytes")
    click.echo(f"  File instructions every: {agents.file_instructions_every} turns")
    click.echo(f"  Thinking: {agents.thinking or '(default)'}")
    click.echo(f"  Images: {config.files.resolved_image_dir}")
    click.echo(f"  Documents: {config.files.resolved_document_dir}")
    if config.mongodb.enabled:
        click.echo(f"  MongoDB: {config.mongodb.uri}/{config.mongodb.database}")
    else:
        click.echo("  MongoDB: disabled (sessions kept in memory only)")

    if agents.models:
        click.echo("\n  Models:")
        for agent_id, model in agents.models.items():
            click.echo(f"    {agent_id}: {model}")


@config_group.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str):
    """Set a configuration value.

    Modifies the TOML config file. Key uses dot notation, e.g.:
    general.default_agent, agents.thinking, agents.models.codex
    """
    import tomli_w

    path = DEFAULT_CONFIG_PATH
    if not path.exists():
        click.echo("No config file found. Run 'agentrelay config init' first.", err=True)
        return

    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore[no-redef]

    with open(path, "rb") as f:
        data = tomllib.load(f)

    parts = key.split(".")
    target = data
    for part in parts[:-1]:
        target = target.setdefault(part, {})

    final_key = parts[-1]
    if value.lower() in ("true", "false"):
        target[final_key] = value.lower() == "true"
    elif value.isdigit():
        target[final_key] = int(value)
    elif value.startswith("[") or value.startswith("{"):
        try:
            target[final_key] = json.loads(value)
        except json.JSONDecodeError:
            target[final_key] = value
    else:
        target[final_key] = value

    with open(path, "wb") as f:
        tomli_w.dump(data, f)

    click.echo(f"Set {key} = {value}")
