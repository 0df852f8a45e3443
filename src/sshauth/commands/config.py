"""Tool configuration commands."""

from __future__ import annotations

import click

from sshauth.click_group import SSHAuthGroup
from sshauth.commands.cli_helpers import fail
from sshauth.config_manager import ConfigError, ConfigManager, SSHAuthConfig

__all__ = ["config_group"]


@click.group(name="config", cls=SSHAuthGroup)
def config_group():
    """Show or change sshauth settings (~/.sshauth/config.toml)."""
    pass


@config_group.command(name="show")
@click.pass_context
def config_show(ctx: click.Context):
    """Show the effective configuration."""
    config_path = (ctx.find_object(dict) or {}).get("config_path")

    try:
        config = ConfigManager.load_config(config_path)
    except ConfigError as e:
        fail(str(e))

    click.echo(f"Config file: {ConfigManager.get_config_path(config_path)}")
    for key, value in config.to_dict().items():
        click.echo(f"  {key} = {value}")


@config_group.command(name="set")
@click.argument("key", type=click.Choice(SSHAuthConfig.field_names()))
@click.argument("value", type=str)
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str):
    """Set KEY to VALUE in the configuration file.

    \b
    Examples:
        sshauth config set service_name ssh
        sshauth config set sshd_config_path /etc/ssh/sshd_config
        sshauth config set connect_timeout 20
    """
    config_path = (ctx.find_object(dict) or {}).get("config_path")

    try:
        config = ConfigManager.update_config(config_path, **{key: value})
    except ConfigError as e:
        fail(str(e))

    click.echo(f"Set {key} = {getattr(config, key)}")
