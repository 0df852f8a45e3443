"""Shared helpers for sshauth CLI commands."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from sshauth.config_manager import ConfigError, ConfigManager, SSHAuthConfig
from sshauth.modules.auth_profiles import AuthProfile, SessionResult

logger = logging.getLogger(__name__)


def get_config(ctx: click.Context) -> SSHAuthConfig:
    """Configuration loaded by the main group (defaults if none was loaded)."""
    obj = ctx.find_object(dict) or {}
    config = obj.get("config")
    if config is None:
        try:
            config = ConfigManager.load_config(obj.get("config_path"))
        except ConfigError as e:
            fail(str(e))
        obj["config"] = config
    return config


def resolve_sshd_config(ctx: click.Context, cli_value: str | None) -> Path:
    """sshd_config path from --config-file, else from the tool config."""
    obj = ctx.find_object(dict) or {}
    try:
        return ConfigManager.get_sshd_config_path(cli_value, obj.get("config_path"))
    except ConfigError as e:
        fail(str(e))


def fail(message: str, exit_code: int = 1) -> NoReturn:
    """Print an error to stderr and exit."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(exit_code)


def print_session(session: SessionResult, profile: AuthProfile | None = None) -> None:
    """Report what a mutation session did."""
    click.secho("SSH config file backed up to: ", fg="green", nl=False)
    click.secho(str(session.backup_path), fg="yellow")

    if session.changed:
        click.secho("SSH configuration updated!", fg="green")
    else:
        click.secho("SSH configuration already up to date.", fg="green")

    click.secho("Changes made:", fg="yellow")
    if profile is not None and profile.changes:
        for change in profile.changes:
            click.echo(f"  - {change}")
    for applied in session.applied:
        status = "set" if applied.changed else "unchanged"
        click.echo(f"  {applied.line:<40} ({status}, line {applied.line_number})")

    if session.restart is None:
        click.secho("SSH service not restarted (--no-restart).", fg="yellow")
        return

    if session.restart.success:
        click.secho("SSH service restarted successfully!", fg="green")
    else:
        click.secho("Failed to restart SSH service. Please check the configuration.", fg="red", err=True)
        if session.restart.stderr:
            click.echo(session.restart.stderr.strip(), err=True)
        click.secho("It is recommended to restore the backup: ", fg="yellow", nl=False, err=True)
        click.secho(session.restore_command, fg="yellow", err=True)
        click.echo(
            f"  or: sshauth backups restore {session.backup_path} --config-file {session.config_path}",
            err=True,
        )


__all__ = ["fail", "get_config", "print_session", "resolve_sshd_config"]
