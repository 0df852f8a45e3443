"""sshd_config backup commands.

Backups are created automatically before every configuration change. These
commands list them and restore one on the operator's request.
"""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from sshauth.click_group import SSHAuthGroup
from sshauth.commands.cli_helpers import fail, resolve_sshd_config
from sshauth.modules.config_backup import BackupError, list_backups, parse_backup_timestamp, restore_backup

__all__ = ["backups_group"]


@click.group(name="backups", cls=SSHAuthGroup)
def backups_group():
    """List and restore sshd_config backups."""
    pass


@backups_group.command(name="list")
@click.option("--config-file", type=click.Path(dir_okay=False), help="sshd_config to inspect")
@click.pass_context
def backups_list(ctx: click.Context, config_file: str | None):
    """List backups of sshd_config, newest first.

    \b
    Examples:
        sshauth backups list
        sshauth backups list --config-file ./sshd_config
    """
    sshd_config = resolve_sshd_config(ctx, config_file)
    backups = list_backups(sshd_config)

    if not backups:
        click.echo(f"No backups found for {sshd_config}.")
        return

    table = Table(title=f"Backups of {sshd_config}")
    table.add_column("Created", style="cyan")
    table.add_column("Backup file")
    table.add_column("Size", justify="right")

    for backup in backups:
        created = parse_backup_timestamp(backup)
        table.add_row(
            created.strftime("%Y-%m-%d %H:%M:%S") if created else "?",
            str(backup),
            f"{backup.stat().st_size} B",
        )

    Console().print(table)
    click.echo(f"\nTotal: {len(backups)} backups")


@backups_group.command(name="restore")
@click.argument("backup", type=click.Path(exists=True, dir_okay=False))
@click.option("--config-file", type=click.Path(dir_okay=False), help="sshd_config to restore into")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def backups_restore(ctx: click.Context, backup: str, config_file: str | None, yes: bool):
    """Restore sshd_config from BACKUP.

    The current file is backed up first. The SSH service is not restarted;
    run your usual restart after checking the result.

    \b
    Examples:
        sudo sshauth backups restore /etc/ssh/sshd_config.backup.20261018093000
    """
    sshd_config = resolve_sshd_config(ctx, config_file)

    if not yes and not click.confirm(f"Overwrite {sshd_config} with {backup}?", default=False):
        click.echo("Cancelled.")
        return

    try:
        safety_backup = restore_backup(Path(backup), sshd_config)
    except BackupError as e:
        fail(str(e))

    click.secho(f"Restored {sshd_config} from {backup}", fg="green")
    click.echo(f"Previous contents saved to: {safety_backup}")
