"""SSH key management commands.

This module provides commands for creating SSH key pairs for local users and
exporting the private key as a PEM file.
"""

from __future__ import annotations

import getpass

import click

from sshauth.click_group import SSHAuthGroup
from sshauth.commands.cli_helpers import fail, get_config
from sshauth.modules.prerequisites import PrerequisiteChecker, PrerequisiteError
from sshauth.modules.ssh_keys import SSHKeyError, SSHKeyManager

__all__ = ["keys_group"]


@click.group(name="keys", cls=SSHAuthGroup)
def keys_group():
    """SSH key pair management.

    Create key pairs for local users and authorize them for login.
    """
    pass


@keys_group.command(name="create")
@click.argument("username", type=str)
@click.option("--name", "key_name", default=SSHKeyManager.DEFAULT_KEY_NAME, show_default=True,
              help="Key file name inside ~/.ssh")
@click.option("--force", is_flag=True, help="Overwrite an existing key with the same name")
@click.option("--pem", "export_pem", is_flag=True, help="Also export the private key as ~/<name>.pem")
@click.pass_context
def keys_create(ctx: click.Context, username: str, key_name: str, force: bool, export_pem: bool):
    """Create an SSH key pair for USERNAME.

    The public key is added to the user's authorized_keys.
    Creating a key for another user requires root.

    \b
    Examples:
        sshauth keys create deploy
        sshauth keys create deploy --name deploy_key --pem
        sudo sshauth keys create alice --force
    """
    config = get_config(ctx)

    try:
        PrerequisiteChecker.require_tools("keys")
        if username != getpass.getuser():
            PrerequisiteChecker.require_root()
    except PrerequisiteError as e:
        fail(str(e))

    click.secho("Generating SSH key pair...", fg="green")

    try:
        pair = SSHKeyManager.create_key_pair(
            username,
            key_name=key_name,
            overwrite=force,
            export_pem=export_pem,
            key_type=config.key_type,
            key_bits=config.key_bits,
        )
    except SSHKeyError as e:
        fail(str(e))

    click.secho("SSH key pair created successfully!", fg="green")
    click.echo(f"Private key: {click.style(str(pair.private_path), fg='yellow')}")
    click.echo(f"Public key: {click.style(str(pair.public_path), fg='yellow')}")

    if pair.authorized:
        click.secho("Public key added to authorized_keys.", fg="green")
    else:
        click.secho("Public key was already in authorized_keys.", fg="yellow")

    if pair.pem_path:
        click.echo(
            f"{click.style('Private key exported as PEM file: ', fg='green')}"
            f"{click.style(str(pair.pem_path), fg='yellow')}"
        )
