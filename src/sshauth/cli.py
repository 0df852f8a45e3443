"""CLI entry point for sshauth.

Commands:
    sshauth enforce-keys         # Key-only authentication
    sshauth allow-password       # Re-enable password authentication
    sshauth set NAME VALUE       # Apply arbitrary sshd settings
    sshauth status               # Show effective authentication settings
    sshauth keys create USER     # Create a key pair for a local user
    sshauth test-connection HOST # Check that a key logs in
    sshauth backups list         # List sshd_config backups
    sshauth config show          # Show tool configuration
"""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from sshauth import __version__
from sshauth.click_group import SSHAuthGroup
from sshauth.commands import backups_group, config_group, keys_group
from sshauth.commands.cli_helpers import fail, get_config, print_session, resolve_sshd_config
from sshauth.modules.auth_profiles import (
    ALLOW_PASSWORD,
    AUTH_SETTING_NAMES,
    KEY_ONLY,
    AuthProfile,
    AuthProfileManager,
    Setting,
)
from sshauth.modules.config_backup import BackupError
from sshauth.modules.connection_tester import ConnectionTester, ConnectionTestError
from sshauth.modules.prerequisites import PrerequisiteChecker, PrerequisiteError
from sshauth.modules.sshd_settings import SettingsError, read_effective_settings

logger = logging.getLogger(__name__)


@click.group(
    cls=SSHAuthGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              help="sshauth config file (default: ~/.sshauth/config.toml)")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: str | None) -> None:
    """sshauth - manage SSH host authentication policy.

    Switch the SSH daemon between key-only and password authentication,
    create key pairs for local users and check that a key logs in.

    \b
    AUTHENTICATION MODE:
        enforce-keys     Only allow public key authentication
        allow-password   Allow password authentication again
        set              Apply arbitrary sshd settings
        status           Show effective authentication settings

    \b
    KEYS AND CONNECTIVITY:
        keys create      Create a key pair for a local user
        test-connection  Check that a key logs in to a host

    \b
    BACKUPS AND CONFIGURATION:
        backups list     List sshd_config backups
        backups restore  Restore sshd_config from a backup
        config show      Show sshauth settings
        config set       Change an sshauth setting

    \b
    EXAMPLES:
        $ sudo sshauth keys create deploy --pem
        $ sshauth test-connection 192.0.2.10 -u deploy -k /home/deploy/id_rsa.pem
        $ sudo sshauth enforce-keys
        $ sudo sshauth allow-password

    Every change to sshd_config is preceded by a backup at
    <sshd_config>.backup.<YYYYMMDDHHMMSS>. Keep your current SSH session
    open until key login has been verified in a new one.
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


def _run_session(
    ctx: click.Context,
    settings: list[Setting] | tuple[Setting, ...],
    config_file: str | None,
    no_restart: bool,
    profile: AuthProfile | None = None,
) -> None:
    config = get_config(ctx)
    sshd_config = resolve_sshd_config(ctx, config_file)

    if not no_restart:
        try:
            PrerequisiteChecker.require_root()
        except PrerequisiteError as e:
            fail(str(e))

    click.secho("Modifying SSH server configuration...", fg="yellow")

    try:
        session = AuthProfileManager.apply_settings(
            settings,
            sshd_config,
            restart=not no_restart,
            service_name=config.service_name,
        )
    except (SettingsError, BackupError) as e:
        fail(str(e))

    print_session(session, profile)

    if not session.success:
        ctx.exit(1)


@main.command(name="enforce-keys")
@click.option("--config-file", type=click.Path(dir_okay=False), help="sshd_config to modify")
@click.option("--no-restart", is_flag=True, help="Do not restart the SSH service")
@click.pass_context
def enforce_keys(ctx: click.Context, config_file: str | None, no_restart: bool):
    """Configure the SSH server to use only key authentication.

    Sets PasswordAuthentication no, PubkeyAuthentication yes,
    ChallengeResponseAuthentication no and UsePAM yes.

    \b
    Examples:
        sudo sshauth enforce-keys
        sshauth enforce-keys --config-file ./sshd_config --no-restart
    """
    click.secho(f"=== {KEY_ONLY.description} ===", fg="blue")
    _run_session(ctx, KEY_ONLY.settings, config_file, no_restart, KEY_ONLY)

    if not no_restart:
        click.secho(
            "IMPORTANT: Keep your SSH session open and test key-based login "
            "in a new session before closing this one.",
            fg="yellow",
        )


@main.command(name="allow-password")
@click.option("--config-file", type=click.Path(dir_okay=False), help="sshd_config to modify")
@click.option("--no-restart", is_flag=True, help="Do not restart the SSH service")
@click.pass_context
def allow_password(ctx: click.Context, config_file: str | None, no_restart: bool):
    """Revert the SSH server to allow password authentication.

    Sets PasswordAuthentication yes, PubkeyAuthentication yes,
    ChallengeResponseAuthentication yes and UsePAM yes.

    \b
    Examples:
        sudo sshauth allow-password
    """
    click.secho(f"=== {ALLOW_PASSWORD.description} ===", fg="blue")
    _run_session(ctx, ALLOW_PASSWORD.settings, config_file, no_restart, ALLOW_PASSWORD)


@main.command(name="set")
@click.argument("pairs", nargs=-1, required=True)
@click.option("--config-file", type=click.Path(dir_okay=False), help="sshd_config to modify")
@click.option("--no-restart", is_flag=True, help="Do not restart the SSH service")
@click.pass_context
def set_settings(ctx: click.Context, pairs: tuple[str, ...], config_file: str | None, no_restart: bool):
    """Apply NAME VALUE pairs to sshd_config in one session.

    \b
    Examples:
        sudo sshauth set PermitRootLogin no
        sudo sshauth set PermitRootLogin prohibit-password MaxAuthTries 3
    """
    if len(pairs) % 2:
        raise click.UsageError("Settings must be given as NAME VALUE pairs", ctx=ctx)

    settings = [Setting(pairs[i], pairs[i + 1]) for i in range(0, len(pairs), 2)]
    _run_session(ctx, settings, config_file, no_restart)


@main.command(name="status")
@click.option("--config-file", type=click.Path(dir_okay=False), help="sshd_config to inspect")
@click.pass_context
def status(ctx: click.Context, config_file: str | None):
    """Show the effective authentication settings in sshd_config.

    sshd uses the first value it finds for each keyword; unset keywords use
    the daemon's built-in default.
    """
    sshd_config = resolve_sshd_config(ctx, config_file)

    try:
        effective = read_effective_settings(sshd_config, AUTH_SETTING_NAMES)
    except SettingsError as e:
        fail(str(e))

    table = Table(title=f"Authentication settings in {sshd_config}")
    table.add_column("Setting", style="cyan")
    table.add_column("Effective value")

    for name, value in effective.items():
        table.add_row(name, value if value is not None else "[dim](daemon default)[/dim]")

    Console().print(table)

    password = effective.get("PasswordAuthentication")
    if password == "no":
        click.secho("Mode: key-only", fg="green")
    else:
        click.secho("Mode: password authentication allowed", fg="yellow")


@main.command(name="test-connection")
@click.argument("host", type=str)
@click.option("--user", "-u", "username", required=True, help="Remote username")
@click.option("--key", "-k", "key_file", required=True, type=click.Path(dir_okay=False),
              help="Private key (PEM) file")
@click.option("--port", "-p", default=ConnectionTester.DEFAULT_PORT, type=click.IntRange(1, 65535),
              show_default=True, help="SSH port")
@click.option("--timeout", type=click.IntRange(min=1), help="Connect timeout in seconds")
@click.option("--force", is_flag=True, help="Continue even if the key file permissions are insecure")
@click.pass_context
def connection_test(
    ctx: click.Context,
    host: str,
    username: str,
    key_file: str,
    port: int,
    timeout: int | None,
    force: bool,
):
    """Test an SSH login to HOST with a PEM key.

    \b
    Examples:
        sshauth test-connection 192.0.2.10 -u deploy -k ~/id_rsa.pem
        sshauth test-connection example.org -u deploy -k key.pem -p 2222
    """
    config = get_config(ctx)
    key_path = Path(key_file).expanduser()

    try:
        PrerequisiteChecker.require_tools("connect")
        mode = ConnectionTester.check_key_permissions(key_path)
    except (PrerequisiteError, ConnectionTestError) as e:
        fail(str(e))

    if not ConnectionTester.has_secure_permissions(key_path):
        click.secho(f"Warning: PEM file permissions are not secure (current: {mode:o}).", fg="yellow")
        click.secho("Recommended permissions: 600 or 400", fg="yellow")
        if not force:
            fail("Test aborted. Fix the permissions or pass --force.")

    click.secho("Testing SSH connection...", fg="green")

    try:
        result = ConnectionTester.test_connection(
            host, username, key_path, port=port, timeout=timeout or config.connect_timeout
        )
    except ConnectionTestError as e:
        fail(str(e))

    click.secho(f"Command: {' '.join(result.command)}", fg="yellow")
    click.echo()
    if result.output:
        click.echo(result.output.rstrip())
        click.echo()

    if result.success:
        click.secho("✓ SSH connection test PASSED!", fg="green")
        click.secho("The PEM key is working correctly.", fg="green")
        return

    click.secho("✗ SSH connection test FAILED!", fg="red")
    click.secho("Possible issues:", fg="yellow")
    for cause in result.possible_causes:
        click.echo(f"  - {cause}")
    ctx.exit(1)


main.add_command(keys_group)
main.add_command(backups_group)
main.add_command(config_group)


if __name__ == "__main__":
    main()
