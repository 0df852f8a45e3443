"""Custom Click group with automatic help display on errors.

This module provides a custom Click Group class that displays the help of
the failing command when a usage error occurs.
"""

from typing import Any

import click


class SSHAuthGroup(click.Group):
    """Click group that prints contextual help on usage errors."""

    def invoke(self, ctx: click.Context) -> Any:
        """Invoke the subcommand, showing its help if arguments are wrong."""
        try:
            return super().invoke(ctx)
        except (
            click.exceptions.MissingParameter,
            click.exceptions.BadParameter,
            click.exceptions.UsageError,
        ) as e:
            click.echo(f"Error: {e.format_message()}", err=True)

            # The subcommand context if available
            error_ctx = e.ctx if e.ctx else ctx

            click.echo("")
            click.echo(error_ctx.get_help())
            error_ctx.exit(e.exit_code)
            return None

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        """Show help when the command is not found."""
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as e:
            # Parameter errors are handled in invoke()
            if isinstance(e, click.exceptions.MissingParameter | click.exceptions.BadParameter):
                raise
            click.echo(f"Error: {e.format_message()}", err=True)
            click.echo("")
            click.echo(ctx.get_help())
            ctx.exit(2)
            return None, None, []


# Subgroups created with @main.group() also use SSHAuthGroup
SSHAuthGroup.group_class = SSHAuthGroup
