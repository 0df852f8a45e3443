"""Command groups for sshauth CLI."""

from sshauth.commands.backups import backups_group
from sshauth.commands.config import config_group
from sshauth.commands.keys import keys_group

__all__ = ["backups_group", "config_group", "keys_group"]
