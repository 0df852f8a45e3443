"""sshauth modules - Self-contained bricks following the brick philosophy

Each module is a self-contained component with clear contracts:
- sshd Settings: Apply settings to sshd_config without deleting lines
- Config Backup: Timestamped backups and operator-initiated restore
- Auth Profiles: key-only / password sessions (backup, apply, restart)
- Service Control: Restart the SSH daemon
- SSH Key Manager: Create and authorize key pairs for local users
- Connection Tester: Verify a key logs in to a remote host
- Prerequisites Checker: Root and tool checks
- Validation: Input validation
"""

from . import (
    auth_profiles,
    config_backup,
    connection_tester,
    prerequisites,
    service_control,
    ssh_keys,
    sshd_settings,
    validation,
)

__all__ = [
    "auth_profiles",
    "config_backup",
    "connection_tester",
    "prerequisites",
    "service_control",
    "ssh_keys",
    "sshd_settings",
    "validation",
]
