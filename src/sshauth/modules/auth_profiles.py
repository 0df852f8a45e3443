"""
Authentication Profiles Module

Named sets of sshd settings and the session that applies them.

A session backs up the config once, applies each setting in order and then
restarts the SSH service. There is no automatic rollback: on failure the
operator restores the backup.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from sshauth.modules.config_backup import create_backup
from sshauth.modules.service_control import (
    ServiceControlError,
    ServiceController,
    ServiceRestartResult,
)
from sshauth.modules.sshd_settings import (
    ApplyResult,
    ConfigSettingApplier,
    SettingValidationError,
    validate_setting,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Setting:
    """A single sshd keyword and the value to give it."""

    name: str
    value: str

    def __str__(self) -> str:
        return f"{self.name} {self.value}"


@dataclass(frozen=True)
class AuthProfile:
    """A named, ordered list of settings."""

    name: str
    description: str
    settings: tuple[Setting, ...]
    changes: tuple[str, ...] = ()


KEY_ONLY = AuthProfile(
    name="key-only",
    description="Only allow public key authentication",
    settings=(
        Setting("PasswordAuthentication", "no"),
        Setting("PubkeyAuthentication", "yes"),
        Setting("ChallengeResponseAuthentication", "no"),
        Setting("UsePAM", "yes"),
    ),
    changes=(
        "Disabled password authentication",
        "Enabled public key authentication",
        "Disabled challenge-response authentication",
    ),
)

ALLOW_PASSWORD = AuthProfile(
    name="password",
    description="Allow password authentication alongside keys",
    settings=(
        Setting("PasswordAuthentication", "yes"),
        Setting("PubkeyAuthentication", "yes"),
        Setting("ChallengeResponseAuthentication", "yes"),
        Setting("UsePAM", "yes"),
    ),
    changes=(
        "Enabled password authentication",
        "Public key authentication remains enabled",
        "Enabled challenge-response authentication",
    ),
)

PROFILES: dict[str, AuthProfile] = {p.name: p for p in (KEY_ONLY, ALLOW_PASSWORD)}

# Settings shown by `sshauth status`
AUTH_SETTING_NAMES = [s.name for s in KEY_ONLY.settings] + [
    "KbdInteractiveAuthentication",
    "PermitRootLogin",
    "AuthorizedKeysFile",
]


@dataclass
class SessionResult:
    """Outcome of one mutation session."""

    config_path: Path
    backup_path: Path
    applied: list[ApplyResult] = field(default_factory=list)
    restart: ServiceRestartResult | None = None

    @property
    def changed(self) -> bool:
        return any(r.changed for r in self.applied)

    @property
    def success(self) -> bool:
        return self.restart is None or self.restart.success

    @property
    def restore_command(self) -> str:
        return f"cp {self.backup_path} {self.config_path}"


class AuthProfileManager:
    """Run mutation sessions against an sshd_config file."""

    @classmethod
    def get_profile(cls, name: str) -> AuthProfile:
        """
        Look up a profile by name.

        Raises:
            KeyError: If no such profile exists
        """
        try:
            return PROFILES[name]
        except KeyError:
            raise KeyError(f"Unknown profile: {name}. Available: {', '.join(PROFILES)}") from None

    @classmethod
    def apply_settings(
        cls,
        settings: list[Setting] | tuple[Setting, ...],
        config_path: Path,
        restart: bool = True,
        service_name: str = ServiceController.DEFAULT_SERVICE,
    ) -> SessionResult:
        """
        Back up config_path once, apply settings in order, optionally restart.

        If every setting is already in effect the file is left byte-for-byte
        unchanged. Otherwise each setting is re-appended in order, so the
        session's settings end up as the last lines of the global section.

        Args:
            settings: Settings to apply
            config_path: Daemon configuration file
            restart: Restart the SSH service afterwards
            service_name: Service to restart

        Returns:
            SessionResult: Backup path, per-setting results and restart status

        Raises:
            SettingsError: If a setting cannot be applied (earlier settings
                stay applied; restore from the backup)
            BackupError: If the backup cannot be created
        """
        config_path = Path(config_path)

        # Validate everything before touching the file
        seen: set[str] = set()
        for setting in settings:
            validate_setting(setting.name, setting.value)
            if setting.name in seen:
                raise SettingValidationError(f"{setting.name} is given more than once")
            seen.add(setting.name)

        lines = ConfigSettingApplier.read_lines(config_path)
        # Either the file already matches, or every setting is re-asserted in order
        force = not all(ConfigSettingApplier.is_in_effect(lines, s.name, s.value) for s in settings)

        backup_path = create_backup(config_path)
        session = SessionResult(config_path=config_path, backup_path=backup_path)

        for setting in settings:
            session.applied.append(
                ConfigSettingApplier.apply(config_path, setting.name, setting.value, force=force)
            )

        if restart:
            session.restart = cls._restart(service_name)
            if not session.restart.success:
                logger.warning(f"To restore the previous configuration run: {session.restore_command}")

        return session

    @classmethod
    def apply_profile(
        cls,
        profile: AuthProfile | str,
        config_path: Path,
        restart: bool = True,
        service_name: str = ServiceController.DEFAULT_SERVICE,
    ) -> SessionResult:
        """
        Apply a named profile in one session.

        Example:
            >>> result = AuthProfileManager.apply_profile("key-only", Path("/etc/ssh/sshd_config"))
            >>> result.backup_path
            PosixPath('/etc/ssh/sshd_config.backup.20261018093000')
        """
        if isinstance(profile, str):
            profile = cls.get_profile(profile)

        logger.info(f"Applying profile '{profile.name}' to {config_path}")
        return cls.apply_settings(profile.settings, config_path, restart=restart, service_name=service_name)

    @staticmethod
    def _restart(service_name: str) -> ServiceRestartResult:
        try:
            return ServiceController.restart(service_name)
        except ServiceControlError as e:
            logger.error(str(e))
            return ServiceRestartResult(success=False, command=[], returncode=127, stderr=str(e))


__all__ = [
    "ALLOW_PASSWORD",
    "AUTH_SETTING_NAMES",
    "AuthProfile",
    "AuthProfileManager",
    "KEY_ONLY",
    "PROFILES",
    "SessionResult",
    "Setting",
]
