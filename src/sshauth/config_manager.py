"""Configuration management module.

This module handles persistent configuration storage using TOML format.
Stores tool preferences like the sshd_config location, the SSH service
name and key generation defaults.

Security:
- Config file permissions: 0600 (owner read/write only)
- Atomic writes via temp file and rename
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

try:
    import tomli  # type: ignore[import]
except ImportError:
    # Fallback for older Python versions
    try:
        import tomllib as tomli  # type: ignore[import]
    except ImportError as e:
        raise ImportError("toml library not available. Install with: pip install tomli") from e

try:
    import tomlkit
except ImportError as e:
    raise ImportError("tomlkit library not available. Install with: pip install tomlkit") from e

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SSHAUTH_CONFIG"


class ConfigError(Exception):
    """Raised when configuration operations fail."""

    pass


@dataclass
class SSHAuthConfig:
    """sshauth configuration data."""

    sshd_config_path: str = "/etc/ssh/sshd_config"
    service_name: str = "sshd"
    connect_timeout: int = 10
    key_type: str = "rsa"
    key_bits: int = 4096

    @property
    def sshd_config(self) -> Path:
        """sshd_config_path as a Path."""
        return Path(self.sshd_config_path)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SSHAuthConfig":
        """Create from dictionary, ignoring unknown keys."""
        defaults = cls()
        return cls(
            sshd_config_path=str(data.get("sshd_config_path", defaults.sshd_config_path)),
            service_name=str(data.get("service_name", defaults.service_name)),
            connect_timeout=int(data.get("connect_timeout", defaults.connect_timeout)),
            key_type=str(data.get("key_type", defaults.key_type)),
            key_bits=int(data.get("key_bits", defaults.key_bits)),
        )

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]


class ConfigManager:
    """Manage the sshauth configuration file.

    Configuration is stored at ~/.sshauth/config.toml with secure permissions.
    The SSHAUTH_CONFIG environment variable or --config overrides the path.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".sshauth"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    INT_KEYS = ("connect_timeout", "key_bits")

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Args:
            custom_path: Custom config file path (optional)

        Returns:
            Path to config file (may not exist yet)
        """
        if custom_path:
            return Path(custom_path).expanduser().resolve()

        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            return Path(env_path).expanduser().resolve()

        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> SSHAuthConfig:
        """Load configuration from file.

        Args:
            custom_path: Custom config file path (optional)

        Returns:
            SSHAuthConfig object (defaults if the file does not exist)

        Raises:
            ConfigError: If loading fails
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return SSHAuthConfig()

        try:
            mode = config_path.stat().st_mode & 0o777
            if mode & 0o077:
                logger.warning(f"Config file has insecure permissions: {oct(mode)}. Fixing to 0600...")
                os.chmod(config_path, 0o600)

            with open(config_path, "rb") as f:
                data = tomli.load(f)  # type: ignore[attr-defined]

            logger.debug(f"Loaded config from: {config_path}")
            return SSHAuthConfig.from_dict(data)

        except Exception as e:
            raise ConfigError(f"Failed to load config: {e}") from e

    @classmethod
    def save_config(cls, config: SSHAuthConfig, custom_path: str | None = None) -> Path:
        """Save configuration to file.

        Args:
            config: Configuration to save
            custom_path: Custom config file path (optional)

        Returns:
            Path the config was written to

        Raises:
            ConfigError: If saving fails
        """
        config_path = cls.get_config_path(custom_path)
        temp_path = config_path.with_suffix(".tmp")

        try:
            config_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

            # Use tomlkit to preserve comments and formatting
            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()

            for key, value in config.to_dict().items():
                doc[key] = value

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            os.chmod(temp_path, 0o600)
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")
            return config_path

        except Exception as e:
            if temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config: {e}") from e

    @classmethod
    def update_config(cls, custom_path: str | None = None, **updates: Any) -> SSHAuthConfig:
        """Update configuration values.

        Raises:
            ConfigError: If a key is unknown, a value has the wrong type or
                saving fails
        """
        config = cls.load_config(custom_path)

        for key, value in updates.items():
            if key not in SSHAuthConfig.field_names():
                raise ConfigError(
                    f"Unknown config key: {key}. Valid keys: {', '.join(SSHAuthConfig.field_names())}"
                )
            setattr(config, key, cls._coerce(key, value))

        cls.save_config(config, custom_path)
        return config

    @classmethod
    def _coerce(cls, key: str, value: Any) -> Any:
        if key not in cls.INT_KEYS:
            return str(value)
        try:
            number = int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{key} must be an integer: {value!r}") from e
        if number <= 0:
            raise ConfigError(f"{key} must be positive: {number}")
        return number

    @classmethod
    def get_sshd_config_path(cls, cli_value: str | None = None, custom_path: str | None = None) -> Path:
        """Get sshd_config path with CLI override.

        Args:
            cli_value: Path from CLI argument (takes precedence)
            custom_path: Custom config file path (optional)
        """
        if cli_value:
            return Path(cli_value)

        return cls.load_config(custom_path).sshd_config


__all__ = ["CONFIG_ENV_VAR", "ConfigError", "ConfigManager", "SSHAuthConfig"]
