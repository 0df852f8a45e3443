"""Shared validation utilities for user-supplied input.

Every value that ends up in a file path or an ssh/ssh-keygen argument goes
through one of these checks first.

Philosophy:
- Single source of truth for validation
- Security-first: prevent option injection and path traversal
- Clear error messages with actionable guidance
- Zero dependencies on other sshauth modules

Public API:
    validate_username: Local POSIX user name
    validate_key_name: Key file name inside ~/.ssh
    validate_host: Remote hostname or IP address
    validate_port: TCP port
    ValidationError: Base exception for validation failures
"""

import ipaddress
import re


class ValidationError(Exception):
    """Raised when validation fails."""

    pass


_USERNAME_RE = re.compile(r"^[a-z_][a-z0-9_.-]*\$?$", re.IGNORECASE)
_KEY_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")
_HOSTNAME_RE = re.compile(r"^(?=.{1,253}$)[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*\.?$")


def validate_username(username: str) -> str:
    """Validate a local user name.

    Args:
        username: User name to validate

    Returns:
        Validated name (unchanged if valid)

    Raises:
        ValidationError: If the name could not be a POSIX user name

    Example:
        >>> validate_username("deploy")
        'deploy'
        >>> validate_username("-oProxyCommand=x")
        ValidationError: Invalid username '-oProxyCommand=x'
    """
    if not username or not isinstance(username, str):
        raise ValidationError("Username must be a non-empty string")

    if len(username) > 32:
        raise ValidationError(f"Username too long: {len(username)} characters (max: 32)")

    if not _USERNAME_RE.match(username):
        raise ValidationError(
            f"Invalid username '{username}'. "
            f"Use letters, digits, '_', '.', '-', starting with a letter or '_'."
        )

    return username


def validate_key_name(key_name: str) -> str:
    """Validate an SSH key file name.

    The key is created inside the user's ~/.ssh, so the name must not
    contain path separators or traversal sequences.

    Example:
        >>> validate_key_name("id_rsa")
        'id_rsa'
        >>> validate_key_name("../../etc/passwd")
        ValidationError: Key name contains path traversal sequences
    """
    if not key_name:
        raise ValidationError("Key name cannot be empty")

    if ".." in key_name or "/" in key_name or "\\" in key_name:
        raise ValidationError(
            "Key name contains path traversal sequences. Use a plain file name such as id_rsa."
        )

    if key_name.startswith("-") or not _KEY_NAME_RE.match(key_name):
        raise ValidationError(
            f"Invalid key name '{key_name}'. "
            f"Use only letters, numbers, '.', '_' and '-' (not starting with '-')."
        )

    if key_name.endswith(".pub"):
        raise ValidationError("Key name must not end with .pub; give the private key name")

    return key_name


def validate_host(host: str) -> str:
    """Validate a hostname or IP address.

    Example:
        >>> validate_host("192.0.2.10")
        '192.0.2.10'
        >>> validate_host("-oProxyCommand=sh")
        ValidationError: Invalid host '-oProxyCommand=sh'
    """
    if not host:
        raise ValidationError("Host cannot be empty")

    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        pass

    if not _HOSTNAME_RE.match(host):
        raise ValidationError(f"Invalid host '{host}'. Use a hostname or IP address.")

    return host


def validate_port(port: int | str) -> int:
    """Validate a TCP port number.

    Returns:
        Port as int

    Raises:
        ValidationError: If port is not a number between 1 and 65535
    """
    try:
        value = int(str(port).strip())
    except (TypeError, ValueError) as e:
        raise ValidationError(f"SSH port must be a number between 1 and 65535: {port!r}") from e

    if not 1 <= value <= 65535:
        raise ValidationError(f"SSH port must be a number between 1 and 65535: {value}")

    return value


# Public API
__all__ = [
    "ValidationError",
    "validate_host",
    "validate_key_name",
    "validate_port",
    "validate_username",
]
