"""
Connection Tester Module

Check that a private key actually logs in to a remote host.

Security Requirements:
- BatchMode=yes: never fall back to a password prompt
- Validate host, user and port before building the ssh command
- Warn about private keys readable by group or other
- No credential logging
"""

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from sshauth.modules.validation import (
    ValidationError,
    validate_host,
    validate_port,
    validate_username,
)

logger = logging.getLogger(__name__)

SUCCESS_MARKER = "SSH connection successful!"

FAILURE_CAUSES = [
    "PEM key file is incorrect or corrupted",
    "Username is incorrect",
    "Server is not accessible",
    "SSH service is not running on the server",
    "Firewall is blocking the connection",
    "Public key is not in the server's authorized_keys",
]

SECURE_KEY_MODES = (0o600, 0o400)


class ConnectionTestError(Exception):
    """Raised when a connection test cannot be run."""

    pass


@dataclass
class ConnectionTestResult:
    """Result of a key-based login test."""

    success: bool
    returncode: int
    output: str
    command: list[str]
    possible_causes: list[str] = field(default_factory=list)


class ConnectionTester:
    """Run a non-interactive ssh login with a given key."""

    DEFAULT_PORT = 22
    DEFAULT_TIMEOUT = 10
    # Grace period on top of ConnectTimeout for auth and the remote echo
    EXTRA_TIMEOUT = 20

    @classmethod
    def check_key_permissions(cls, key_file: Path) -> int:
        """
        Return the key file's permission bits.

        Raises:
            ConnectionTestError: If the key file does not exist
        """
        key_file = Path(key_file)
        if not key_file.is_file():
            raise ConnectionTestError(f"PEM file '{key_file}' does not exist.")
        return key_file.stat().st_mode & 0o777

    @classmethod
    def has_secure_permissions(cls, key_file: Path) -> bool:
        """True when the key file is 0600 or 0400."""
        return cls.check_key_permissions(key_file) in SECURE_KEY_MODES

    @classmethod
    def build_ssh_command(
        cls,
        host: str,
        username: str,
        key_file: Path,
        port: int = DEFAULT_PORT,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> list[str]:
        """
        Build the ssh argument list for the login test.

        Raises:
            ConnectionTestError: If host, username or port are invalid
        """
        try:
            validate_host(host)
            validate_username(username)
            port = validate_port(port)
        except ValidationError as e:
            raise ConnectionTestError(str(e)) from e

        return [
            "ssh",
            "-i", str(key_file),
            "-p", str(port),
            "-o", f"ConnectTimeout={timeout}",
            "-o", "BatchMode=yes",
            "-o", "StrictHostKeyChecking=accept-new",
            f"{username}@{host}",
            f'echo "{SUCCESS_MARKER}"',
        ]

    @classmethod
    def test_connection(
        cls,
        host: str,
        username: str,
        key_file: Path,
        port: int = DEFAULT_PORT,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> ConnectionTestResult:
        """
        Try to log in and run a trivial remote command.

        Args:
            host: Server hostname or IP
            username: Remote user
            key_file: Private key (PEM) file
            port: SSH port
            timeout: ssh ConnectTimeout in seconds

        Returns:
            ConnectionTestResult: success plus combined stdout/stderr

        Raises:
            ConnectionTestError: If inputs are invalid, the key is missing or
                ssh is not installed

        Example:
            >>> result = ConnectionTester.test_connection("192.0.2.10", "deploy",
            ...                                           Path("~/id_rsa.pem").expanduser())
            >>> result.success
            True
        """
        key_file = Path(key_file).expanduser()
        cls.check_key_permissions(key_file)
        command = cls.build_ssh_command(host, username, key_file, port, timeout)

        logger.info(f"Testing SSH connection to {username}@{host}:{port}")
        logger.debug(f"Command: {' '.join(command)}")

        try:
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                timeout=timeout + cls.EXTRA_TIMEOUT,
            )
        except FileNotFoundError as e:
            raise ConnectionTestError("ssh not found. Please install OpenSSH client.") from e
        except subprocess.TimeoutExpired:
            logger.warning(f"SSH connection to {host} timed out")
            return ConnectionTestResult(
                success=False,
                returncode=-1,
                output="Connection timed out",
                command=command,
                possible_causes=list(FAILURE_CAUSES),
            )

        output = result.stdout or ""
        success = result.returncode == 0 and SUCCESS_MARKER in output

        if success:
            logger.info("SSH connection test passed")
        else:
            logger.warning(f"SSH connection test failed (exit {result.returncode})")

        return ConnectionTestResult(
            success=success,
            returncode=result.returncode,
            output=output,
            command=command,
            possible_causes=[] if success else list(FAILURE_CAUSES),
        )


def run_connection_test(host: str, username: str, key_file: Path, **kwargs) -> ConnectionTestResult:
    """Test a key-based login (convenience function)."""
    return ConnectionTester.test_connection(host, username, key_file, **kwargs)


__all__ = [
    "ConnectionTestError",
    "ConnectionTestResult",
    "ConnectionTester",
    "FAILURE_CAUSES",
    "SUCCESS_MARKER",
    "run_connection_test",
]
