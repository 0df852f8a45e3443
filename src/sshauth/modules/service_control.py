"""
Service Control Module

Restart the SSH daemon after a configuration change.

Tries systemctl, then service, then the SysV init script, and runs exactly
one restart.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

INIT_SCRIPT = Path("/etc/init.d/ssh")


class ServiceControlError(Exception):
    """Raised when no way to restart the SSH service is available."""

    pass


@dataclass
class ServiceRestartResult:
    """Result of a service restart."""

    success: bool
    command: list[str]
    returncode: int
    stderr: str = ""

    @property
    def command_line(self) -> str:
        return " ".join(self.command)


class ServiceController:
    """Restart the SSH service using whichever init system is present."""

    DEFAULT_SERVICE = "sshd"
    RESTART_TIMEOUT = 60

    @classmethod
    def restart_command(cls, service_name: str = DEFAULT_SERVICE) -> list[str]:
        """
        Pick the restart command for this host.

        Raises:
            ServiceControlError: If no init system tool is available
        """
        if shutil.which("systemctl"):
            return ["systemctl", "restart", service_name]
        if shutil.which("service"):
            return ["service", service_name, "restart"]
        if INIT_SCRIPT.exists():
            return [str(INIT_SCRIPT), "restart"]
        raise ServiceControlError(
            "Cannot restart SSH service: none of systemctl, service or "
            f"{INIT_SCRIPT} is available."
        )

    @classmethod
    def restart(cls, service_name: str = DEFAULT_SERVICE) -> ServiceRestartResult:
        """
        Restart the SSH service once and report the exit status.

        Args:
            service_name: Unit/service name (sshd on most distros, ssh on Debian)

        Returns:
            ServiceRestartResult: Never raises on a non-zero exit; check .success

        Raises:
            ServiceControlError: If no restart mechanism exists
        """
        command = cls.restart_command(service_name)
        logger.info(f"Restarting SSH service: {' '.join(command)}")

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=cls.RESTART_TIMEOUT,
            )
        except subprocess.TimeoutExpired:
            logger.error("SSH service restart timed out")
            return ServiceRestartResult(
                success=False, command=command, returncode=-1, stderr="Restart timed out"
            )
        except OSError as e:
            logger.error(f"Failed to run {command[0]}: {e}")
            return ServiceRestartResult(success=False, command=command, returncode=127, stderr=str(e))

        if result.returncode == 0:
            logger.info("SSH service restarted successfully")
        else:
            logger.error(f"SSH service restart failed (exit {result.returncode}): {result.stderr.strip()}")

        return ServiceRestartResult(
            success=result.returncode == 0,
            command=command,
            returncode=result.returncode,
            stderr=result.stderr or "",
        )


def restart_ssh_service(service_name: str = ServiceController.DEFAULT_SERVICE) -> ServiceRestartResult:
    """Restart the SSH service (convenience function)."""
    return ServiceController.restart(service_name)


__all__ = [
    "ServiceControlError",
    "ServiceController",
    "ServiceRestartResult",
    "restart_ssh_service",
]
