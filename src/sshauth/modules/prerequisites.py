"""
Prerequisites Checker Module

Verifies privileges and required external tools before operations.

Security Requirements:
- Read-only system checks
- No shell=True in subprocess calls
- Refuse privileged operations instead of escalating
"""

import logging
import os
import shutil
from dataclasses import dataclass
from typing import ClassVar

logger = logging.getLogger(__name__)


@dataclass
class PrerequisiteResult:
    """Result of prerequisite checks."""

    all_available: bool
    missing: list[str]
    available: list[str]


class PrerequisiteError(Exception):
    """Raised when prerequisites are missing."""

    pass


class PrerequisiteChecker:
    """
    Check privileges and external tools.

    Tools per operation:
    - keys create: ssh-keygen
    - test-connection: ssh
    - enforce-keys / allow-password: root only (restart tool is chosen at run time)
    """

    TOOLS_BY_OPERATION: ClassVar[dict[str, list[str]]] = {
        "keys": ["ssh-keygen"],
        "connect": ["ssh"],
    }

    @classmethod
    def is_root(cls) -> bool:
        """True when running with effective UID 0."""
        return os.geteuid() == 0

    @classmethod
    def require_root(cls) -> None:
        """
        Fail unless running as root.

        Raises:
            PrerequisiteError: With the sudo hint the operator needs
        """
        if not cls.is_root():
            logger.debug(f"Effective UID is {os.geteuid()}, root required")
            raise PrerequisiteError(
                "This command must be run as root or with sudo privileges.\n"
                "Please run: sudo sshauth <command>"
            )

    @classmethod
    def check_tool(cls, tool_name: str) -> bool:
        """
        Check if a single tool is available in PATH.

        Security: Uses shutil.which (safe, no subprocess)
        """
        result = shutil.which(tool_name)
        if result:
            logger.debug(f"Found {tool_name} at {result}")
            return True
        logger.debug(f"Tool not found: {tool_name}")
        return False

    @classmethod
    def check_tools(cls, tools: list[str]) -> PrerequisiteResult:
        """
        Check a list of tools.

        Example:
            >>> result = PrerequisiteChecker.check_tools(["ssh", "ssh-keygen"])
            >>> result.missing
            []
        """
        missing: list[str] = []
        available: list[str] = []

        for tool in tools:
            if cls.check_tool(tool):
                available.append(tool)
            else:
                missing.append(tool)

        if missing:
            logger.error(f"Missing prerequisites: {', '.join(missing)}")

        return PrerequisiteResult(all_available=not missing, missing=missing, available=available)

    @classmethod
    def require_tools(cls, operation: str) -> None:
        """
        Fail if any tool needed for an operation is missing.

        Raises:
            PrerequisiteError: Listing missing tools with install guidance
        """
        result = cls.check_tools(cls.TOOLS_BY_OPERATION.get(operation, []))
        if not result.all_available:
            raise PrerequisiteError(cls.format_missing_message(result.missing))

    @classmethod
    def format_missing_message(cls, missing: list[str]) -> str:
        """Format installation guidance for missing tools."""
        if not missing:
            return "All prerequisites are installed."

        lines = ["Missing required tools:", ""]
        lines.extend(f"  - {tool}" for tool in missing)
        lines.append("")
        lines.append("Install the OpenSSH client package:")
        lines.append("  Debian/Ubuntu: sudo apt install openssh-client")
        lines.append("  RHEL/Fedora:   sudo dnf install openssh-clients")
        return "\n".join(lines)


__all__ = ["PrerequisiteChecker", "PrerequisiteError", "PrerequisiteResult"]
