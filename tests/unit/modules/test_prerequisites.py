"""Unit tests for prerequisites module."""

from unittest.mock import patch

import pytest

from sshauth.modules.prerequisites import PrerequisiteChecker, PrerequisiteError


class TestRootCheck:
    """Tests for privilege checks."""

    @patch("sshauth.modules.prerequisites.os.geteuid", return_value=0)
    def test_root(self, mock_geteuid):
        assert PrerequisiteChecker.is_root() is True
        PrerequisiteChecker.require_root()

    @patch("sshauth.modules.prerequisites.os.geteuid", return_value=1000)
    def test_not_root(self, mock_geteuid):
        assert PrerequisiteChecker.is_root() is False
        with pytest.raises(PrerequisiteError, match="must be run as root or with sudo"):
            PrerequisiteChecker.require_root()


class TestToolChecks:
    """Tests for external tool detection."""

    @patch("sshauth.modules.prerequisites.shutil.which")
    def test_check_tools(self, mock_which):
        mock_which.side_effect = lambda name: "/usr/bin/ssh" if name == "ssh" else None

        result = PrerequisiteChecker.check_tools(["ssh", "ssh-keygen"])

        assert result.all_available is False
        assert result.available == ["ssh"]
        assert result.missing == ["ssh-keygen"]

    @patch("sshauth.modules.prerequisites.shutil.which", return_value="/usr/bin/tool")
    def test_require_tools_all_present(self, mock_which):
        PrerequisiteChecker.require_tools("keys")
        mock_which.assert_called_once_with("ssh-keygen")

    @patch("sshauth.modules.prerequisites.shutil.which", return_value=None)
    def test_require_tools_missing(self, mock_which):
        with pytest.raises(PrerequisiteError) as exc_info:
            PrerequisiteChecker.require_tools("connect")

        message = str(exc_info.value)
        assert "  - ssh" in message
        assert "openssh-client" in message

    def test_unknown_operation_needs_nothing(self):
        PrerequisiteChecker.require_tools("status")

    def test_format_missing_message_empty(self):
        assert PrerequisiteChecker.format_missing_message([]) == "All prerequisites are installed."
