"""Unit tests for service_control module."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from sshauth.modules.service_control import (
    ServiceControlError,
    ServiceController,
    restart_ssh_service,
)


def which_only(*available):
    return lambda name: f"/usr/bin/{name}" if name in available else None


class TestRestartCommand:
    """Tests for init system detection."""

    @patch("sshauth.modules.service_control.shutil.which", side_effect=which_only("systemctl", "service"))
    def test_prefers_systemctl(self, mock_which):
        assert ServiceController.restart_command("sshd") == ["systemctl", "restart", "sshd"]

    @patch("sshauth.modules.service_control.shutil.which", side_effect=which_only("service"))
    def test_falls_back_to_service(self, mock_which):
        assert ServiceController.restart_command("ssh") == ["service", "ssh", "restart"]

    @patch("sshauth.modules.service_control.INIT_SCRIPT")
    @patch("sshauth.modules.service_control.shutil.which", return_value=None)
    def test_falls_back_to_init_script(self, mock_which, mock_script):
        mock_script.exists.return_value = True
        mock_script.__str__.return_value = "/etc/init.d/ssh"

        assert ServiceController.restart_command() == ["/etc/init.d/ssh", "restart"]

    @patch("sshauth.modules.service_control.INIT_SCRIPT")
    @patch("sshauth.modules.service_control.shutil.which", return_value=None)
    def test_nothing_available(self, mock_which, mock_script):
        mock_script.exists.return_value = False

        with pytest.raises(ServiceControlError, match="Cannot restart SSH service"):
            ServiceController.restart_command()


@patch("sshauth.modules.service_control.shutil.which", side_effect=which_only("systemctl"))
class TestRestart:
    """Tests for ServiceController.restart."""

    @patch("sshauth.modules.service_control.subprocess.run")
    def test_success(self, mock_run, mock_which):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")

        result = ServiceController.restart("sshd")

        assert result.success is True
        assert result.command_line == "systemctl restart sshd"
        mock_run.assert_called_once()
        args, kwargs = mock_run.call_args
        assert args[0] == ["systemctl", "restart", "sshd"]
        assert kwargs["timeout"] == ServiceController.RESTART_TIMEOUT
        assert "shell" not in kwargs

    @patch("sshauth.modules.service_control.subprocess.run")
    def test_failure_is_reported_not_raised(self, mock_run, mock_which):
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="Job for sshd.service failed.\n")

        result = ServiceController.restart("sshd")

        assert result.success is False
        assert result.returncode == 1
        assert "Job for sshd.service failed" in result.stderr
        mock_run.assert_called_once()

    @patch("sshauth.modules.service_control.subprocess.run")
    def test_timeout(self, mock_run, mock_which):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="systemctl", timeout=60)

        result = ServiceController.restart()

        assert result.success is False
        assert result.stderr == "Restart timed out"

    @patch("sshauth.modules.service_control.subprocess.run")
    def test_os_error(self, mock_run, mock_which):
        mock_run.side_effect = PermissionError("Permission denied")

        result = ServiceController.restart()

        assert result.success is False
        assert result.returncode == 127

    @patch("sshauth.modules.service_control.subprocess.run")
    def test_convenience_function(self, mock_run, mock_which):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")

        assert restart_ssh_service("ssh").command == ["systemctl", "restart", "ssh"]
