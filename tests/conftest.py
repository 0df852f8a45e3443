"""
Shared test fixtures and configuration for sshauth tests.

This module provides common fixtures used across all test types:
- Isolated tool configuration (never touches ~/.sshauth)
- Sample sshd_config files in temporary directories
- Mocked subprocess runs for ssh, ssh-keygen and systemctl
"""

from unittest.mock import MagicMock, patch

import pytest

# ============================================================================
# CONFIGURATION ISOLATION
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_tool_config(tmp_path, monkeypatch):
    """Point SSHAUTH_CONFIG at a temporary file for every test.

    Tests must never read or modify the real ~/.sshauth/config.toml.
    """
    config_file = tmp_path / "sshauth-config" / "config.toml"
    monkeypatch.setenv("SSHAUTH_CONFIG", str(config_file))
    return config_file


# ============================================================================
# SSHD CONFIG FIXTURES
# ============================================================================

DEFAULT_SSHD_CONFIG = """# SSH Daemon Configuration
Port 22
Protocol 2
HostKey /etc/ssh/ssh_host_rsa_key
HostKey /etc/ssh/ssh_host_ecdsa_key
HostKey /etc/ssh/ssh_host_ed25519_key

# Authentication
LoginGraceTime 120
PermitRootLogin yes
StrictModes yes
MaxAuthTries 6
MaxSessions 10

# Key Authentication
PubkeyAuthentication yes
AuthorizedKeysFile .ssh/authorized_keys

# Password Authentication
PasswordAuthentication yes
ChallengeResponseAuthentication no
UsePAM yes
"""

UBUNTU_SSHD_CONFIG = """Include /etc/ssh/sshd_config.d/*.conf

#Port 22
#PermitRootLogin prohibit-password
#PubkeyAuthentication yes

# To disable tunneled clear text passwords, change to no here!
#PasswordAuthentication yes
#PermitEmptyPasswords no

KbdInteractiveAuthentication no
UsePAM yes

X11Forwarding yes
PrintMotd no

Subsystem sftp /usr/lib/openssh/sftp-server

Match User anoncvs
    X11Forwarding no
    PasswordAuthentication yes
"""


@pytest.fixture
def sshd_config_text():
    """Content of a typical sshd_config with active auth settings."""
    return DEFAULT_SSHD_CONFIG


@pytest.fixture
def sshd_config(tmp_path):
    """A writable sshd_config with active auth settings."""
    path = tmp_path / "sshd_config"
    path.write_text(DEFAULT_SSHD_CONFIG)
    return path


@pytest.fixture
def ubuntu_sshd_config(tmp_path):
    """A writable sshd_config shaped like Ubuntu's default (commented settings, Match block)."""
    path = tmp_path / "sshd_config"
    path.write_text(UBUNTU_SSHD_CONFIG)
    return path


# ============================================================================
# SUBPROCESS MOCKING FIXTURES
# ============================================================================


@pytest.fixture
def mock_restart():
    """Mock a successful SSH service restart."""
    with patch("sshauth.modules.auth_profiles.ServiceController.restart") as mock:
        mock.return_value = MagicMock(success=True, returncode=0, stderr="", command=["systemctl"])
        yield mock
