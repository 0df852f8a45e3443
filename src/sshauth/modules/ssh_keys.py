"""
SSH Key Manager Module

Create key pairs for local users and authorize them for login.

Security Requirements:
- Private key permissions: 0600 (read/write owner only)
- Public key permissions: 0644 (readable by all)
- SSH directory permissions: 0700 (owner only)
- authorized_keys permissions: 0600
- Files are owned by the target user when running as root
- Never log private key content
"""

import logging
import os
import pwd
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from sshauth.modules.validation import ValidationError, validate_key_name, validate_username

logger = logging.getLogger(__name__)


@dataclass
class SSHKeyPair:
    """SSH key pair information."""

    private_path: Path
    public_path: Path
    public_key_content: str
    pem_path: Path | None = None
    authorized: bool = False


@dataclass
class LocalUser:
    """Local account the key is created for."""

    name: str
    uid: int
    gid: int
    home: Path

    @property
    def ssh_dir(self) -> Path:
        return self.home / ".ssh"


class SSHKeyError(Exception):
    """Raised when SSH key operations fail."""

    pass


class SSHKeyManager:
    """
    Create and authorize SSH keys for local users.

    Security:
    - Keys stored in ~user/.ssh/
    - Private key: 0600 (-rw-------)
    - Public key: 0644 (-rw-r--r--)
    - SSH directory: 0700 (drwx------)
    - Never logs private key content
    """

    DEFAULT_KEY_NAME = "id_rsa"
    DEFAULT_KEY_TYPE = "rsa"
    DEFAULT_KEY_BITS = 4096
    KEYGEN_TIMEOUT = 30

    @classmethod
    def lookup_user(cls, username: str) -> LocalUser:
        """
        Resolve a local user from the passwd database.

        Raises:
            SSHKeyError: If the name is invalid or the user does not exist
        """
        try:
            validate_username(username)
        except ValidationError as e:
            raise SSHKeyError(str(e)) from e

        try:
            entry = pwd.getpwnam(username)
        except KeyError:
            raise SSHKeyError(f"User '{username}' does not exist.") from None

        return LocalUser(name=entry.pw_name, uid=entry.pw_uid, gid=entry.pw_gid, home=Path(entry.pw_dir))

    @classmethod
    def create_key_pair(
        cls,
        username: str,
        key_name: str = DEFAULT_KEY_NAME,
        overwrite: bool = False,
        export_pem: bool = False,
        key_type: str = DEFAULT_KEY_TYPE,
        key_bits: int | None = DEFAULT_KEY_BITS,
    ) -> SSHKeyPair:
        """
        Generate a key pair for a local user and authorize it.

        Args:
            username: Local user the key belongs to
            key_name: Private key file name inside ~/.ssh (default: id_rsa)
            overwrite: Replace an existing key with the same name
            export_pem: Also copy the private key to ~/<key_name>.pem
            key_type: ssh-keygen -t value (default: rsa)
            key_bits: ssh-keygen -b value, None to let ssh-keygen choose

        Returns:
            SSHKeyPair: Paths and public key content

        Raises:
            SSHKeyError: If the user is unknown, the key exists and overwrite
                is False, or generation fails

        Example:
            >>> pair = SSHKeyManager.create_key_pair("deploy", export_pem=True)
            >>> pair.pem_path
            PosixPath('/home/deploy/id_rsa.pem')
        """
        user = cls.lookup_user(username)

        try:
            validate_key_name(key_name)
        except ValidationError as e:
            raise SSHKeyError(str(e)) from e

        private_path = user.ssh_dir / key_name
        public_path = private_path.with_name(private_path.name + ".pub")

        if private_path.exists() or public_path.exists():
            if not overwrite:
                raise SSHKeyError(
                    f"A key with name '{key_name}' already exists at {private_path}. "
                    f"Use --force to overwrite it."
                )
            logger.warning(f"Overwriting existing key: {private_path}")

        cls._ensure_ssh_directory(user)

        # An existing key is only replaced once ssh-keygen has succeeded
        staged_private = private_path.with_name(f".{key_name}.new")
        staged_public = staged_private.with_name(staged_private.name + ".pub")
        cls._remove(staged_private, staged_public)

        try:
            cls._generate_key(user, staged_private, key_type, key_bits)
            cls._fix_permissions(user, staged_private, staged_public)
            cls._install(staged_private, private_path)
            cls._install(staged_public, public_path)
        finally:
            cls._remove(staged_private, staged_public)

        public_key_content = cls.read_public_key(public_path)
        authorized = cls.authorize_key(user, public_key_content)

        pem_path = cls.export_pem(user, private_path) if export_pem else None

        logger.info(f"Private key: {private_path}")
        logger.info(f"Public key: {public_path}")

        return SSHKeyPair(
            private_path=private_path,
            public_path=public_path,
            public_key_content=public_key_content,
            pem_path=pem_path,
            authorized=authorized,
        )

    @classmethod
    def _generate_key(cls, user: LocalUser, private_path: Path, key_type: str, key_bits: int | None) -> None:
        """
        Run ssh-keygen with no passphrase.

        Raises:
            SSHKeyError: If ssh-keygen fails, times out or is missing
        """
        args = [
            "ssh-keygen",
            "-q",
            "-t", key_type,
            "-f", str(private_path),
            "-N", "",
            "-C", f"{user.name}@sshauth",
        ]
        if key_bits and key_type in ("rsa", "ecdsa"):
            args[4:4] = ["-b", str(key_bits)]

        logger.debug(f"Generating {key_type} key with ssh-keygen")

        try:
            subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=cls.KEYGEN_TIMEOUT,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            error_msg = e.stderr.strip() if e.stderr else str(e)
            logger.error(f"ssh-keygen failed: {error_msg}")
            raise SSHKeyError(f"Failed to create SSH key pair: {error_msg}") from e
        except subprocess.TimeoutExpired as e:
            logger.error("ssh-keygen timed out")
            raise SSHKeyError("SSH key generation timed out") from e
        except FileNotFoundError as e:
            logger.error("ssh-keygen not found in PATH")
            raise SSHKeyError("ssh-keygen not found. Please install OpenSSH client.") from e

        logger.info("SSH key pair created successfully")

    @classmethod
    def _ensure_ssh_directory(cls, user: LocalUser) -> None:
        """
        Ensure ~user/.ssh exists with mode 0700 and belongs to the user.
        """
        ssh_dir = user.ssh_dir
        if not ssh_dir.exists():
            logger.debug(f"Creating SSH directory: {ssh_dir}")
            ssh_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
            ssh_dir.chmod(0o700)
            cls._chown(user, ssh_dir)
        elif ssh_dir.stat().st_mode & 0o077:
            logger.warning(f"Fixing SSH directory permissions: {ssh_dir}")
            ssh_dir.chmod(0o700)

    @classmethod
    def _fix_permissions(cls, user: LocalUser, private_path: Path, public_path: Path) -> None:
        """
        Set 0600 on the private key, 0644 on the public key, user ownership on both.
        """
        if private_path.exists():
            private_path.chmod(0o600)
            cls._chown(user, private_path)
            logger.debug("Set private key permissions: 0600")

        if public_path.exists():
            public_path.chmod(0o644)
            cls._chown(user, public_path)
            logger.debug("Set public key permissions: 0644")

    @staticmethod
    def _install(staged: Path, target: Path) -> None:
        try:
            os.replace(staged, target)
        except OSError as e:
            raise SSHKeyError(f"Failed to install {target}: {e}") from e

    @staticmethod
    def _remove(*paths: Path) -> None:
        for path in paths:
            path.unlink(missing_ok=True)

    @staticmethod
    def _chown(user: LocalUser, path: Path) -> None:
        # Only root can give files away
        if os.geteuid() != 0:
            return
        os.chown(path, user.uid, user.gid)

    @classmethod
    def read_public_key(cls, public_path: Path) -> str:
        """
        Read public key content.

        Raises:
            SSHKeyError: If the public key is missing, empty or unreadable
        """
        if not public_path.exists():
            raise SSHKeyError(f"Public key not found: {public_path}")

        try:
            content = public_path.read_text().strip()
        except OSError as e:
            raise SSHKeyError(f"Failed to read public key: {e}") from e

        if not content:
            raise SSHKeyError(f"Public key is empty: {public_path}")

        return content

    @classmethod
    def authorize_key(cls, user: LocalUser, public_key_content: str) -> bool:
        """
        Append a public key to ~user/.ssh/authorized_keys unless already there.

        Returns:
            bool: True if the key was added, False if it was already present

        Raises:
            SSHKeyError: If authorized_keys cannot be updated
        """
        authorized_keys = user.ssh_dir / "authorized_keys"
        key_body = " ".join(public_key_content.split()[:2])

        try:
            if not authorized_keys.exists():
                authorized_keys.touch(mode=0o600)
                authorized_keys.chmod(0o600)
                cls._chown(user, authorized_keys)
                existing = ""
            else:
                existing = authorized_keys.read_text()

            for line in existing.splitlines():
                if " ".join(line.split()[:2]) == key_body:
                    logger.info("Public key already present in authorized_keys")
                    return False

            with open(authorized_keys, "a") as f:
                if existing and not existing.endswith("\n"):
                    f.write("\n")
                f.write(public_key_content + "\n")
        except OSError as e:
            raise SSHKeyError(f"Failed to update {authorized_keys}: {e}") from e

        logger.info("Public key added to authorized_keys")
        return True

    @classmethod
    def export_pem(cls, user: LocalUser, private_path: Path) -> Path:
        """
        Copy the private key to ~user/<key_name>.pem with mode 0600.

        Raises:
            SSHKeyError: If the copy fails
        """
        pem_path = user.home / f"{private_path.name}.pem"
        try:
            shutil.copyfile(private_path, pem_path)
            pem_path.chmod(0o600)
            cls._chown(user, pem_path)
        except OSError as e:
            raise SSHKeyError(f"Failed to export PEM file: {e}") from e

        logger.info(f"Private key exported as PEM file: {pem_path}")
        return pem_path


def create_key_pair(username: str, key_name: str = SSHKeyManager.DEFAULT_KEY_NAME, **kwargs) -> SSHKeyPair:
    """
    Create a key pair for a local user (convenience function).

    Example:
        >>> from sshauth.modules.ssh_keys import create_key_pair
        >>> pair = create_key_pair("deploy")
    """
    return SSHKeyManager.create_key_pair(username, key_name, **kwargs)


__all__ = ["LocalUser", "SSHKeyError", "SSHKeyManager", "SSHKeyPair", "create_key_pair"]
