"""sshauth - SSH host authentication policy CLI

Philosophy:
- Ruthless simplicity
- Brick architecture (self-contained modules)
- Never delete configuration: comment out and back up
- Fail fast with helpful guidance

The sshauth CLI switches the SSH daemon between key-only and password
authentication, creates key pairs for local users and verifies that a key
logs in to a remote host.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
