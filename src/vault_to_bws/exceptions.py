"""Custom exceptions for vault-to-bws.

This module defines the exception hierarchy used throughout the application.
Fatal errors abort a run before any file is processed; recoverable errors are
caught by the migrator and recorded in the run report.
"""

from pathlib import Path


class MigrationError(Exception):
    """Base exception for all vault-to-bws errors.

    All custom exceptions in this package inherit from this class,
    allowing callers to catch all vault-to-bws errors with a single
    except clause if desired.
    """

    pass


class DependencyMissingError(MigrationError):
    """Raised when a required external tool (ansible-vault, bws) is unavailable.

    This can occur when:
    - The binary is not installed
    - The binary is not in the system PATH
    """

    pass


class AuthenticationError(MigrationError):
    """Raised when the secret store credential is absent or rejected.

    This can occur when:
    - BWS_ACCESS_TOKEN is not set
    - The token is expired, revoked or lacks access
    """

    pass


class PreconditionError(MigrationError):
    """Raised when a run-level precondition fails before processing starts.

    This can occur when:
    - The root directory does not exist or is unreadable
    - A configured vault password file cannot be read
    - The user declines to continue with a non-Ansible directory
    """

    pass


class FileScopedError(MigrationError):
    """Base class for errors that only invalidate a single vault file."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class DecryptionError(FileScopedError):
    """Raised when a vault file cannot be decrypted.

    Carries the file path as context, never the vault password.
    """

    pass


class ParseError(FileScopedError):
    """Raised when decrypted content is not a usable YAML mapping.

    This can occur when:
    - The content is not valid YAML
    - The document is not a mapping at the top level
    - A mapping repeats the same key
    """

    pass


class CreationError(MigrationError):
    """Raised when the secret store rejects a single secret.

    Carries the target secret name and a diagnostic, never the secret value.
    """

    def __init__(self, name: str, message: str) -> None:
        super().__init__(f"{name}: {message}")
        self.name = name
        self.message = message


class DuplicateSecretNameError(MigrationError):
    """Raised when two distinct source leaves map to the same target name."""

    def __init__(self, name: str, first_source: str) -> None:
        super().__init__(f"Secret name '{name}' is already claimed by {first_source}")
        self.name = name
        self.first_source = first_source
