"""vault-to-bws: Ansible Vault to Bitwarden Secrets Manager migration.

This package finds Ansible Vault encrypted files, decrypts them in memory,
flattens their variables into individual secrets and creates those secrets
in Bitwarden Secrets Manager, writing a report and a mapping table.

Example usage:
    from pathlib import Path

    from vault_to_bws import MigrationConfig, Migrator

    # Preview a migration without touching Bitwarden
    config = MigrationConfig(root=Path("~/ansible").expanduser(), dry_run=True)
    report = Migrator.from_config(config).run()
"""

__version__ = "1.0.0"

from vault_to_bws.cli import cli
from vault_to_bws.core.migrator import Migrator
from vault_to_bws.exceptions import (
    AuthenticationError,
    CreationError,
    DecryptionError,
    DependencyMissingError,
    DuplicateSecretNameError,
    MigrationError,
    ParseError,
    PreconditionError,
)
from vault_to_bws.models import MigrationConfig, MigrationReport

__all__ = [
    # Version
    "__version__",
    # Main CLI
    "cli",
    # Classes
    "Migrator",
    "MigrationConfig",
    "MigrationReport",
    # Exceptions
    "MigrationError",
    "DependencyMissingError",
    "AuthenticationError",
    "PreconditionError",
    "DecryptionError",
    "ParseError",
    "CreationError",
    "DuplicateSecretNameError",
]
