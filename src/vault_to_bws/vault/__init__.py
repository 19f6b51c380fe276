"""Ansible Vault side of the migration.

This package contains modules for finding vault files, decrypting them,
flattening their content into secrets and naming those secrets.
"""

from vault_to_bws.vault.decryption import AnsibleVaultDecryptor, DecryptionProvider, resolve_credential
from vault_to_bws.vault.discovery import derive_service_name, discover, validate_root
from vault_to_bws.vault.extraction import extract, flatten, parse_document
from vault_to_bws.vault.naming import NameRegistry, secret_name

__all__ = [
    # discovery
    "discover",
    "derive_service_name",
    "validate_root",
    # decryption
    "DecryptionProvider",
    "AnsibleVaultDecryptor",
    "resolve_credential",
    # extraction
    "extract",
    "flatten",
    "parse_document",
    # naming
    "secret_name",
    "NameRegistry",
]
