"""Core infrastructure subpackage.

This package contains the Migrator orchestrator along with the host
dependency checks it runs before a migration starts.
"""

from vault_to_bws.core.host import Host
from vault_to_bws.core.migrator import Migrator

__all__ = [
    "Host",
    "Migrator",
]
