"""Vault file discovery and classification.

This module finds Ansible Vault encrypted files below a root directory,
skipping unencrypted templates and files without the vault header.
"""

import os
import re
from pathlib import Path

import questionary
from icecream import ic

from vault_to_bws import console
from vault_to_bws.exceptions import PreconditionError
from vault_to_bws.models import DEFAULT_ENVIRONMENT, SecretFile
from vault_to_bws.styles import PROMPT_STYLE, QMARK

VAULT_FILE_PATTERNS = ("*vault*.yml", "*vault*.yaml")
TEMPLATE_SUFFIXES = (".template", ".example")
YAML_SUFFIXES = (".yml", ".yaml")

# First line of an Ansible Vault 1.x container, e.g. "$ANSIBLE_VAULT;1.1;AES256"
_VAULT_HEADER = re.compile(rb"^\$ANSIBLE_VAULT;1\.\d;AES256")
_HEADER_READ_LIMIT = 256


def is_template(path: Path) -> bool:
    """Check whether a file is an unencrypted template/example counterpart.

    Matches both ``vault.yml.template`` and ``vault.template.yml`` styles.

    Args:
        path: The file to check.

    Returns:
        True if the file carries a template or example suffix.

    """
    suffixes = [suffix.lower() for suffix in path.suffixes]
    if not suffixes:
        return False
    if suffixes[-1] in TEMPLATE_SUFFIXES:
        return True
    return len(suffixes) > 1 and suffixes[-1] in YAML_SUFFIXES and suffixes[-2] in TEMPLATE_SUFFIXES


def is_vault_encrypted(path: Path) -> bool:
    """Check the file header for the Ansible Vault signature.

    Only the first line is read.

    Args:
        path: The file to check.

    Returns:
        True if the file starts with an Ansible Vault header.

    """
    with path.open("rb") as stream:
        header = stream.readline(_HEADER_READ_LIMIT)
    return bool(_VAULT_HEADER.match(header))


def derive_service_name(path: Path) -> str:
    """Derive the service name used in secret names from a vault file name.

    The YAML suffix and every ``_vault`` marker are removed and underscores
    become hyphens, so ``grafana_vault.yml`` yields ``grafana``.

    Args:
        path: Path of the vault file.

    Returns:
        The service name.

    """
    name = path.name
    for suffix in YAML_SUFFIXES:
        if name.endswith(suffix):
            name = name[: -len(suffix)]
            break
    return name.replace("_vault", "").replace("_", "-")


def validate_root(root: Path, *, assume_yes: bool = False) -> None:
    """Validate the directory that will be scanned for vault files.

    Args:
        root: Directory to validate.
        assume_yes: Skip the confirmation for directories that do not look
            like an Ansible tree.

    Raises:
        PreconditionError: If the directory is missing or unreadable, or the
            user declines to continue.

    """
    console.info(f"Validating ansible directory: {console.highlight(str(root))}")

    if not root.is_dir():
        raise PreconditionError(f"Ansible directory does not exist: {root}")
    if not os.access(root, os.R_OK | os.X_OK):
        raise PreconditionError(f"Ansible directory is not readable: {root}")

    if not (root / "group_vars").is_dir() and not (root / "host_vars").is_dir():
        console.warning("Directory does not appear to be an ansible directory (no group_vars or host_vars)")
        if not assume_yes:
            proceed = questionary.confirm(
                "Continue anyway?",
                default=False,
                style=PROMPT_STYLE,
                qmark=QMARK,
            ).unsafe_ask()
            if not proceed:
                raise PreconditionError("Aborted: directory is not an ansible directory")

    console.success("Ansible directory validated")


def discover(root: Path, environment: str = DEFAULT_ENVIRONMENT) -> list[SecretFile]:
    """Find encrypted vault files below a root directory.

    Args:
        root: Directory to scan recursively.
        environment: Environment tag attached to every discovered file.

    Returns:
        Vault files sorted by path, so repeated runs report in the same order.

    """
    console.action(f"Scanning for vault files in {console.highlight(str(root))}")

    candidates: set[Path] = set()
    for pattern in VAULT_FILE_PATTERNS:
        candidates.update(path for path in root.rglob(pattern) if path.is_file())

    found: list[SecretFile] = []
    for path in sorted(candidates, key=str):
        if is_template(path):
            console.debug(f"Skipping template file: {path}")
            continue

        try:
            encrypted = is_vault_encrypted(path)
        except OSError as err:
            console.warning(f"Skipping unreadable file {console.highlight(str(path))}: {err.strerror}")
            continue

        if not encrypted:
            console.warning(f"Skipping unencrypted file: {console.highlight(str(path))}")
            continue

        found.append(SecretFile(path=path, service_name=derive_service_name(path), environment=environment))
        console.debug(f"Found encrypted vault file: {path}")

    ic(found)

    if found:
        console.success(f"Found {console.highlight(str(len(found)))} encrypted vault file(s)")
    else:
        console.warning(f"No encrypted vault files found in {console.highlight(str(root))}")
    return found
