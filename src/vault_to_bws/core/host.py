"""Host system utilities for vault-to-bws.

This module locates the external tools a migration relies on and checks
their versions. Installing the tools is left to the operator.
"""

import re
import shutil
import subprocess
from typing import NamedTuple

from icecream import ic

from vault_to_bws import console
from vault_to_bws.exceptions import DependencyMissingError

REQUIRED_ANSIBLE_VERSION = "2.19.0"
REQUIRED_BWS_VERSION = "1.0.0"

# Semantic version pattern for validation
_SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+(?:-[\w.]+)?(?:\+[\w.]+)?$")
_VERSION_IN_TEXT = re.compile(r"(\d+)\.(\d+)\.(\d+)")

_INSTALL_HINTS = {
    "ansible-vault": "pip install 'ansible-core>={version}'",
    "bws": "cargo install bws, or download a release from https://github.com/bitwarden/sdk/releases",
}


def normalize_version(version: str) -> str:
    """Normalize a version string by removing a leading 'v' prefix if present.

    Args:
        version: The version string (e.g., 'v1.0.0' or '1.0.0').

    Returns:
        The version string without leading 'v' (e.g., '1.0.0').

    Raises:
        ValueError: If version is empty or doesn't match semantic versioning.

    """
    if not version:
        raise ValueError("Version string cannot be None or empty")

    normalized = version[1:] if version.startswith("v") else version

    if not _SEMVER_PATTERN.match(normalized):
        raise ValueError(f"Invalid version format: '{normalized}' does not match semantic versioning pattern")

    return normalized


def version_tuple(version: str) -> tuple[int, int, int]:
    """Return the numeric (major, minor, patch) part of a version string.

    Raises:
        ValueError: If the version is not a semantic version.

    """
    major, minor, patch = normalize_version(version).split("-")[0].split("+")[0].split(".")
    return int(major), int(minor), int(patch)


def extract_version(output: str) -> str | None:
    """Find the first ``X.Y.Z`` version in a tool's ``--version`` output."""
    match = _VERSION_IN_TEXT.search(output)
    return match.group(0) if match else None


class Toolchain(NamedTuple):
    """Resolved paths of the external tools.

    Attributes:
        ansible_vault: Path to ansible-vault.
        bws: Path to bws, or None when it is not needed (dry run).

    """

    ansible_vault: str
    bws: str | None


class Host:
    """Checks the host for the tools needed by a migration.

    Attributes:
        timeout: Seconds to wait for a ``--version`` call.

    """

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"Host(timeout={self.timeout!r})"

    @staticmethod
    def find_binary(name: str, required_version: str) -> str:
        """Locate a binary on PATH.

        Args:
            name: Binary name.
            required_version: Minimum version, used in the install hint.

        Returns:
            Full path to the binary.

        Raises:
            DependencyMissingError: If the binary is not on PATH.

        """
        path = shutil.which(name)
        if path is None:
            hint = _INSTALL_HINTS.get(name, "").format(version=required_version)
            message = f"{name} not found. Please install it or ensure it's in your PATH."
            raise DependencyMissingError(f"{message} Install with: {hint}" if hint else message)
        return path

    def get_version(self, binary: str) -> str | None:
        """Ask a binary for its version.

        Args:
            binary: Path to the binary.

        Returns:
            The version, or None if it could not be determined.

        """
        cmd = [binary, "--version"]
        ic(cmd)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout, check=False)
        except (OSError, subprocess.TimeoutExpired) as err:
            console.debug(f"Could not determine version of {binary}: {err}")
            return None
        return extract_version(result.stdout) or extract_version(result.stderr)

    def check_tool(self, name: str, required_version: str) -> str:
        """Locate a tool and warn when it is older than required.

        Args:
            name: Binary name.
            required_version: Minimum supported version.

        Returns:
            Full path to the binary.

        Raises:
            DependencyMissingError: If the binary is not on PATH.

        """
        path = self.find_binary(name, required_version)
        found = self.get_version(path)
        console.debug(f"Found {name} version: {found}")

        if found is None:
            console.warning(f"Could not determine {name} version; proceeding anyway")
        elif version_tuple(found) < version_tuple(required_version):
            console.warning(
                f"{name} version {found} is older than required {required_version} (may cause issues)"
            )
        else:
            console.success(f"{name} found (version: {console.highlight(found)})")
        return path

    def ensure_dependencies(self, *, require_bws: bool = True) -> Toolchain:
        """Check every tool the run needs.

        Args:
            require_bws: Whether bws is needed (it is not for dry runs).

        Returns:
            The resolved tool paths.

        Raises:
            DependencyMissingError: If a required tool is missing.

        """
        console.info("Checking dependencies...")
        ansible_vault = self.check_tool("ansible-vault", REQUIRED_ANSIBLE_VERSION)
        bws = self.check_tool("bws", REQUIRED_BWS_VERSION) if require_bws else None
        console.success("All dependencies satisfied")
        return Toolchain(ansible_vault=ansible_vault, bws=bws)
