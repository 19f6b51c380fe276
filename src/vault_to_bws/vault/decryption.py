"""Vault decryption through the ansible-vault binary.

Decrypted content is only ever held in memory: ``ansible-vault view`` writes
the plaintext to a pipe and nothing is written to disk.
"""

import os
import subprocess
from pathlib import Path
from typing import Protocol

from icecream import ic

from vault_to_bws import console
from vault_to_bws.exceptions import DecryptionError, DependencyMissingError, PreconditionError
from vault_to_bws.models import CredentialSource, SecretFile

DEFAULT_PASSWORD_FILE_NAME = ".vault_password"

_ERR_BINARY_NOT_FOUND = "ansible-vault not found; please install ansible-core and ensure it's on PATH"


class DecryptionProvider(Protocol):
    """Anything able to turn a vault file into plaintext."""

    def decrypt(self, source: SecretFile, credential: CredentialSource) -> str: ...


def resolve_credential(
    root: Path,
    password_file: Path | None = None,
    *,
    ask_vault_password: bool = False,
) -> CredentialSource:
    """Decide how the vault password will be supplied.

    Args:
        root: Ansible directory, searched for a default ``.vault_password``.
        password_file: Explicitly configured password file.
        ask_vault_password: Force interactive prompting.

    Returns:
        The credential source for the run.

    Raises:
        PreconditionError: If an explicitly configured password file cannot be read.

    """
    if ask_vault_password:
        console.info("Will prompt for vault password when decrypting files")
        return CredentialSource()

    if password_file is not None:
        if not password_file.is_file() or not os.access(password_file, os.R_OK):
            raise PreconditionError(f"Vault password file is not readable: {password_file}")
        console.success(f"Using vault password file: {console.highlight(str(password_file))}")
        return CredentialSource(password_file=password_file)

    default_file = root / DEFAULT_PASSWORD_FILE_NAME
    if default_file.is_file() and os.access(default_file, os.R_OK):
        console.success(f"Found vault password file: {console.highlight(str(default_file))}")
        return CredentialSource(password_file=default_file)

    console.warning(f"Vault password file not found: {default_file}")
    console.info("Will prompt for vault password when decrypting files")
    return CredentialSource()


class AnsibleVaultDecryptor:
    """Decrypts vault files by running ``ansible-vault view``.

    Attributes:
        binary: Path to the ansible-vault binary.
        timeout: Seconds to wait for a single decryption.

    """

    def __init__(self, binary: str = "ansible-vault", timeout: float = 120.0) -> None:
        self.binary = binary
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"AnsibleVaultDecryptor(binary={self.binary!r}, timeout={self.timeout!r})"

    def build_command(self, source: SecretFile, credential: CredentialSource) -> list[str]:
        """Build the ansible-vault command for one file.

        Args:
            source: The vault file to decrypt.
            credential: Where the vault password comes from.

        Returns:
            List of command arguments ready for subprocess execution.

        """
        cmd: list[str] = [self.binary, "view", str(source.path)]
        if credential.interactive:
            cmd.append("--ask-vault-password")
        else:
            cmd.append(f"--vault-password-file={credential.password_file}")
        return cmd

    def decrypt(self, source: SecretFile, credential: CredentialSource) -> str:
        """Decrypt a vault file and return its plaintext.

        Args:
            source: The vault file to decrypt.
            credential: Where the vault password comes from.

        Returns:
            The decrypted file content.

        Raises:
            DecryptionError: If the password is wrong, the tool fails or times out,
                or the file decrypts to nothing.
            DependencyMissingError: If ansible-vault is not installed.

        """
        cmd = self.build_command(source, credential)
        ic(cmd)

        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                # In interactive mode ansible-vault must be able to show its prompt
                stderr=None if credential.interactive else subprocess.PIPE,
                env={**os.environ, "PAGER": "cat"},
                timeout=self.timeout,
                check=True,
            )
        except FileNotFoundError as err:
            raise DependencyMissingError(_ERR_BINARY_NOT_FOUND) from err
        except subprocess.TimeoutExpired as err:
            raise DecryptionError(source.path, f"ansible-vault timed out after {self.timeout:g}s") from err
        except subprocess.CalledProcessError as err:
            details = _last_line(err.stderr)
            message = f"ansible-vault failed (exit code {err.returncode})"
            if details:
                message = f"{message} - {details}"
            raise DecryptionError(source.path, message) from err

        try:
            plaintext = result.stdout.decode("utf-8")
        except UnicodeDecodeError as err:
            raise DecryptionError(
                source.path, f"Decrypted content is not valid UTF-8 (invalid byte at offset {err.start})"
            ) from err

        if not plaintext.strip():
            raise DecryptionError(source.path, "Decryption returned empty content")

        console.debug(f"Decrypted {len(plaintext.splitlines())} lines from {source.path.name}")
        return plaintext


def _last_line(stderr: bytes | str | None) -> str:
    """Return the last non-empty line of a tool's stderr."""
    if not stderr:
        return ""
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    lines = [line.strip() for line in stderr.splitlines() if line.strip()]
    return lines[-1] if lines else ""
