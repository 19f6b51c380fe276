"""Bitwarden Secrets Manager client.

This module wraps the ``bws`` CLI for creating secrets and provides a dry-run
stand-in that never leaves the process. A single attempt is made per secret;
nothing here retries.
"""

import hashlib
import json
import os
import subprocess
from typing import Protocol

from icecream import ic

from vault_to_bws import console
from vault_to_bws.exceptions import AuthenticationError, CreationError, DependencyMissingError

ACCESS_TOKEN_ENV = "BWS_ACCESS_TOKEN"

_OUTPUT_ARGS = ["--output", "json", "--color", "no"]
_REDACTED = "***"

_ERR_BINARY_NOT_FOUND = "bws not found; please install the Bitwarden Secrets Manager CLI and ensure it's on PATH"
_ERR_TOKEN_MISSING = f"""{ACCESS_TOKEN_ENV} environment variable is not set

Set it before running the migration:

  export {ACCESS_TOKEN_ENV}="your-machine-account-token"

To persist it, append the export line to ~/.bashrc or ~/.zshrc and restart your shell."""


class SecretStoreClient(Protocol):
    """Anything able to create a secret and return its identifier."""

    def create_secret(self, name: str, value: str, project_id: str | None = None) -> str: ...


def dry_run_secret_id(name: str) -> str:
    """Return the placeholder identifier reported for a simulated secret.

    Derived from the name alone so that dry runs are reproducible.

    Args:
        name: Target secret name.

    Returns:
        A synthetic secret identifier.

    """
    digest = hashlib.sha256(name.encode()).hexdigest()
    return f"dryrun-{digest[:16]}"


class DryRunClient:
    """Secret store stand-in used with ``--dry-run``; performs no external call."""

    def create_secret(self, name: str, value: str, project_id: str | None = None) -> str:  # noqa: ARG002
        console.info(f"[DRY RUN] Would create secret: {console.highlight(name)}")
        return dry_run_secret_id(name)


def _redact(text: str, secret: str) -> str:
    """Remove every occurrence of a secret value from a diagnostic."""
    if not secret:
        return text
    return text.replace(secret, _REDACTED)


class BwsClient:
    """Creates secrets through the ``bws`` binary.

    Attributes:
        binary: Path to the bws binary.
        timeout: Seconds to wait for a single bws call.

    """

    def __init__(self, binary: str = "bws", timeout: float = 120.0, access_token: str | None = None) -> None:
        self.binary = binary
        self.timeout = timeout
        self._access_token = access_token

    def __repr__(self) -> str:
        return f"BwsClient(binary={self.binary!r}, timeout={self.timeout!r})"

    @property
    def access_token(self) -> str:
        token = self._access_token if self._access_token is not None else os.environ.get(ACCESS_TOKEN_ENV, "")
        return token.strip()

    def _env(self) -> dict[str, str]:
        return {**os.environ, ACCESS_TOKEN_ENV: self.access_token}

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        """Run bws with JSON output and return the completed process.

        Raises:
            DependencyMissingError: If bws is not installed.
            subprocess.TimeoutExpired: If the call exceeds the timeout.

        """
        try:
            return subprocess.run(
                [self.binary, *args],
                capture_output=True,
                env=self._env(),
                timeout=self.timeout,
                text=True,
                # Undecodable bytes become U+FFFD
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except FileNotFoundError as err:
            raise DependencyMissingError(_ERR_BINARY_NOT_FOUND) from err

    def verify_authentication(self) -> None:
        """Check that the access token is present and accepted.

        Raises:
            AuthenticationError: If the token is missing or rejected.
            DependencyMissingError: If bws is not installed.

        """
        if not self.access_token:
            raise AuthenticationError(_ERR_TOKEN_MISSING)

        cmd = ["project", "list", *_OUTPUT_ARGS]
        ic(cmd)

        try:
            with console.spinner("Checking Bitwarden authentication..."):
                result = self._run(cmd)
        except subprocess.TimeoutExpired as err:
            raise AuthenticationError(f"Bitwarden did not answer within {self.timeout:g}s") from err

        if result.returncode != 0:
            details = result.stderr.strip().splitlines()[-1] if result.stderr.strip() else ""
            message = "Failed to authenticate with Bitwarden Secrets Manager; verify that BWS_ACCESS_TOKEN is valid"
            raise AuthenticationError(f"{message} ({details})" if details else message)

        console.success("Bitwarden authentication successful")

    def create_secret(self, name: str, value: str, project_id: str | None = None) -> str:
        """Create a secret and return its identifier.

        The value is passed as an argument after ``--`` so values starting
        with a dash are not read as options.

        Args:
            name: Target secret name (bws key).
            value: Secret value.
            project_id: Project to create the secret in.

        Returns:
            The identifier Bitwarden assigned to the new secret.

        Raises:
            CreationError: If bws rejects the secret, times out or returns
                output without an identifier.
            DependencyMissingError: If bws is not installed.

        """
        args = ["secret", "create", *_OUTPUT_ARGS, "--", name, value]
        if project_id:
            args.append(project_id)
        # Don't trace args as they contain the secret value
        console.debug(f"Creating secret: {name}")

        try:
            result = self._run(args)
        except subprocess.TimeoutExpired as err:
            raise CreationError(
                name, f"bws timed out after {self.timeout:g}s; the secret may exist, verify before re-running"
            ) from err

        if result.returncode != 0:
            stderr_msg = _redact(result.stderr.strip(), value)
            details = f" - {stderr_msg.splitlines()[-1]}" if stderr_msg else ""
            raise CreationError(name, f"bws secret create failed (exit code {result.returncode}){details}")

        try:
            payload = json.loads(result.stdout)
        except json.JSONDecodeError as err:
            raise CreationError(name, "bws returned non-JSON output") from err

        secret_id = payload.get("id") if isinstance(payload, dict) else None
        if not isinstance(secret_id, str) or not secret_id:
            raise CreationError(name, "Failed to extract secret ID from bws output")

        console.debug(f"Created secret with ID: {secret_id}")
        return secret_id
