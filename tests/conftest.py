"""Shared test fixtures for vault-to-bws tests."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from vault_to_bws.core.migrator import Migrator
from vault_to_bws.exceptions import CreationError, DecryptionError
from vault_to_bws.models import CredentialSource, MigrationConfig, SecretFile

VAULT_HEADER = "$ANSIBLE_VAULT;1.1;AES256\n"
VAULT_BODY = "6134623661376538303839366635623237363263653461613831623266316631\n"


class FakeDecryptor:
    """Decryption provider returning canned plaintext keyed by file name."""

    def __init__(self, documents: dict[str, str], failures: set[str] | None = None) -> None:
        self.documents = documents
        self.failures = failures or set()
        self.calls: list[Path] = []

    def decrypt(self, source: SecretFile, credential: CredentialSource) -> str:  # noqa: ARG002
        self.calls.append(source.path)
        if source.path.name in self.failures:
            raise DecryptionError(source.path, "Decryption failed (no vault secrets were found that could decrypt)")
        return self.documents[source.path.name]


class FakeStore:
    """Secret store test double recording every call.

    Attributes:
        fail_on: 1-based call numbers that raise CreationError.

    """

    def __init__(self, fail_on: set[int] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.calls: list[tuple[str, str, str | None]] = []

    def create_secret(self, name: str, value: str, project_id: str | None = None) -> str:
        self.calls.append((name, value, project_id))
        if len(self.calls) in self.fail_on:
            raise CreationError(name, "bws secret create failed (exit code 1) - 400 Bad Request")
        return f"secret-id-{len(self.calls)}"


@pytest.fixture
def ansible_root(tmp_path):
    """An Ansible directory with a group_vars folder."""
    root = tmp_path / "ansible"
    (root / "group_vars").mkdir(parents=True)
    return root


@pytest.fixture
def write_vault(ansible_root):
    """Factory writing a vault file (encrypted header by default) below the root."""

    def _write(relative: str, *, encrypted: bool = True) -> Path:
        path = ansible_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if encrypted:
            path.write_text(VAULT_HEADER + VAULT_BODY)
        else:
            path.write_text("db_password: changeme\n")
        return path

    return _write


@pytest.fixture
def make_config(ansible_root, tmp_path):
    """Factory building a MigrationConfig rooted at the test Ansible directory."""

    def _make(**overrides) -> MigrationConfig:
        params = {"root": ansible_root, "output_dir": tmp_path / "out", "assume_yes": True}
        params.update(overrides)
        return MigrationConfig(**params)

    return _make


@pytest.fixture
def password_credential(tmp_path):
    """A file-based vault credential."""
    password_file = tmp_path / "vault-pass.txt"
    password_file.write_text("hunter2\n")
    return CredentialSource(password_file=password_file)


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for command execution."""
    with patch("subprocess.run") as mock:
        mock.return_value = MagicMock(returncode=0, stdout="", stderr="")
        yield mock


@pytest.fixture
def secret_file(tmp_path):
    """A SecretFile for a myservice vault in staging."""
    return SecretFile(path=tmp_path / "myservice_vault.yml", service_name="myservice", environment="staging")


@pytest.fixture
def build_migrator(make_config, password_credential):
    """Factory building a Migrator wired to FakeDecryptor and FakeStore.

    ``documents`` maps vault file names to their plaintext; remaining keyword
    arguments override MigrationConfig fields.
    """

    def _build(
        documents: dict[str, str] | None = None,
        *,
        failures: set[str] | None = None,
        fail_on: set[int] | None = None,
        store=None,
        decryptor=None,
        credential: CredentialSource | None = None,
        **overrides,
    ) -> Migrator:
        return Migrator(
            make_config(**overrides),
            decryptor=decryptor or FakeDecryptor(documents or {}, failures),
            store=store or FakeStore(fail_on),
            credential=credential or password_credential,
        )

    return _build
