"""Data models for vault-to-bws.

This module provides the type-safe data structures that flow through a
migration run: discovered vault files, the parsed document model, extracted
and named secrets, creation outcomes and the run report.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from pathlib import Path

DEFAULT_ENVIRONMENT = "prod"


class Stage(str, Enum):
    """Pipeline stage an error was recorded in."""

    DECRYPTION = "decryption"
    PARSING = "parsing"
    NAMING = "naming"
    CREATION = "creation"


class RunState(str, Enum):
    """Lifecycle of a single migration run."""

    IDLE = "idle"
    DISCOVERING = "discovering"
    PROCESSING = "processing"
    REPORTING = "reporting"
    DONE = "done"
    ABORTED = "aborted"


class ExitCode(IntEnum):
    """Process exit codes.

    Attributes:
        OK: Run completed with zero recorded errors.
        FATAL: A precondition failed before any file was processed.
        PARTIAL: Run completed but some files or secrets need attention.

    """

    OK = 0
    FATAL = 1
    PARTIAL = 2


@dataclass(frozen=True, slots=True)
class SecretFile:
    """An encrypted vault file selected for migration.

    Attributes:
        path: Location of the vault file.
        service_name: Service name derived from the file name.
        environment: Environment tag used when naming its secrets.

    """

    path: Path
    service_name: str
    environment: str = DEFAULT_ENVIRONMENT


# Document model produced from decrypted YAML. Mapping order is preserved.


@dataclass(frozen=True, slots=True)
class Scalar:
    """A leaf value (string, number or boolean)."""

    value: str | int | float | bool

    @property
    def text(self) -> str:
        return str(self.value)


@dataclass(frozen=True, slots=True)
class ListValue:
    """An ordered sequence of values."""

    items: tuple["StructuredValue", ...] = ()


@dataclass(frozen=True, slots=True)
class MapValue:
    """An ordered mapping of string keys to values."""

    entries: tuple[tuple[str, "StructuredValue"], ...] = ()


@dataclass(frozen=True, slots=True)
class Null:
    """An explicitly empty value, e.g. a commented-out variable."""


StructuredValue = Scalar | ListValue | MapValue | Null


@dataclass(frozen=True, slots=True)
class ExtractedSecret:
    """A single leaf secret flattened out of a vault file.

    The value is excluded from ``repr`` so that tracing never prints it.

    Attributes:
        key: Dotted path of the leaf inside the document.
        value: Secret value as text.
        source: The vault file it came from.

    """

    key: str
    value: str = field(repr=False)
    source: SecretFile


@dataclass(frozen=True, slots=True)
class NamedSecret:
    """An extracted secret paired with its target secret name."""

    extracted: ExtractedSecret
    target_name: str


@dataclass(frozen=True, slots=True)
class Success:
    """Secret created (or simulated) with the given identifier."""

    secret_id: str


@dataclass(frozen=True, slots=True)
class Failure:
    """Secret creation failed; the diagnostic never contains the value."""

    diagnostic: str


@dataclass(frozen=True, slots=True)
class CreationResult:
    """Outcome of one attempted secret creation."""

    named: NamedSecret
    outcome: Success | Failure

    @property
    def succeeded(self) -> bool:
        return isinstance(self.outcome, Success)

    @property
    def secret_id(self) -> str:
        return self.outcome.secret_id if isinstance(self.outcome, Success) else ""


@dataclass(frozen=True, slots=True)
class ErrorRecord:
    """A recoverable error captured during the run.

    Attributes:
        stage: Pipeline stage that failed.
        path: Vault file the error relates to.
        message: Human readable diagnostic.
        key: Dotted variable key, for secret-scoped errors.

    """

    stage: Stage
    path: Path
    message: str
    key: str | None = None

    @property
    def context(self) -> str:
        return f"{self.path} [{self.key}]" if self.key else str(self.path)


@dataclass(slots=True)
class FileOutcome:
    """Everything that happened while processing one vault file."""

    source: SecretFile
    discovered: int = 0
    results: list[CreationResult] = field(default_factory=list)
    errors: list[ErrorRecord] = field(default_factory=list)

    @property
    def created(self) -> int:
        return sum(1 for result in self.results if result.succeeded)


@dataclass(slots=True)
class MigrationReport:
    """Accumulated statistics and outcomes of a migration run.

    Only the migrator mutates a report; file outcomes are merged one at a
    time in discovery order.
    """

    root: Path
    environment: str = DEFAULT_ENVIRONMENT
    project_id: str | None = None
    dry_run: bool = False
    started_at: datetime = field(default_factory=datetime.now)
    aborted: bool = False
    files_processed: int = 0
    secrets_discovered: int = 0
    secrets_created: int = 0
    errors: list[ErrorRecord] = field(default_factory=list)
    results: list[CreationResult] = field(default_factory=list)

    def merge(self, outcome: FileOutcome) -> None:
        """Fold the outcome of one processed file into the totals."""
        self.files_processed += 1
        self.secrets_discovered += outcome.discovered
        self.secrets_created += outcome.created
        self.results.extend(outcome.results)
        self.errors.extend(outcome.errors)

    def errors_by_stage(self) -> dict[Stage, list[ErrorRecord]]:
        grouped: dict[Stage, list[ErrorRecord]] = {}
        for record in self.errors:
            grouped.setdefault(record.stage, []).append(record)
        return grouped

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def exit_code(self) -> ExitCode:
        return ExitCode.PARTIAL if self.errors else ExitCode.OK


@dataclass(frozen=True, slots=True)
class CredentialSource:
    """Where ansible-vault gets the vault password from.

    Attributes:
        password_file: Password file for automated mode, or None when
            ansible-vault should prompt on the terminal.

    """

    password_file: Path | None = None

    @property
    def interactive(self) -> bool:
        return self.password_file is None


@dataclass(frozen=True, slots=True)
class MigrationConfig:
    """Resolved run parameters.

    Attributes:
        root: Directory scanned for vault files.
        environment: Environment tag prefixed to every secret name.
        project_id: Bitwarden project the secrets are created in.
        output_dir: Directory receiving the report artifacts.
        password_file: Explicitly configured vault password file.
        ask_vault_password: Force interactive password prompting.
        dry_run: Simulate secret creation without contacting Bitwarden.
        verbose: Print debug diagnostics.
        workers: Number of files processed concurrently.
        timeout: Per external call timeout in seconds.
        assume_yes: Answer yes to confirmation prompts.

    """

    root: Path
    environment: str = DEFAULT_ENVIRONMENT
    project_id: str | None = None
    output_dir: Path = Path("migration-output")
    password_file: Path | None = None
    ask_vault_password: bool = False
    dry_run: bool = False
    verbose: bool = False
    workers: int = 1
    timeout: float = 120.0
    assume_yes: bool = False
