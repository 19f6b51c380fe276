"""Migration orchestrator.

This module provides the Migrator class which drives a run: it discovers
vault files, decrypts and flattens each of them, names and creates every
secret, and finally writes the report artifacts.

Failures are isolated as narrowly as possible. A file that cannot be
decrypted or parsed is skipped; a secret the store rejects is skipped while
its siblings are still attempted. Only fatal errors abort; outcomes merged
before such an abort are still written out.
"""

from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor

from icecream import ic

from vault_to_bws import console
from vault_to_bws.core.host import Host
from vault_to_bws.exceptions import (
    CreationError,
    DecryptionError,
    DuplicateSecretNameError,
    FileScopedError,
    MigrationError,
    ParseError,
)
from vault_to_bws.models import (
    CreationResult,
    CredentialSource,
    ErrorRecord,
    Failure,
    FileOutcome,
    MigrationConfig,
    MigrationReport,
    RunState,
    SecretFile,
    Stage,
    Success,
)
from vault_to_bws.reporting import ReportArtifacts, print_summary, write_artifacts
from vault_to_bws.store import BwsClient, DryRunClient, SecretStoreClient
from vault_to_bws.vault.decryption import AnsibleVaultDecryptor, DecryptionProvider, resolve_credential
from vault_to_bws.vault.discovery import discover, validate_root
from vault_to_bws.vault.extraction import extract
from vault_to_bws.vault.naming import NameRegistry

MAX_WORKERS = 16


class Migrator:
    """Runs one vault to Bitwarden migration.

    Attributes:
        config: Resolved run parameters.
        decryptor: Provider used to decrypt vault files.
        store: Client used to create secrets.
        credential: Where the vault password comes from.
        workers: Number of files processed concurrently.
        report: Accumulated run report, owned by this instance.
        state: Current lifecycle state of the run.
        artifacts: Paths of the written report files, once the run is done
            (or was aborted after at least one file).

    """

    def __init__(
        self,
        config: MigrationConfig,
        *,
        decryptor: DecryptionProvider,
        store: SecretStoreClient,
        credential: CredentialSource,
    ) -> None:
        """Initialize the migrator with its collaborators.

        Args:
            config: Resolved run parameters.
            decryptor: Provider used to decrypt vault files.
            store: Client used to create secrets.
            credential: Where the vault password comes from.

        """
        self.config = config
        self.decryptor = decryptor
        self.store = store
        self.credential = credential
        self.workers: int = max(1, min(config.workers, MAX_WORKERS))
        self.report = MigrationReport(
            root=config.root,
            environment=config.environment,
            project_id=config.project_id,
            dry_run=config.dry_run,
        )
        self.state: RunState = RunState.IDLE
        self.artifacts: ReportArtifacts | None = None
        self._names = NameRegistry()

        if self.credential.interactive and self.workers > 1:
            console.warning("Interactive vault password prompting requires sequential processing; using 1 worker")
            self.workers = 1

    @classmethod
    def from_config(cls, config: MigrationConfig, host: Host | None = None) -> "Migrator":
        """Check every run precondition and build a migrator for real tools.

        Args:
            config: Resolved run parameters.
            host: Host used for dependency checks.

        Returns:
            A ready to run migrator.

        Raises:
            DependencyMissingError: If ansible-vault (or bws, for live runs) is missing.
            PreconditionError: If the root directory or password file is unusable.
            AuthenticationError: If Bitwarden rejects or lacks the access token.

        """
        host = host or Host()
        toolchain = host.ensure_dependencies(require_bws=not config.dry_run)
        validate_root(config.root, assume_yes=config.assume_yes)
        credential = resolve_credential(
            config.root,
            config.password_file,
            ask_vault_password=config.ask_vault_password,
        )
        decryptor = AnsibleVaultDecryptor(binary=toolchain.ansible_vault, timeout=config.timeout)

        store: SecretStoreClient
        if config.dry_run or toolchain.bws is None:
            store = DryRunClient()
        else:
            client = BwsClient(binary=toolchain.bws, timeout=config.timeout)
            client.verify_authentication()
            if not config.project_id:
                console.warning("No project ID given; bws may refuse to create secrets outside a project")
            store = client

        return cls(config, decryptor=decryptor, store=store, credential=credential)

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return (
            f"Migrator(root={self.config.root!r}, environment={self.config.environment!r}, "
            f"dry_run={self.config.dry_run!r}, workers={self.workers!r}, state={self.state.value!r})"
        )

    def run(self) -> MigrationReport:
        """Run the migration and write the report artifacts.

        Returns:
            The finished run report.

        Raises:
            MigrationError: If a fatal error (e.g. a tool vanished) aborts the run.

        """
        console.newline()
        console.action("Starting migration...")
        if self.config.dry_run:
            console.warning("DRY RUN MODE - No secrets will be created")

        try:
            self.state = RunState.DISCOVERING
            files = discover(self.config.root, self.config.environment)

            self.state = RunState.PROCESSING
            self._process(files)
        except (MigrationError, KeyboardInterrupt):
            self.state = RunState.ABORTED
            self._write_partial_report()
            raise

        self.state = RunState.REPORTING
        self.artifacts = write_artifacts(self.report, self.config.output_dir)
        print_summary(self.report, self.artifacts)
        self.state = RunState.DONE
        ic(self.report.files_processed, self.report.secrets_discovered, self.report.secrets_created)
        return self.report

    def _write_partial_report(self) -> None:
        """Persist the outcomes merged before an abort, if there are any.

        Secrets created before the abort still get a mapping row.
        """
        if not self.report.files_processed:
            return

        self.report.aborted = True
        self.artifacts = write_artifacts(self.report, self.config.output_dir)
        console.warning(
            f"Run aborted after {self.report.files_processed} file(s); "
            f"partial results written to {console.highlight(str(self.artifacts.mapping))}"
        )

    def _process(self, files: list[SecretFile]) -> None:
        """Process every file and merge the outcomes in discovery order."""
        if not files:
            return

        if self.credential.interactive:
            # Progress rendering would garble ansible-vault's password prompt
            for outcome in self._outcomes(files):
                self.report.merge(outcome)
            return

        with console.create_task_progress() as progress:
            task = progress.add_task("Migrating vault files", total=len(files))
            for outcome in self._outcomes(files):
                self.report.merge(outcome)
                progress.update(task, advance=1)

    def _outcomes(self, files: list[SecretFile]) -> Iterator[FileOutcome]:
        """Yield file outcomes in discovery order, using a worker pool if configured."""
        if self.workers == 1 or len(files) == 1:
            for source in files:
                yield self.process_file(source)
            return

        with ThreadPoolExecutor(max_workers=min(self.workers, len(files)), thread_name_prefix="vault-to-bws") as pool:
            yield from pool.map(self.process_file, files)

    def process_file(self, source: SecretFile) -> FileOutcome:
        """Decrypt, extract, name and create the secrets of one vault file.

        Recoverable errors end up in the returned outcome and are never raised.

        Args:
            source: The vault file to migrate.

        Returns:
            What happened to the file and each of its secrets.

        """
        outcome = FileOutcome(source=source)
        console.action(f"Processing: {console.highlight(source.path.name)}")

        try:
            plaintext = self.decryptor.decrypt(source, self.credential)
            secrets = extract(plaintext, source)
        except (DecryptionError, ParseError) as err:
            stage = Stage.DECRYPTION if isinstance(err, DecryptionError) else Stage.PARSING
            outcome.errors.append(_file_error(stage, err))
            console.error(f"Failed ({stage.value}): {source.path}: {err.message}")
            return outcome

        if not secrets:
            console.warning(f"No secrets found in: {source.path}")
            return outcome

        outcome.discovered = len(secrets)
        console.step(f"Found {len(secrets)} secret(s) in {source.path.name}")

        for secret in secrets:
            try:
                named = self._names.claim(secret, self.config.environment)
            except DuplicateSecretNameError as err:
                outcome.errors.append(ErrorRecord(Stage.NAMING, source.path, str(err), key=secret.key))
                console.error(f"Duplicate secret name: {console.highlight(err.name)}")
                continue

            try:
                secret_id = self.store.create_secret(named.target_name, secret.value, self.config.project_id)
            except CreationError as err:
                outcome.results.append(CreationResult(named=named, outcome=Failure(err.message)))
                outcome.errors.append(ErrorRecord(Stage.CREATION, source.path, str(err), key=secret.key))
                console.error(f"Failed to create: {console.highlight(named.target_name)}")
                continue

            outcome.results.append(CreationResult(named=named, outcome=Success(secret_id)))
            console.success(f"Created: {console.highlight(named.target_name)}")

        return outcome


def _file_error(stage: Stage, err: FileScopedError) -> ErrorRecord:
    return ErrorRecord(stage, err.path, err.message)
