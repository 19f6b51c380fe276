#!/usr/bin/env python
"""Command-line interface for vault-to-bws.

This module provides the main CLI entry point, turning command-line options
into a MigrationConfig, running the migration and mapping its outcome onto
the process exit code.
"""

import sys
from pathlib import Path

import click
from icecream import ic

from vault_to_bws import __version__, console
from vault_to_bws.core.migrator import MAX_WORKERS, Migrator
from vault_to_bws.exceptions import MigrationError
from vault_to_bws.models import DEFAULT_ENVIRONMENT, ExitCode, MigrationConfig

_EXIT_INTERRUPTED = 130


@click.command(help="Migrate Ansible Vault secrets to Bitwarden Secrets Manager")
@click.option("--version", "-v", required=False, is_flag=True, help="print version")
@click.option(
    "--root",
    "-r",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("/etc/ansible"),
    show_default=True,
    envvar="VAULT_TO_BWS_ROOT",
    help="ansible directory to scan for vault files",
)
@click.option("--project-id", envvar="BWS_PROJECT_ID", required=False, help="Bitwarden project ID for new secrets")
@click.option(
    "--environment",
    "-e",
    default=DEFAULT_ENVIRONMENT,
    show_default=True,
    envvar="VAULT_TO_BWS_ENVIRONMENT",
    help="environment tag prefixed to secret names",
)
@click.option(
    "--vault-password-file",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="ANSIBLE_VAULT_PASSWORD_FILE",
    required=False,
    help="vault password file (default: <root>/.vault_password)",
)
@click.option("--ask-vault-password", is_flag=True, help="prompt for the vault password")
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("migration-output"),
    show_default=True,
    help="directory for the report and mapping files",
)
@click.option(
    "--workers",
    type=click.IntRange(1, MAX_WORKERS),
    default=1,
    show_default=True,
    help="vault files processed in parallel",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=1),
    default=120.0,
    show_default=True,
    help="seconds allowed for each ansible-vault/bws call",
)
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="do not ask for confirmation")
@click.option("--dry-run", is_flag=True, help="preview the migration without creating secrets")
@click.option("--verbose", is_flag=True, help="print debug information")
def cli(
    version: bool,
    root: Path,
    project_id: str | None,
    environment: str,
    vault_password_file: Path | None,
    ask_vault_password: bool,
    output_dir: Path,
    workers: int,
    timeout: float,
    assume_yes: bool,
    dry_run: bool,
    verbose: bool,
) -> None:
    """Process CLI arguments and run the migration.

    Exits with 0 when nothing needs attention, 1 when a precondition failed
    before any file was processed and 2 when some files or secrets could not
    be migrated.

    Args:
        version: Print version and exit.
        root: Ansible directory to scan.
        project_id: Bitwarden project ID for new secrets.
        environment: Environment tag prefixed to secret names.
        vault_password_file: Vault password file.
        ask_vault_password: Prompt for the vault password.
        output_dir: Directory for the report artifacts.
        workers: Number of files processed in parallel.
        timeout: Seconds allowed for each external call.
        assume_yes: Skip confirmation prompts.
        dry_run: Preview without creating secrets.
        verbose: Enable debug output.

    """
    if not verbose:
        ic.disable()
    console.set_verbose(verbose)

    if version:
        click.echo(__version__)
        return

    config = MigrationConfig(
        root=root,
        environment=environment or DEFAULT_ENVIRONMENT,
        project_id=project_id or None,
        output_dir=output_dir,
        password_file=vault_password_file,
        ask_vault_password=ask_vault_password,
        dry_run=dry_run,
        verbose=verbose,
        workers=workers,
        timeout=timeout,
        assume_yes=assume_yes,
    )
    ic(config)

    try:
        migrator = Migrator.from_config(config)
        report = migrator.run()
    except MigrationError as e:
        console.error(str(e))
        sys.exit(int(ExitCode.FATAL))
    except KeyboardInterrupt:
        console.newline()
        console.warning("Migration interrupted")
        sys.exit(_EXIT_INTERRUPTED)

    sys.exit(int(report.exit_code))


if __name__ == "__main__":
    cli()
