"""Migration report and secret mapping output.

At the end of a run three artifacts are written to the output directory:

* ``migration-report-<timestamp>.txt``: statistics and errors for humans
* ``secret-mapping-<timestamp>.csv``: vault variable to Bitwarden secret table
* ``errors-<timestamp>.log``: one line per error, only when errors occurred

Every artifact is written to a temporary file next to its final path and then
renamed, so an interrupted run never leaves a half-written file behind.
Secret values never reach any of them.
"""

import contextlib
import csv
import io
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import NamedTuple

from vault_to_bws import console
from vault_to_bws.models import DEFAULT_ENVIRONMENT, MigrationReport, Stage

MAPPING_HEADER = ("Vault Variable", "BWS Secret Name", "BWS Secret ID", "Source File")
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

_RULE = "═" * 64
_SUBRULE = "─" * 64


class ReportArtifacts(NamedTuple):
    """Paths of the files written for a run."""

    report: Path
    mapping: Path
    errors: Path | None


def artifact_paths(output_dir: Path, timestamp: str, *, with_errors: bool) -> ReportArtifacts:
    """Compute the artifact paths for a run.

    Args:
        output_dir: Directory receiving the artifacts.
        timestamp: Run timestamp embedded in the file names.
        with_errors: Whether an error log is written.

    Returns:
        The artifact paths.

    """
    return ReportArtifacts(
        report=output_dir / f"migration-report-{timestamp}.txt",
        mapping=output_dir / f"secret-mapping-{timestamp}.csv",
        errors=output_dir / f"errors-{timestamp}.log" if with_errors else None,
    )


def atomic_write(path: Path, content: str) -> None:
    """Write text to a path via a temporary file and an atomic rename.

    Args:
        path: Final location of the file.
        content: Text to write.

    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as stream:
            stream.write(content)
            stream.flush()
            os.fsync(stream.fileno())
        tmp_path.replace(path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp_path.unlink(missing_ok=True)
        raise


def render_mapping(report: MigrationReport) -> str:
    """Render the mapping table as CSV, one row per attempted creation.

    Every field is quoted so values containing commas, quotes or newlines can
    be parsed back unambiguously. Failed creations have an empty secret ID.

    Args:
        report: The finished run report.

    Returns:
        CSV text including the header row.

    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(MAPPING_HEADER)
    for result in report.results:
        extracted = result.named.extracted
        writer.writerow((extracted.key, result.named.target_name, result.secret_id, str(extracted.source.path)))
    return buffer.getvalue()


def render_errors(report: MigrationReport) -> str:
    """Render the error log, one tab separated line per error."""
    return "".join(f"{record.stage.value}\t{record.context}\t{record.message}\n" for record in report.errors)


def render_report(report: MigrationReport, artifacts: ReportArtifacts) -> str:
    """Render the human-readable migration report.

    Args:
        report: The finished run report.
        artifacts: Paths of the files written for the run.

    Returns:
        The report text.

    """
    environment = report.environment if report.environment else f"{DEFAULT_ENVIRONMENT} (default)"
    lines = [
        _RULE,
        "Ansible Vault to Bitwarden Secrets Manager Migration Report",
        _RULE,
        "",
        f"Migration Date: {report.started_at:%Y-%m-%d %H:%M:%S}",
        f"Ansible Directory: {report.root}",
        f"Environment: {environment}",
        f"Project ID: {report.project_id or '<none>'}",
        f"Dry Run: {str(report.dry_run).lower()}",
        f"Run Status: {'aborted' if report.aborted else 'completed'}",
        "",
        _SUBRULE,
        "Statistics",
        _SUBRULE,
        f"Vault Files Processed: {report.files_processed}",
        f"Secrets Discovered: {report.secrets_discovered}",
        f"Secrets Created: {report.secrets_created}",
        f"Errors: {report.error_count}",
        "",
    ]

    if report.errors:
        lines += [_SUBRULE, "Errors", _SUBRULE]
        for stage in Stage:
            records = report.errors_by_stage().get(stage, [])
            if not records:
                continue
            lines.append(f"[{stage.value}] ({len(records)})")
            lines += [f"  - {record.context}: {record.message}" for record in records]
        lines.append("")

    lines += [
        _SUBRULE,
        "Output Files",
        _SUBRULE,
        f"Report: {artifacts.report}",
        f"Mapping: {artifacts.mapping}",
    ]
    if artifacts.errors is not None:
        lines.append(f"Errors: {artifacts.errors}")
    lines += [
        "",
        _SUBRULE,
        "Next Steps",
        _SUBRULE,
        f"1. Review the secret mapping file: {artifacts.mapping}",
        "2. Update Ansible playbooks to use Bitwarden lookup:",
        '   OLD: variable: "{{ vault_variable_name }}"',
        "   NEW: variable: \"{{ lookup('bitwarden.secrets.lookup', 'bws-secret-id') }}\"",
        "3. Test playbooks in staging environment",
        "4. Archive vault files after successful migration",
        "",
    ]
    return "\n".join(lines)


def write_artifacts(report: MigrationReport, output_dir: Path, timestamp: str | None = None) -> ReportArtifacts:
    """Write the report, mapping table and (if needed) error log.

    Args:
        report: The finished run report.
        output_dir: Directory receiving the artifacts.
        timestamp: Timestamp for the file names; defaults to now.

    Returns:
        Paths of the written files.

    """
    stamp = timestamp or datetime.now().strftime(TIMESTAMP_FORMAT)
    artifacts = artifact_paths(output_dir, stamp, with_errors=bool(report.errors))

    atomic_write(artifacts.mapping, render_mapping(report))
    if artifacts.errors is not None:
        atomic_write(artifacts.errors, render_errors(report))
    atomic_write(artifacts.report, render_report(report, artifacts))
    return artifacts


def print_summary(report: MigrationReport, artifacts: ReportArtifacts) -> None:
    """Print the end-of-run summary to the terminal.

    Args:
        report: The finished run report.
        artifacts: Paths of the written files.

    """
    console.newline()
    if report.errors:
        console.error_table(
            "Migration Errors",
            ((record.stage.value, record.context, record.message) for record in report.errors),
        )
        console.warning(f"Migration completed with {report.error_count} error(s)")
    else:
        console.success("Migration completed successfully!")

    console.summary_panel(
        "Migration Summary" + (" (dry run)" if report.dry_run else ""),
        {
            "Files Processed": str(report.files_processed),
            "Secrets Migrated": f"{report.secrets_created} / {report.secrets_discovered}",
            "Errors": str(report.error_count),
            "Report": str(artifacts.report),
            "Mapping": str(artifacts.mapping),
        },
        border_style="yellow" if report.errors else "green",
    )
