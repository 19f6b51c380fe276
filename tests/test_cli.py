"""Tests for cli.py module."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from vault_to_bws import __version__
from vault_to_bws.cli import cli
from vault_to_bws.exceptions import AuthenticationError, PreconditionError
from vault_to_bws.models import ExitCode, MigrationReport


@pytest.fixture
def mock_migrator():
    """Patch the Migrator used by the CLI."""
    with patch("vault_to_bws.cli.Migrator") as mock:
        yield mock


def _report(*, errors=False):
    report = MagicMock(spec=MigrationReport)
    report.exit_code = ExitCode.PARTIAL if errors else ExitCode.OK
    return report


class TestCliVersion:
    """Tests for version command."""

    def test_version_flag(self):
        """Test --version flag prints version."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_version_short_flag(self, mock_migrator):
        """Test -v flag prints version without running a migration."""
        runner = CliRunner()
        result = runner.invoke(cli, ["-v"])

        assert result.exit_code == 0
        assert __version__ in result.output
        mock_migrator.from_config.assert_not_called()


class TestCliHelp:
    """Tests for help output."""

    def test_help_flag(self):
        """Test --help flag shows help text."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "Migrate Ansible Vault secrets to Bitwarden Secrets Manager" in result.output
        for option in (
            "--root",
            "--project-id",
            "--environment",
            "--vault-password-file",
            "--ask-vault-password",
            "--output-dir",
            "--workers",
            "--timeout",
            "--dry-run",
            "--verbose",
        ):
            assert option in result.output


class TestCliConfig:
    """Tests for turning options into a MigrationConfig."""

    def test_options_build_config(self, mock_migrator, tmp_path):
        """Test command-line options are passed through to the migrator."""
        mock_migrator.from_config.return_value.run.return_value = _report()
        runner = CliRunner()

        result = runner.invoke(
            cli,
            [
                "--root",
                str(tmp_path),
                "--project-id",
                "project-1",
                "-e",
                "staging",
                "--output-dir",
                str(tmp_path / "out"),
                "--workers",
                "4",
                "--dry-run",
                "--yes",
            ],
        )

        assert result.exit_code == 0
        config = mock_migrator.from_config.call_args[0][0]
        assert config.root == tmp_path
        assert config.project_id == "project-1"
        assert config.environment == "staging"
        assert config.output_dir == tmp_path / "out"
        assert config.workers == 4
        assert config.dry_run is True
        assert config.assume_yes is True

    def test_environment_variables(self, mock_migrator, tmp_path):
        """Test configuration can come from the environment."""
        mock_migrator.from_config.return_value.run.return_value = _report()
        runner = CliRunner()

        result = runner.invoke(
            cli,
            [],
            env={"VAULT_TO_BWS_ROOT": str(tmp_path), "BWS_PROJECT_ID": "from-env", "VAULT_TO_BWS_ENVIRONMENT": ""},
        )

        assert result.exit_code == 0
        config = mock_migrator.from_config.call_args[0][0]
        assert config.root == tmp_path
        assert config.project_id == "from-env"
        assert config.environment == "prod"

    def test_defaults(self, mock_migrator, tmp_path):
        """Test defaults match a standard Ansible installation."""
        mock_migrator.from_config.return_value.run.return_value = _report()
        runner = CliRunner()

        runner.invoke(cli, [], env={"VAULT_TO_BWS_ROOT": None, "BWS_PROJECT_ID": None})

        config = mock_migrator.from_config.call_args[0][0]
        assert config.root == Path("/etc/ansible")
        assert config.environment == "prod"
        assert config.workers == 1
        assert config.dry_run is False

    def test_workers_out_of_range(self, mock_migrator):
        """Test an invalid worker count is a usage error."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--workers", "0"])

        assert result.exit_code != 0
        mock_migrator.from_config.assert_not_called()


class TestCliExitCodes:
    """Tests for mapping run outcomes onto exit codes."""

    def test_success(self, mock_migrator, tmp_path):
        """Test a clean run exits with 0."""
        mock_migrator.from_config.return_value.run.return_value = _report()

        result = CliRunner().invoke(cli, ["--root", str(tmp_path)])

        assert result.exit_code == 0

    def test_partial_failure(self, mock_migrator, tmp_path):
        """Test a run with recorded errors exits with 2."""
        mock_migrator.from_config.return_value.run.return_value = _report(errors=True)

        result = CliRunner().invoke(cli, ["--root", str(tmp_path)])

        assert result.exit_code == 2

    @pytest.mark.parametrize(
        "error",
        [
            PreconditionError("Ansible directory does not exist: /nope"),
            AuthenticationError("BWS_ACCESS_TOKEN environment variable is not set"),
        ],
    )
    def test_fatal_error(self, mock_migrator, tmp_path, error):
        """Test fatal errors are printed and exit with 1."""
        mock_migrator.from_config.side_effect = error

        result = CliRunner().invoke(cli, ["--root", str(tmp_path)])

        assert result.exit_code == 1
        assert str(error).split(":")[0] in result.output

    def test_interrupt(self, mock_migrator, tmp_path):
        """Test Ctrl-C exits with 130."""
        mock_migrator.from_config.return_value.run.side_effect = KeyboardInterrupt

        result = CliRunner().invoke(cli, ["--root", str(tmp_path)])

        assert result.exit_code == 130


class TestCliVerbose:
    """Tests for debug output toggling."""

    def test_ic_disabled_by_default(self, mock_migrator, tmp_path):
        """Test icecream tracing is off without --verbose."""
        mock_migrator.from_config.return_value.run.return_value = _report()

        with patch("vault_to_bws.cli.ic") as mock_ic, patch("vault_to_bws.cli.console.set_verbose") as mock_verbose:
            CliRunner().invoke(cli, ["--root", str(tmp_path)])

        mock_ic.disable.assert_called_once()
        mock_verbose.assert_called_once_with(False)

    def test_verbose_keeps_ic_enabled(self, mock_migrator, tmp_path):
        """Test --verbose leaves icecream tracing on."""
        mock_migrator.from_config.return_value.run.return_value = _report()

        with patch("vault_to_bws.cli.ic") as mock_ic, patch("vault_to_bws.cli.console.set_verbose") as mock_verbose:
            CliRunner().invoke(cli, ["--root", str(tmp_path), "--verbose"])

        mock_ic.disable.assert_not_called()
        mock_verbose.assert_called_once_with(True)
