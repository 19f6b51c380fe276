"""Tests for core/host.py module."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from vault_to_bws.core.host import (
    REQUIRED_ANSIBLE_VERSION,
    Host,
    Toolchain,
    extract_version,
    normalize_version,
    version_tuple,
)
from vault_to_bws.exceptions import DependencyMissingError


class TestVersionHelpers:
    """Tests for version string helpers."""

    def test_normalize_with_v_prefix(self):
        """Test a leading 'v' is stripped."""
        assert normalize_version("v1.0.0") == "1.0.0"

    def test_normalize_without_prefix(self):
        """Test a plain version is returned unchanged."""
        assert normalize_version("2.19.1") == "2.19.1"

    def test_normalize_prerelease(self):
        """Test pre-release suffixes are accepted."""
        assert normalize_version("v1.0.0-rc.1") == "1.0.0-rc.1"

    @pytest.mark.parametrize("version", ["", "1.0", "latest", "v"])
    def test_normalize_invalid(self, version):
        """Test non semantic versions are rejected."""
        with pytest.raises(ValueError):
            normalize_version(version)

    def test_version_tuple_ignores_suffixes(self):
        """Test pre-release and build metadata are ignored for comparisons."""
        assert version_tuple("2.19.0-beta1+build.5") == (2, 19, 0)
        assert version_tuple("1.10.0") > version_tuple("1.9.9")

    @pytest.mark.parametrize(
        ("output", "expected"),
        [
            ("ansible-vault [core 2.19.2]\n  config file = None\n", "2.19.2"),
            ("bws 1.0.0\n", "1.0.0"),
            ("no version here", None),
        ],
    )
    def test_extract_version(self, output, expected):
        """Test the first X.Y.Z in tool output is found."""
        assert extract_version(output) == expected


class TestFindBinary:
    """Tests for binary lookup."""

    def test_found(self):
        """Test the full path is returned when the binary is on PATH."""
        with patch("vault_to_bws.core.host.shutil.which", return_value="/usr/bin/bws"):
            assert Host.find_binary("bws", "1.0.0") == "/usr/bin/bws"

    def test_missing_with_hint(self):
        """Test a missing binary raises with an install hint."""
        with patch("vault_to_bws.core.host.shutil.which", return_value=None):
            with pytest.raises(DependencyMissingError) as exc_info:
                Host.find_binary("ansible-vault", REQUIRED_ANSIBLE_VERSION)

        assert "ansible-vault not found" in str(exc_info.value)
        assert f"ansible-core>={REQUIRED_ANSIBLE_VERSION}" in str(exc_info.value)


class TestGetVersion:
    """Tests for tool version detection."""

    def test_version_from_stdout(self, mock_subprocess):
        """Test the version is read from stdout."""
        mock_subprocess.return_value = MagicMock(returncode=0, stdout="bws 1.2.3\n", stderr="")

        assert Host(timeout=3).get_version("/usr/bin/bws") == "1.2.3"
        mock_subprocess.assert_called_once_with(
            ["/usr/bin/bws", "--version"], capture_output=True, text=True, timeout=3, check=False
        )

    def test_version_unavailable(self, mock_subprocess):
        """Test a hanging binary yields no version instead of failing."""
        mock_subprocess.side_effect = subprocess.TimeoutExpired(["bws"], 3)

        assert Host().get_version("/usr/bin/bws") is None


class TestCheckTool:
    """Tests for tool version warnings."""

    def test_old_version_warns(self):
        """Test an outdated tool only produces a warning."""
        host = Host()
        with (
            patch.object(Host, "find_binary", return_value="/usr/bin/ansible-vault"),
            patch.object(host, "get_version", return_value="2.14.0"),
            patch("vault_to_bws.core.host.console.warning") as mock_warning,
        ):
            path = host.check_tool("ansible-vault", "2.19.0")

        assert path == "/usr/bin/ansible-vault"
        mock_warning.assert_called_once()
        assert "older than required" in mock_warning.call_args[0][0]

    def test_current_version_does_not_warn(self):
        """Test a recent enough tool is accepted silently."""
        host = Host()
        with (
            patch.object(Host, "find_binary", return_value="/usr/bin/bws"),
            patch.object(host, "get_version", return_value="1.0.0"),
            patch("vault_to_bws.core.host.console.warning") as mock_warning,
        ):
            host.check_tool("bws", "1.0.0")

        mock_warning.assert_not_called()


class TestEnsureDependencies:
    """Tests for the combined dependency check."""

    def test_all_tools(self):
        """Test both tools are resolved for a live run."""
        host = Host()
        with patch.object(host, "check_tool", side_effect=["/bin/ansible-vault", "/bin/bws"]) as mock_check:
            toolchain = host.ensure_dependencies()

        assert toolchain == Toolchain(ansible_vault="/bin/ansible-vault", bws="/bin/bws")
        assert mock_check.call_count == 2

    def test_dry_run_skips_bws(self):
        """Test bws is not required when it will not be used."""
        host = Host()
        with patch.object(host, "check_tool", return_value="/bin/ansible-vault") as mock_check:
            toolchain = host.ensure_dependencies(require_bws=False)

        assert toolchain.bws is None
        mock_check.assert_called_once_with("ansible-vault", REQUIRED_ANSIBLE_VERSION)
