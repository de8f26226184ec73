from __future__ import annotations

import json
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import click
import pytest
from click.testing import CliRunner

from depbump.__version__ import __version__
from depbump.cli import cli, main
from depbump.exceptions import DepBumpError

PYPROJECT = '[tool.poetry.dependencies]\npython = "^3.10"\nfoo = "^1.2.0"\nbar = "^2.0.0"\n'
INDEX = {"foo": ["1.2.0", "1.5.0", "2.0.0"], "bar": ["2.0.0", "2.3.0"]}


@pytest.fixture(autouse=True)
def no_color_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.delenv("DEPBUMP_CONFIG", raising=False)


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """A Poetry project with a lock file and an offline version index."""
    (tmp_path / "pyproject.toml").write_text(PYPROJECT)
    (tmp_path / "poetry.lock").write_text("")
    (tmp_path / "index.json").write_text(json.dumps(INDEX))
    monkeypatch.chdir(tmp_path)
    yield tmp_path


def skip_validation(project: Path) -> None:
    (project / "depbump.toml").write_text("[depbump]\ncheck_compatibility = false\n")


def invoke(*args: str):
    return CliRunner().invoke(cli, list(args), catch_exceptions=False)


@pytest.mark.unit
class TestCliGroup:
    """Tests for global options."""

    def test_version(self) -> None:
        result = invoke("--version")

        assert result.exit_code == 0
        assert result.output.strip() == f"depbump {__version__}"

    def test_help_lists_upgrade(self) -> None:
        result = invoke("--help")

        assert result.exit_code == 0
        assert "upgrade" in result.output

    def test_invalid_config(self, project: Path) -> None:
        (project / "depbump.toml").write_text("[depbump]\nbogus = 1\n")

        result = invoke("upgrade", "--dry-run", "--index-file", "index.json")

        assert result.exit_code == 1
        assert "Unknown configuration keys: bogus" in result.output


@pytest.mark.unit
class TestUpgradeCommand:
    """Tests for ``depbump upgrade``."""

    def test_dry_run_leaves_manifest_unchanged(self, project: Path) -> None:
        result = invoke("upgrade", "--dry-run", "--index-file", "index.json")

        assert result.exit_code == 0
        assert (project / "pyproject.toml").read_text() == PYPROJECT
        assert "Found foo: ^1.2.0 -> 1.5.0" in result.output
        assert "Dry run complete. No changes applied." in result.output
        assert "Upgrade Plan (Dry Run)" in result.output

    def test_major_flag(self, project: Path) -> None:
        result = invoke("upgrade", "--major", "--dry-run", "--index-file", "index.json")

        assert result.exit_code == 0
        assert "Found foo: ^1.2.0 -> 2.0.0" in result.output

    def test_commit(self, project: Path) -> None:
        skip_validation(project)

        result = invoke("upgrade", "--index-file", "index.json")

        assert result.exit_code == 0
        text = (project / "pyproject.toml").read_text()
        assert 'foo = "^1.5.0"' in text
        assert 'bar = "^2.3.0"' in text
        assert 'python = "^3.10"' in text
        assert "pyproject.toml has been updated." in result.output

    def test_only(self, project: Path) -> None:
        skip_validation(project)

        result = invoke("upgrade", "--only", "bar", "--index-file", "index.json")

        assert result.exit_code == 0
        text = (project / "pyproject.toml").read_text()
        assert 'foo = "^1.2.0"' in text
        assert 'bar = "^2.3.0"' in text

    def test_patch_only(self, project: Path) -> None:
        skip_validation(project)

        result = invoke("upgrade", "--patch", "--index-file", "index.json")

        assert result.exit_code == 0
        assert "No dependency updates were required." in result.output
        assert "already satisfy" not in result.output
        assert (project / "pyproject.toml").read_text() == PYPROJECT

    def test_patch_only_verbose_explains_no_changes(self, project: Path) -> None:
        skip_validation(project)

        result = invoke("-v", "upgrade", "--patch", "--index-file", "index.json")

        assert result.exit_code == 0
        output = " ".join(result.output.split())
        assert (
            "No dependency updates were required. "
            "All dependencies already satisfy the requested constraints."
        ) in output

    def test_backup(self, project: Path) -> None:
        skip_validation(project)

        result = invoke("upgrade", "--backup", "--index-file", "index.json")

        assert result.exit_code == 0
        backups = list(project.glob("pyproject.*.backup.toml"))
        assert len(backups) == 1
        assert backups[0].read_text() == PYPROJECT

    def test_missing_lock_file(self, project: Path) -> None:
        (project / "poetry.lock").unlink()

        result = invoke("upgrade", "--index-file", "index.json")

        assert result.exit_code == 1
        assert 'No poetry.lock found. Run "poetry lock" first.' in result.output
        assert (project / "pyproject.toml").read_text() == PYPROJECT

    def test_skipped_only_shown_when_verbose(self, project: Path) -> None:
        (project / "index.json").write_text(json.dumps({"foo": ["1.2.0"], "bar": ["2.0.0"]}))

        quiet = invoke("upgrade", "--dry-run", "--index-file", "index.json")
        verbose = invoke("-v", "upgrade", "--dry-run", "--index-file", "index.json")

        assert "Skipping foo" not in quiet.output
        assert "Skipping foo: ^1.2.0 already satisfies 1.2.0" in verbose.output

    def test_lookup_errors_shown_when_verbose(self, project: Path) -> None:
        (project / "index.json").write_text(json.dumps({"bar": ["2.0.0"]}))

        result = invoke("-v", "upgrade", "--dry-run", "--index-file", "index.json")

        assert result.exit_code == 0
        assert "[ERROR] Error processing foo:" in result.output

    def test_invalid_stability(self, project: Path) -> None:
        result = invoke("upgrade", "--stability", "nightly")

        assert result.exit_code == 2

    def test_config_stability_used(self, project: Path) -> None:
        (project / "index.json").write_text(json.dumps({"foo": ["1.2.0", "1.3.0rc1"], "bar": ["2.0.0"]}))
        (project / "depbump.toml").write_text('[depbump]\nstability = "rc"\n')

        result = invoke("upgrade", "--dry-run", "--index-file", "index.json")

        assert "Found foo: ^1.2.0 -> 1.3.0rc1" in result.output


@pytest.mark.unit
class TestMain:
    """Tests for exit code mapping in main()."""

    def test_success(self) -> None:
        with patch("depbump.cli.cli") as mock_cli:
            assert main() == 0
        mock_cli.assert_called_once_with(standalone_mode=False)

    def test_click_exception(self) -> None:
        with patch("depbump.cli.cli", side_effect=click.UsageError("bad usage")):
            assert main() == 2

    def test_system_exit_code(self) -> None:
        with patch("depbump.cli.cli", side_effect=SystemExit(1)):
            assert main() == 1

    def test_depbump_error(self) -> None:
        with patch("depbump.cli.cli", side_effect=DepBumpError("broken")):
            assert main() == 1

    def test_keyboard_interrupt(self) -> None:
        with patch("depbump.cli.cli", side_effect=KeyboardInterrupt):
            assert main() == 130

    def test_unexpected_error(self) -> None:
        with patch("depbump.cli.cli", side_effect=RuntimeError("boom")):
            assert main() == 1
