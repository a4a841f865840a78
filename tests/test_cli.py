"""Tests for the CLI.

Builds run against a mocked container runtime and a temporary
SQLite history database.
"""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from bootc_imagegen import __version__
from bootc_imagegen.builds.history import BuildHistory
from bootc_imagegen.builds.schema import BuildRequest
from bootc_imagegen.cli import RichNotifier, RichProgress, app, host_arch
from bootc_imagegen.db import open_history_db
from bootc_imagegen.errors import RuntimeAdapterError
from bootc_imagegen.types import BuildStatus

runner = CliRunner()


@pytest.fixture
def db_url(tmp_path: Path):
    """Point the CLI at a temporary history database."""
    url = f"sqlite:///{tmp_path}/history.db"
    with patch.dict("os.environ", {"BOOTC_IMG_DB_URL": url}):
        yield url


@pytest.fixture
def history(db_url: str) -> BuildHistory:
    """Open the history the CLI writes to."""
    return BuildHistory(open_history_db(db_url))


@pytest.fixture
def mock_runtime():
    """Patch the CLI runtime with a mock where every call succeeds."""
    runtime = MagicMock()
    runtime.is_rootful.return_value = True
    runtime.list_containers.return_value = []
    runtime.create_and_start_container.return_value = "cid"
    with patch("bootc_imagegen.cli._get_runtime", return_value=runtime):
        yield runtime


class TestCLIHelp:
    """Test CLI help and version commands."""

    def test_help_returns_zero(self) -> None:
        """CLI --help should return exit code 0."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Bootc Image Generator" in result.stdout

    def test_version_flag(self) -> None:
        """CLI --version should print version and exit 0."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_build_help(self) -> None:
        """CLI build --help should list the build commands."""
        result = runner.invoke(app, ["build", "--help"])
        assert result.exit_code == 0
        for command in ("run", "list", "show", "delete"):
            assert command in result.stdout


class TestCLIConfig:
    """Test CLI config command."""

    def test_config_command(self) -> None:
        """CLI config should show all sections."""
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "Builder:" in result.stdout
        assert "Engines:" in result.stdout
        assert "Operational:" in result.stdout
        assert "bootc-image-builder" in result.stdout

    def test_config_json(self) -> None:
        """CLI config --json should output valid JSON."""
        result = runner.invoke(app, ["config", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["builder_image"] == "quay.io/centos-bootc/bootc-image-builder:latest"
        assert "db_url" in data

    def test_config_engine_hosts_from_env(self) -> None:
        """Engine hosts should be read from the environment as JSON."""
        env = {"BOOTC_IMG_ENGINE_HOSTS": '{"podman": "unix:///run/podman.sock"}'}
        with patch.dict("os.environ", env):
            result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "podman: unix:///run/podman.sock" in result.stdout


class TestBuildRun:
    """Test the build run command."""

    def test_successful_build(self, db_url, mock_runtime, history, tmp_path) -> None:
        """A successful build should exit 0 and be recorded."""
        out = tmp_path / "out"
        result = runner.invoke(
            app,
            ["build", "run", "quay.io/org/os", "-o", str(out), "-a", "x86_64",
             "-e", "e1", "--id", "b1"],
        )

        assert result.exit_code == 0, result.stdout
        assert "Success!" in result.stdout
        build = history.get_build_info("b1")
        assert build.status == BuildStatus.SUCCESS
        assert build.build_container_id == "cid"
        assert build.folder == str(out.absolute())
        mock_runtime.pull_image.assert_called_once_with(
            "e1", "quay.io/centos-bootc/bootc-image-builder:latest"
        )
        mock_runtime.remove_container_and_volumes.assert_called_once_with(
            "e1", "os-bootc-image-builder"
        )

    def test_default_arch_is_host(self, db_url, mock_runtime, history, tmp_path) -> None:
        """Without --arch the host architecture should be used."""
        result = runner.invoke(
            app, ["build", "run", "os", "-o", str(tmp_path), "--id", "b1"]
        )

        assert result.exit_code == 0, result.stdout
        assert history.get_build_info("b1").arch == host_arch()

    def test_failed_build(self, db_url, mock_runtime, history, tmp_path) -> None:
        """A failed build should exit 1 and report the error."""
        mock_runtime.wait_for_container_to_exit.side_effect = RuntimeAdapterError(
            "exited with code 1"
        )

        result = runner.invoke(
            app, ["build", "run", "os", "-o", str(tmp_path), "-a", "x86_64",
                  "--id", "b1"]
        )

        assert result.exit_code == 1
        assert "There was an error building the image" in result.stdout
        assert history.get_build_info("b1").status == BuildStatus.ERROR
        mock_runtime.remove_container_and_volumes.assert_called_once()

    def test_rootless_engine(self, db_url, mock_runtime, tmp_path) -> None:
        """A rootless engine should fail before anything runs."""
        mock_runtime.is_rootful.return_value = False

        result = runner.invoke(
            app, ["build", "run", "os", "-o", str(tmp_path), "-a", "x86_64"]
        )

        assert result.exit_code == 1
        assert "rootful" in result.stdout
        mock_runtime.pull_image.assert_not_called()

    def test_overwrite_declined(self, db_url, mock_runtime, tmp_path) -> None:
        """Declining the overwrite prompt should skip the build."""
        image = tmp_path / "qcow2" / "disk.qcow2"
        image.parent.mkdir()
        image.write_bytes(b"old")

        result = runner.invoke(
            app, ["build", "run", "os", "-o", str(tmp_path), "-a", "x86_64"],
            input="n\n",
        )

        assert result.exit_code == 0
        assert "Build skipped" in result.stdout
        mock_runtime.pull_image.assert_not_called()
        assert image.read_bytes() == b"old"

    def test_overwrite_assumed(self, db_url, mock_runtime, tmp_path) -> None:
        """--yes should overwrite without prompting."""
        image = tmp_path / "qcow2" / "disk.qcow2"
        image.parent.mkdir()
        image.write_bytes(b"old")

        result = runner.invoke(
            app, ["build", "run", "os", "-o", str(tmp_path), "-a", "x86_64", "-y"]
        )

        assert result.exit_code == 0, result.stdout
        mock_runtime.pull_image.assert_called_once()


class TestBuildHistoryCommands:
    """Test build list, show and delete commands."""

    def test_list_empty_json(self, db_url) -> None:
        """build list --json should return [] when history is empty."""
        result = runner.invoke(app, ["build", "list", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == []

    def test_list_empty(self, db_url) -> None:
        """build list should say when history is empty."""
        result = runner.invoke(app, ["build", "list"])
        assert result.exit_code == 0
        assert "No builds in history" in result.stdout

    def test_list_with_data(self, history) -> None:
        """build list should show each build."""
        history.add_or_update_build_info(
            BuildRequest(id="b1", name="os", tag="1.0", type="raw",
                         engine_id="e1", folder="/out", arch="aarch64",
                         status=BuildStatus.ERROR)
        )
        history.add_or_update_build_info(
            BuildRequest(id="b2", name="os", tag="2.0", type="qcow2",
                         engine_id="e1", folder="/out", arch="x86_64",
                         status=BuildStatus.SUCCESS)
        )

        result = runner.invoke(app, ["build", "list", "--status", "error", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [b["id"] for b in data] == ["b1"]
        assert data[0]["status"] == "error"

    def test_show(self, history) -> None:
        """build show should display the build."""
        history.add_or_update_build_info(
            BuildRequest(id="b1", name="os", tag="latest", type="iso",
                         engine_id="e1", folder="/out", arch="x86_64",
                         status=BuildStatus.RUNNING)
        )

        result = runner.invoke(app, ["build", "show", "b1"])

        assert result.exit_code == 0
        assert "os:latest" in result.stdout
        assert "running" in result.stdout
        assert "image-build.log" in result.stdout

    def test_show_json(self, history) -> None:
        """build show --json should output the build."""
        history.add_or_update_build_info(
            BuildRequest(id="b1", name="os", tag="latest", type="iso",
                         engine_id="e1", folder="/out", arch="x86_64")
        )

        result = runner.invoke(app, ["build", "show", "b1", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["type"] == "iso"

    def test_show_missing(self, db_url) -> None:
        """build show should fail for an unknown build."""
        result = runner.invoke(app, ["build", "show", "missing"])
        assert result.exit_code == 1
        assert "Build not found: missing" in result.stdout

    def test_delete_running(self, history, mock_runtime) -> None:
        """build delete should remove the record and the builder container."""
        history.add_or_update_build_info(
            BuildRequest(id="b1", name="os", tag="latest", type="qcow2",
                         engine_id="e1", folder="/out", arch="x86_64",
                         status=BuildStatus.RUNNING, build_container_id="cid")
        )

        result = runner.invoke(app, ["build", "delete", "b1"])

        assert result.exit_code == 0
        assert "Deleted build b1" in result.stdout
        assert history.get_history() == []
        mock_runtime.remove_container_and_volumes.assert_called_once_with("e1", "cid")

    def test_delete_missing(self, db_url, mock_runtime) -> None:
        """build delete should fail for an unknown build."""
        result = runner.invoke(app, ["build", "delete", "missing"])
        assert result.exit_code == 1
        mock_runtime.remove_container_and_volumes.assert_not_called()


class TestRichProgress:
    """Test the progress bar adapter."""

    def test_moves_forward_only(self) -> None:
        """Smaller later increments should not move the bar back."""
        progress = MagicMock()
        reporter = RichProgress(progress, "task")

        for increment in (4, 5, 6, 59, 7):
            reporter.report(increment)

        assert progress.update.call_args.kwargs["completed"] == 59

    def test_completion(self) -> None:
        """A negative increment should complete the bar."""
        progress = MagicMock()
        reporter = RichProgress(progress, "task")

        reporter.report(-1)

        progress.update.assert_called_with("task", completed=100.0)


class TestRichNotifier:
    """Test the console notifier."""

    def test_prompt_pauses_progress(self) -> None:
        """The progress display should be stopped while the user answers."""
        calls = MagicMock()
        calls.confirm.return_value = False
        notifier = RichNotifier(progress=calls.progress)

        with patch("bootc_imagegen.cli.typer.confirm", calls.confirm):
            answer = notifier.show_warning("Overwrite?", "Yes", "No")

        assert answer == "No"
        assert [c[0] for c in calls.mock_calls] == [
            "progress.stop",
            "confirm",
            "progress.start",
        ]

    def test_prompt_resumes_progress_on_abort(self) -> None:
        """The progress display should be restarted if the prompt aborts."""
        progress = MagicMock()
        notifier = RichNotifier(progress=progress)

        with patch("bootc_imagegen.cli.typer.confirm", side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                notifier.show_warning("Overwrite?", "Yes", "No")

        progress.start.assert_called_once()

    def test_assume_yes_skips_prompt(self) -> None:
        """--yes should answer without touching the progress display."""
        progress = MagicMock()
        notifier = RichNotifier(assume_yes=True, progress=progress)

        with patch("bootc_imagegen.cli.typer.confirm") as confirm:
            assert notifier.show_warning("Overwrite?", "Yes", "No") == "Yes"

        confirm.assert_not_called()
        progress.stop.assert_not_called()
