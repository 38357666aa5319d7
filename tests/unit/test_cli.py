"""
Unit tests for the command line interface.
"""

from pathlib import Path

import pytest
from click.testing import CliRunner

from jobqueue.cli import cli
from jobqueue.config import get_settings


@pytest.fixture
def runner(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    """CLI runner against a fresh SQLite database."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    get_settings.cache_clear()

    runner = CliRunner()
    result = runner.invoke(cli, ["init-db"])
    assert result.exit_code == 0, result.output

    yield runner

    get_settings.cache_clear()


class TestCli:
    """Tests for CLI commands."""

    def test_handlers(self, runner: CliRunner):
        """Test listing registered job types."""
        result = runner.invoke(cli, ["handlers"])

        assert result.exit_code == 0
        assert "echo" in result.output.splitlines()

    def test_enqueue_and_status(self, runner: CliRunner):
        """Test an enqueued job shows up in the queue counts."""
        result = runner.invoke(cli, ["enqueue", "echo", "--data", '{"message": "hi"}'])
        assert result.exit_code == 0, result.output
        assert "Enqueued echo on queue::default" in result.output

        result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0
        assert '"total": 1' in result.output
        assert '"outstanding": 1' in result.output

    def test_enqueue_with_delay(self, runner: CliRunner):
        """Test --delay schedules the job."""
        result = runner.invoke(cli, ["enqueue", "echo", "--delay", "5m", "--queue", "later"])

        assert result.exit_code == 0, result.output
        assert "run_at=now" not in result.output

    def test_enqueue_run_at_and_delay(self, runner: CliRunner):
        """Test --run-at and --delay cannot be combined."""
        result = runner.invoke(
            cli,
            ["enqueue", "echo", "--delay", "5m", "--run-at", "2030-01-01T00:00:00"],
        )

        assert result.exit_code == 1

    def test_enqueue_unknown_job_type(self, runner: CliRunner):
        """Test an unregistered job type is refused."""
        result = runner.invoke(cli, ["enqueue", "nonexistent"])

        assert result.exit_code == 1

    def test_enqueue_bad_json(self, runner: CliRunner):
        """Test --data must be JSON."""
        result = runner.invoke(cli, ["enqueue", "echo", "--data", "{not json"])

        assert result.exit_code == 1

    def test_failed_empty(self, runner: CliRunner):
        """Test listing failed jobs on a clean queue."""
        result = runner.invoke(cli, ["failed"])

        assert result.exit_code == 0
        assert "No failed jobs." in result.output

    def test_retry_missing_job(self, runner: CliRunner):
        """Test retrying a job that does not exist."""
        result = runner.invoke(cli, ["retry", "12345"])

        assert result.exit_code == 1
