"""
Integration tests for the forward_logs CLI script.
"""

import json
import subprocess
import sys
from pathlib import Path

import pytest

from tests.samples import ALB_KEY, ALB_LINE, CLB_LINE, gzip_lines, s3_record

# Add scripts to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "scripts"))

import forward_logs  # noqa: E402


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    """Keep the CLI from reconfiguring the root logger under pytest."""
    monkeypatch.setattr(forward_logs, "setup_logging", lambda level: None)


@pytest.fixture
def alb_file(tmp_path: Path) -> Path:
    path = tmp_path / Path(ALB_KEY).name
    path.write_bytes(gzip_lines([ALB_LINE, ALB_LINE]))
    return path


class TestDryRun:
    """Tests for --dry-run."""

    def test_prints_plain_events(self, alb_file, capsys):
        """Test one JSON line per event with the raw line as message."""
        exit_code = forward_logs.main(["--input", str(alb_file), "--dry-run"])

        captured = capsys.readouterr()
        events = [json.loads(line) for line in captured.out.splitlines()]
        assert exit_code == 0
        assert events == [{"timestamp": 1530570180186, "message": ALB_LINE}] * 2
        assert "Events: 2" in captured.err

    def test_json_format(self, alb_file, capsys):
        """Test that --format json emits structured messages."""
        forward_logs.main(["-i", str(alb_file), "--dry-run", "--format", "json"])

        first = json.loads(capsys.readouterr().out.splitlines()[0])
        message = json.loads(first["message"])
        assert message["type"] == "http"
        assert message["elb"] == "app/my-loadbalancer/50dc6c495c0c9188"

    def test_malformed_aborts(self, tmp_path, capsys):
        """Test that a bad line fails the dry run by default."""
        path = tmp_path / "broken.log"
        path.write_text(f"{CLB_LINE}\nnot an access log line\n")

        exit_code = forward_logs.main(["--input", str(path), "--dry-run"])

        assert exit_code == 1
        assert "Error:" in capsys.readouterr().err

    def test_malformed_skipped(self, tmp_path, capsys):
        """Test that --skip-malformed keeps going."""
        path = tmp_path / "broken.log"
        path.write_text(f"{CLB_LINE}\nnot an access log line\n")

        exit_code = forward_logs.main(
            ["--input", str(path), "--dry-run", "--skip-malformed"]
        )

        captured = capsys.readouterr()
        assert exit_code == 0
        assert len(captured.out.splitlines()) == 1
        assert "Skipped: 1" in captured.err

    def test_missing_file(self, tmp_path, capsys):
        """Test that a missing input file is reported."""
        exit_code = forward_logs.main(
            ["--input", str(tmp_path / "nope.log"), "--dry-run"]
        )

        assert exit_code == 1


class TestForward:
    """Tests for forwarding modes with an in-memory backend."""

    @pytest.fixture
    def wired(self, clean_env, monkeypatch, fake_backend):
        clean_env.setenv("LOG_GROUP", "/elb/access")
        monkeypatch.setattr(forward_logs.boto3, "client", lambda service: object())
        monkeypatch.setattr(
            forward_logs, "CloudWatchLogsBackend", lambda client, retry: fake_backend
        )
        return fake_backend

    def test_forward_local_file(self, wired, alb_file, capsys):
        """Test that the stream name comes from the file name."""
        exit_code = forward_logs.main(["--input", str(alb_file)])

        assert exit_code == 0
        assert [e.message for e in wired.events["my-loadbalancer"]] == [ALB_LINE] * 2
        assert "Forwarded 2 events" in capsys.readouterr().out

    def test_missing_configuration(self, clean_env, alb_file, capsys):
        """Test that forwarding without LOG_GROUP is a configuration error."""
        exit_code = forward_logs.main(["--input", str(alb_file)])

        assert exit_code == 1
        assert "Configuration error" in capsys.readouterr().err

    def test_replay_event_failure(self, wired, tmp_path, monkeypatch, fake_fetcher, capsys):
        """Test that replaying an event with a failed object exits 1."""
        monkeypatch.setattr(forward_logs, "S3ObjectFetcher", lambda client: fake_fetcher)
        event_path = tmp_path / "event.json"
        event_path.write_text(json.dumps({"Records": [s3_record("logs", ALB_KEY)]}))

        exit_code = forward_logs.main(["--event", str(event_path)])

        result = json.loads(capsys.readouterr().out)
        assert exit_code == 1
        assert result["objects_failed"] == 1

    def test_replay_event_success(self, wired, tmp_path, monkeypatch, fake_fetcher, capsys):
        """Test a successful replay."""
        monkeypatch.setattr(forward_logs, "S3ObjectFetcher", lambda client: fake_fetcher)
        fake_fetcher.put("logs", ALB_KEY, gzip_lines([ALB_LINE]))
        event_path = tmp_path / "event.json"
        event_path.write_text(json.dumps({"Records": [s3_record("logs", ALB_KEY)]}))

        exit_code = forward_logs.main(["--event", str(event_path)])

        result = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert result["events_forwarded"] == 1


class TestScriptInvocation:
    """Tests for running the script as a program."""

    def test_help(self):
        """Test that --help runs without error."""
        result = subprocess.run(
            [sys.executable, "scripts/forward_logs.py", "--help"],
            capture_output=True,
            text=True,
            cwd=Path(__file__).parent.parent.parent,
        )

        assert result.returncode == 0
        assert "--dry-run" in result.stdout

    def test_dry_run_with_event_rejected(self, tmp_path):
        """Test that --dry-run cannot be combined with --event."""
        with pytest.raises(SystemExit) as exc_info:
            forward_logs.main(["--event", str(tmp_path / "e.json"), "--dry-run"])

        assert exc_info.value.code == 2
