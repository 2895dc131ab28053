"""Tests for relay.cli.deploy — ``relay deploy run``.

Real runs use the current interpreter as the external tool via the
RELAY_*_COMMAND environment variables.
"""

import io
import json
import shlex
import sys

import pytest
from rich.console import Console
from typer.testing import CliRunner

from relay.cli.app import app
from relay.cli.deploy import ProgressPrinter

runner = CliRunner()

PY = shlex.quote(sys.executable)
OK_COMMAND = f"{PY} -c pass"
FAIL_COMMAND = f"{PY} -c \"import sys; sys.stderr.write('Store not found'); sys.exit(1)\""


def _env(deploy_command: str = OK_COMMAND, check_command: str = f"{PY} --version") -> dict[str, str]:
    return {
        "RELAY_DEPLOY_COMMAND": deploy_command,
        "RELAY_CHECK_COMMAND": check_command,
        "RELAY_INTER_TARGET_DELAY_MS": "0",
        "RELAY_RETRY_DELAY_MS": "0",
    }


def _summary_json(output: str) -> dict:
    return json.loads(output[output.index("{\n"):])


class TestDryRun:
    def test_preview(self, targets_file, tmp_path):
        log = tmp_path / "deploy.log"
        result = runner.invoke(
            app, ["deploy", "run", "--file", str(targets_file), "--dry-run", "--log-file", str(log)]
        )

        assert result.exit_code == 0, result.output
        assert "[DRY RUN] Would deploy to: a.example" in result.output
        assert "Dry Run Summary" in result.output
        assert "event=DRY_RUN" in log.read_text()

    def test_json_summary(self, targets_file, tmp_path):
        result = runner.invoke(
            app,
            ["deploy", "run", "--file", str(targets_file), "--dry-run", "--json", "--log-file", str(tmp_path / "d.log")],
        )

        assert result.exit_code == 0
        summary = _summary_json(result.stdout)
        assert summary["dry_run"] is True
        assert summary["success_count"] == 2
        assert summary["status"] == "SUCCESS"

    def test_skips_dependency_check(self, targets_file, tmp_path):
        result = runner.invoke(
            app,
            ["deploy", "run", "--file", str(targets_file), "--dry-run", "--log-file", str(tmp_path / "d.log")],
            env=_env(check_command="relay-definitely-not-installed-xyz version"),
        )
        assert result.exit_code == 0


@pytest.mark.slow
class TestRealRun:
    def test_success(self, targets_file, tmp_path):
        log = tmp_path / "deploy.log"
        result = runner.invoke(
            app, ["deploy", "run", "--file", str(targets_file), "--log-file", str(log)], env=_env()
        )

        assert result.exit_code == 0, result.output
        assert "Deployed to a.example" in result.output
        text = log.read_text()
        assert "event=DEPLOY_START" in text
        assert "event=DEPLOY_COMPLETE" in text
        assert (tmp_path / "deploy.summary.json").exists()

    def test_parallel_json(self, targets_file, tmp_path):
        result = runner.invoke(
            app,
            [
                "deploy", "run", "--file", str(targets_file), "--parallel", "--max-concurrent", "2",
                "--json", "--log-file", str(tmp_path / "d.log"),
            ],
            env=_env(),
        )

        assert result.exit_code == 0, result.output
        summary = _summary_json(result.stdout)
        assert [o["target"]["destination"] for o in summary["outcomes"]] == ["a.example", "b.example"]

    def test_failure_is_fatal(self, targets_file, tmp_path):
        result = runner.invoke(
            app,
            ["deploy", "run", "--file", str(targets_file), "--retry", "0", "--log-file", str(tmp_path / "d.log")],
            env=_env(deploy_command=FAIL_COMMAND),
        )

        assert result.exit_code == 1
        assert "Destination not found" in result.output
        assert "DEPLOY_FAILED" in (tmp_path / "d.log").read_text()

    def test_continue_on_error_is_partial(self, targets_file, tmp_path):
        result = runner.invoke(
            app,
            [
                "deploy", "run", "--file", str(targets_file), "--retry", "0", "--continue-on-error",
                "--log-file", str(tmp_path / "d.log"),
            ],
            env=_env(deploy_command=FAIL_COMMAND),
        )

        assert result.exit_code == 0
        assert "PARTIAL" in result.output

    def test_single_target(self, targets_file, tmp_path):
        result = runner.invoke(
            app,
            [
                "deploy", "run", "--file", str(targets_file), "--target", "b.example", "--json",
                "--log-file", str(tmp_path / "d.log"),
            ],
            env=_env(),
        )

        assert result.exit_code == 0, result.output
        summary = _summary_json(result.stdout)
        assert summary["total_targets"] == 1
        assert summary["outcomes"][0]["target"]["destination"] == "b.example"

    def test_missing_dependency(self, targets_file, tmp_path):
        log = tmp_path / "d.log"
        result = runner.invoke(
            app,
            ["deploy", "run", "--file", str(targets_file), "--log-file", str(log)],
            env=_env(check_command="relay-definitely-not-installed-xyz version"),
        )

        assert result.exit_code == 1
        assert "Install the deployment CLI" in result.output
        assert "event=DEPENDENCY_ERROR" in log.read_text()


class TestInputErrors:
    def test_missing_targets_file(self, tmp_path):
        result = runner.invoke(
            app, ["deploy", "run", "--file", str(tmp_path / "none.json"), "--log-file", str(tmp_path / "d.log")]
        )
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_unknown_target(self, targets_file, tmp_path):
        result = runner.invoke(
            app,
            ["deploy", "run", "--file", str(targets_file), "--target", "zzz.example", "--log-file", str(tmp_path / "d.log")],
        )
        assert result.exit_code == 1
        assert "zzz.example" in result.output

    def test_invalid_option(self, targets_file):
        result = runner.invoke(app, ["deploy", "run", "--file", str(targets_file), "--max-concurrent", "0"])
        assert result.exit_code != 0


class TestProgressPrinter:
    def _printer(self, verbose=False):
        buf = io.StringIO()
        return ProgressPrinter(Console(file=buf, width=200), verbose=verbose), buf

    def test_retry_line(self):
        printer, buf = self._printer()
        printer("RETRY_ATTEMPT", {"target": "a.example", "attempt": 1, "max_attempts": 4, "delay_ms": 2000})
        assert "Retrying a.example in 2s" in buf.getvalue()

    def test_failure_details_only_when_verbose(self):
        fields = {
            "target": "a.example",
            "kind": "NETWORK",
            "message": "Network connection error.",
            "suggestion": "Check your network connection and try again",
            "command": "tool push",
            "exit_code": 1,
            "stderr": "ECONNRESET",
        }
        quiet, quiet_buf = self._printer()
        loud, loud_buf = self._printer(verbose=True)
        quiet("DEPLOY_FAILED", fields)
        loud("DEPLOY_FAILED", fields)

        assert "Suggestion" in quiet_buf.getvalue()
        assert "ECONNRESET" not in quiet_buf.getvalue()
        assert "ECONNRESET" in loud_buf.getvalue()
        assert "tool push" in loud_buf.getvalue()

    def test_unknown_events_ignored(self):
        printer, buf = self._printer()
        printer("SOMETHING_ELSE", {})
        assert buf.getvalue() == ""
