"""Tests for relay.cli.targets — targets list/init/validate."""

import json

from typer.testing import CliRunner

from relay.cli.app import app

runner = CliRunner()


class TestInit:
    def test_creates_file(self, tmp_path):
        path = tmp_path / "targets.json"
        result = runner.invoke(app, ["targets", "init", "--file", str(path)])

        assert result.exit_code == 0
        assert path.exists()
        assert "Created" in result.output

    def test_refuses_existing(self, targets_file):
        result = runner.invoke(app, ["targets", "init", "--file", str(targets_file)])
        assert result.exit_code == 1
        assert "already exists" in result.output


class TestList:
    def test_table(self, targets_file):
        result = runner.invoke(app, ["targets", "list", "--file", str(targets_file)])
        assert result.exit_code == 0
        assert "a.example" in result.output
        assert "b.example" in result.output

    def test_json(self, targets_file):
        result = runner.invoke(app, ["targets", "list", "--file", str(targets_file), "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload[0] == {"destination": "a.example", "resource": "1", "valid": True}

    def test_json_stdout_has_no_debug_lines(self, targets_file):
        result = runner.invoke(app, ["targets", "list", "--file", str(targets_file), "--json"])

        assert result.exit_code == 0
        assert "targets.loaded" not in result.output
        assert result.stdout.lstrip().startswith("[")

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["targets", "list", "--file", str(tmp_path / "nope.json")])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_file_from_env(self, targets_file):
        result = runner.invoke(app, ["targets", "list"], env={"RELAY_TARGETS_FILE": str(targets_file)})
        assert result.exit_code == 0
        assert "a.example" in result.output


class TestValidate:
    def test_ok(self, targets_file):
        result = runner.invoke(app, ["targets", "validate", "--file", str(targets_file)])
        assert result.exit_code == 0
        assert "2 targets OK" in result.output

    def test_incomplete(self, tmp_path):
        path = tmp_path / "t.json"
        path.write_text(json.dumps({"targets": [{"destination": "a.example"}, {"url": "b", "theme_id": 1}]}))

        result = runner.invoke(app, ["targets", "validate", "--file", str(path)])

        assert result.exit_code == 1
        assert "1 of 2 targets are incomplete" in result.output


def test_version():
    from relay import __version__

    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"relay {__version__}" in result.output
