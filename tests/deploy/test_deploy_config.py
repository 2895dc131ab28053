"""Tests for relay.deploy.config.DeployConfig."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from relay.deploy.config import (
    DEFAULT_DEPLOY_COMMAND,
    DeployConfig,
    default_log_file,
)


class TestDefaults:
    def test_values(self):
        config = DeployConfig()
        assert config.continue_on_error is False
        assert config.parallel is False
        assert config.max_concurrent == 3
        assert config.retry_count == 3
        assert config.retry_delay_ms == 1000
        assert config.inter_target_delay_ms == 2000
        assert config.backup is False
        assert config.backup_dir == Path("./backups")
        assert config.targets_file == Path("targets.json")
        assert config.log_file is None
        assert config.deploy_command == DEFAULT_DEPLOY_COMMAND

    def test_run_id_generated(self):
        a, b = DeployConfig(), DeployConfig()
        assert len(a.run_id) == 12
        assert a.run_id != b.run_id

    def test_explicit_run_id_kept(self):
        assert DeployConfig(run_id="fixed").run_id == "fixed"

    def test_default_commands_are_copies(self):
        config = DeployConfig()
        config.deploy_command.append("--extra")
        assert "--extra" not in DEFAULT_DEPLOY_COMMAND

    @pytest.mark.parametrize(
        ("kwargs", "mode"),
        [({}, "sequential"), ({"parallel": True}, "parallel"), ({"dry_run": True, "parallel": True}, "dry-run")],
    )
    def test_mode(self, kwargs, mode):
        assert DeployConfig(**kwargs).mode == mode


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_concurrent": 0},
            {"retry_count": -1},
            {"retry_delay_ms": -1},
            {"inter_target_delay_ms": -1},
            {"deploy_command": []},
        ],
    )
    def test_rejects(self, kwargs):
        with pytest.raises(ValidationError):
            DeployConfig(**kwargs)


class TestFromEnv:
    def test_reads_env(self, monkeypatch):
        monkeypatch.setenv("RELAY_PARALLEL", "true")
        monkeypatch.setenv("RELAY_MAX_CONCURRENT", "5")
        monkeypatch.setenv("RELAY_BACKUP", "yes")
        monkeypatch.setenv("RELAY_BACKUP_DIR", "/var/backups")
        monkeypatch.setenv("RELAY_DEPLOY_COMMAND", "tool push --to '{destination}'")

        config = DeployConfig.from_env()

        assert config.parallel is True
        assert config.max_concurrent == 5
        assert config.backup is True
        assert config.backup_dir == Path("/var/backups")
        assert config.deploy_command == ["tool", "push", "--to", "{destination}"]

    def test_false_values(self, monkeypatch):
        monkeypatch.setenv("RELAY_DRY_RUN", "0")
        assert DeployConfig.from_env().dry_run is False

    def test_overrides_beat_env(self, monkeypatch):
        monkeypatch.setenv("RELAY_RETRY_COUNT", "7")
        assert DeployConfig.from_env(retry_count=2).retry_count == 2

    def test_none_overrides_ignored(self, monkeypatch):
        monkeypatch.setenv("RELAY_RETRY_COUNT", "7")
        assert DeployConfig.from_env(retry_count=None).retry_count == 7

    def test_invalid_int(self, monkeypatch):
        monkeypatch.setenv("RELAY_MAX_CONCURRENT", "many")
        with pytest.raises(ValueError):
            DeployConfig.from_env()


def test_default_log_file_name():
    path = default_log_file()
    assert path.name.startswith("deployment-")
    assert path.suffix == ".log"
