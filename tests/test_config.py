"""Tests for settings loading."""

from pathlib import Path

import pytest

from behavelog.config import BehaveLogConfig


@pytest.fixture
def isolated_cwd(tmp_path, monkeypatch):
    """Run from a directory that looks like a repo root, with no BEHAVELOG_* env."""
    (tmp_path / "pyproject.toml").write_text("")
    monkeypatch.chdir(tmp_path)
    for name in (
        "BEHAVELOG_DB_PATH",
        "BEHAVELOG_LEDGER_PATH",
        "BEHAVELOG_STORAGE_TIMEOUT_SECONDS",
        "BEHAVELOG_FUTURE_SKEW_SECONDS",
        "BEHAVELOG_USER_MAX_LENGTH",
    ):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def _write_repo_config(root: Path, body: str) -> None:
    config_dir = root / ".behavelog"
    config_dir.mkdir()
    (config_dir / "config.toml").write_text(body)


def test_defaults(isolated_cwd):
    config = BehaveLogConfig.from_env()

    assert config.db_path == Path("./behavelog_data/behavelog.sqlite")
    assert config.effective_ledger_path == Path("./behavelog_data/ledger.jsonl")
    assert config.storage_timeout_seconds == 5.0
    assert config.future_skew_seconds == 300
    assert config.user_max_length == 64


def test_env_overrides_defaults(isolated_cwd, monkeypatch):
    monkeypatch.setenv("BEHAVELOG_DB_PATH", str(isolated_cwd / "env.sqlite"))
    monkeypatch.setenv("BEHAVELOG_STORAGE_TIMEOUT_SECONDS", "1.5")
    monkeypatch.setenv("BEHAVELOG_FUTURE_SKEW_SECONDS", "60")

    config = BehaveLogConfig.from_env()

    assert config.db_path == isolated_cwd / "env.sqlite"
    assert config.storage_timeout_seconds == 1.5
    assert config.future_skew_seconds == 60


def test_repo_config_used_when_env_absent(isolated_cwd):
    _write_repo_config(
        isolated_cwd,
        '[behavelog]\ndb_path = "repo.sqlite"\nuser_max_length = 32\nledger_path = "audit.jsonl"\n',
    )

    config = BehaveLogConfig.from_env()

    assert config.db_path == Path("repo.sqlite")
    assert config.user_max_length == 32
    assert config.effective_ledger_path == Path("audit.jsonl")


def test_precedence_cli_then_env_then_repo(isolated_cwd, monkeypatch):
    _write_repo_config(isolated_cwd, '[behavelog]\ndb_path = "repo.sqlite"\n')
    monkeypatch.setenv("BEHAVELOG_DB_PATH", "env.sqlite")

    assert BehaveLogConfig.from_env().db_path == Path("env.sqlite")
    assert BehaveLogConfig.from_env(cli_db_path="cli.sqlite").db_path == Path("cli.sqlite")


def test_malformed_repo_config_raises(isolated_cwd):
    _write_repo_config(isolated_cwd, "[behavelog\nnot toml")

    with pytest.raises(ValueError, match="Malformed settings file"):
        BehaveLogConfig.from_env()


def test_invalid_values_raise(isolated_cwd, monkeypatch):
    monkeypatch.setenv("BEHAVELOG_STORAGE_TIMEOUT_SECONDS", "0")

    with pytest.raises(ValueError, match="Invalid behavelog settings"):
        BehaveLogConfig.from_env()
