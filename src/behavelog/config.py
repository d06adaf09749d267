"""Settings management for the behavior log."""

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_DATA_DIR = "./behavelog_data"
DB_FILENAME = "behavelog.sqlite"
LEDGER_FILENAME = "ledger.jsonl"


def _find_repo_root(start_dir: Path) -> Path:
    """Find repository root by walking upward looking for .git or pyproject.toml."""
    current_dir = start_dir

    while True:
        if (current_dir / ".git").exists() or (current_dir / "pyproject.toml").exists():
            return current_dir

        parent_dir = current_dir.parent

        # Stop if we reach filesystem root
        if parent_dir == current_dir:
            return start_dir

        current_dir = parent_dir


def _load_repo_config_data(repo_root: Path) -> Optional[dict]:
    """Load the [behavelog] table from .behavelog/config.toml if it exists.

    Raises:
        ValueError: If the file exists but is not valid TOML
    """
    config_file = repo_root / ".behavelog" / "config.toml"

    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Malformed settings file {config_file}: {e}") from e

    section = data.get("behavelog")
    return section if isinstance(section, dict) else None


def _pick(env_name: str, repo_data: Optional[dict], repo_key: str) -> Optional[Any]:
    """Environment variable first, then repo config value."""
    value = os.environ.get(env_name)
    if value is not None and value.strip():
        return value.strip()
    if repo_data and repo_key in repo_data:
        return repo_data[repo_key]
    return None


class BehaveLogConfig(BaseModel):
    """Settings for storage location, timeouts and validation bounds."""

    db_path: Path = Field(default_factory=lambda: Path(DEFAULT_DATA_DIR) / DB_FILENAME)
    ledger_path: Optional[Path] = Field(default=None)
    storage_timeout_seconds: float = Field(default=5.0)
    future_skew_seconds: int = Field(default=300)
    user_max_length: int = Field(default=64)

    model_config = {"frozen": False}

    @field_validator("storage_timeout_seconds")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("storage_timeout_seconds must be positive")
        return value

    @field_validator("future_skew_seconds", "user_max_length")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @property
    def data_dir(self) -> Path:
        return self.db_path.parent

    @property
    def effective_ledger_path(self) -> Path:
        """Ledger file; defaults to ledger.jsonl beside the database."""
        return self.ledger_path or self.data_dir / LEDGER_FILENAME

    @classmethod
    def from_env(cls, cli_db_path: Optional[str] = None) -> "BehaveLogConfig":
        """Load settings with the following precedence:

        1. CLI --db option (db path only)
        2. BEHAVELOG_* environment variables
        3. [behavelog] table in repo-local .behavelog/config.toml
        4. Built-in defaults

        Args:
            cli_db_path: Database path from CLI --db option

        Raises:
            ValueError: If a settings value is malformed
        """
        repo_data = _load_repo_config_data(_find_repo_root(Path.cwd()))

        values: dict[str, Any] = {}
        db_path = cli_db_path or _pick("BEHAVELOG_DB_PATH", repo_data, "db_path")
        if db_path:
            values["db_path"] = Path(str(db_path)).expanduser()

        ledger_path = _pick("BEHAVELOG_LEDGER_PATH", repo_data, "ledger_path")
        if ledger_path:
            values["ledger_path"] = Path(str(ledger_path)).expanduser()

        for env_name, key in (
            ("BEHAVELOG_STORAGE_TIMEOUT_SECONDS", "storage_timeout_seconds"),
            ("BEHAVELOG_FUTURE_SKEW_SECONDS", "future_skew_seconds"),
            ("BEHAVELOG_USER_MAX_LENGTH", "user_max_length"),
        ):
            value = _pick(env_name, repo_data, key)
            if value is not None:
                values[key] = value

        try:
            return cls(**values)
        except ValidationError as e:
            raise ValueError(f"Invalid behavelog settings: {e}") from e
