"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "HabitTree"
    DB_FILENAME = "habittree.db"
    CACHE_DIRNAME = "cache"
    SQLITE_PRAGMAS = {"journal_mode": "wal", "foreign_keys": "on"}

    DEFAULT_COLOR = "#3B82F6"
    DEFAULT_EMOJI = "🎯"
    DEFAULT_CATEGORY = "general"
    DEFAULT_FREQUENCY = "daily"

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("HABITTREE_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("HABITTREE_DATABASE_URL", self._build_sqlite_url())
        self.CACHE_DIR = Path(
            os.getenv("HABITTREE_CACHE_DIR", str(self.DATA_DIR / self.CACHE_DIRNAME))
        ).expanduser()
        self.STREAK_RULE = os.getenv("HABITTREE_STREAK_RULE", "check_count").strip().lower()
        self.CHAIN_HOUR = _env_int("HABITTREE_CHAIN_HOUR", 0)
        self.CHAIN_MINUTE = _env_int("HABITTREE_CHAIN_MINUTE", 0)
        if not 0 <= self.CHAIN_HOUR <= 23 or not 0 <= self.CHAIN_MINUTE <= 59:
            raise ValueError("HABITTREE_CHAIN_HOUR/MINUTE must describe a valid time of day.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the database, cache files and logs live."""

        data_root = os.getenv("HABITTREE_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if self.DATABASE_URL.startswith("sqlite"):
            return {"connect_args": {"check_same_thread": False}}
        return {"pool_pre_ping": True}


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False


class TestConfig(BaseConfig):
    """Configuration for tests: everything lives under an explicit directory."""

    DEBUG = False
    TESTING = True
    __test__ = False  # not a pytest test class

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = Path(data_dir)
        super().__init__()
        self.DEV_MODE = True
        self.DATABASE_URL = self._build_sqlite_url()
        self.CACHE_DIR = self.DATA_DIR / self.CACHE_DIRNAME
        self.STREAK_RULE = "check_count"

    def _resolve_data_dir(self) -> Path:
        self._data_dir.mkdir(parents=True, exist_ok=True)
        return self._data_dir.resolve()
