"""Tests for environment-driven configuration."""

from __future__ import annotations

import pytest

from habittree.config import BaseConfig, TestConfig


def test_defaults_from_data_dir(tmp_path, monkeypatch):
    """Paths and defaults derive from HABITTREE_DATA_DIR."""
    for name in (
        "HABITTREE_DATABASE_URL",
        "HABITTREE_CACHE_DIR",
        "HABITTREE_STREAK_RULE",
        "HABITTREE_CHAIN_HOUR",
        "HABITTREE_CHAIN_MINUTE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HABITTREE_DATA_DIR", str(tmp_path / "instance"))

    config = BaseConfig()

    assert config.DATA_DIR == (tmp_path / "instance").resolve()
    assert config.DATABASE_URL.endswith("habittree.db")
    assert config.CACHE_DIR == config.DATA_DIR / "cache"
    assert config.STREAK_RULE == "check_count"
    assert (config.CHAIN_HOUR, config.CHAIN_MINUTE) == (0, 0)
    assert config.sqlalchemy_engine_options() == {"connect_args": {"check_same_thread": False}}


def test_environment_overrides(tmp_path, monkeypatch):
    """Environment variables override each setting."""
    monkeypatch.setenv("HABITTREE_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("HABITTREE_DEV_MODE", "false")
    monkeypatch.setenv("HABITTREE_STREAK_RULE", "NODE_PROGRESS")
    monkeypatch.setenv("HABITTREE_CHAIN_HOUR", "3")
    monkeypatch.setenv("HABITTREE_CHAIN_MINUTE", "30")
    monkeypatch.setenv("HABITTREE_DATABASE_URL", "postgresql://habits@localhost/habits")

    config = BaseConfig()

    assert config.DEV_MODE is False
    assert config.STREAK_RULE == "node_progress"
    assert (config.CHAIN_HOUR, config.CHAIN_MINUTE) == (3, 30)
    assert config.sqlalchemy_engine_options() == {"pool_pre_ping": True}


@pytest.mark.parametrize(("hour", "minute"), [("24", "0"), ("0", "60"), ("noon", "0")])
def test_invalid_chain_time(tmp_path, monkeypatch, hour, minute):
    """Out-of-range or non-numeric chain times raise ValueError."""
    monkeypatch.setenv("HABITTREE_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("HABITTREE_CHAIN_HOUR", hour)
    monkeypatch.setenv("HABITTREE_CHAIN_MINUTE", minute)

    with pytest.raises(ValueError):
        BaseConfig()


def test_test_config_is_self_contained(tmp_path, monkeypatch):
    """TestConfig ignores the database URL from the environment."""
    monkeypatch.setenv("HABITTREE_DATABASE_URL", "postgresql://elsewhere/db")

    config = TestConfig(tmp_path / "data")

    assert config.DATABASE_URL.startswith("sqlite:///")
    assert config.CACHE_DIR == (tmp_path / "data").resolve() / "cache"
