"""
Unit Tests for Settings
=======================
"""

import pytest
from pydantic import ValidationError

from seedmap.config.settings import Settings


def test_defaults(tmp_path):
    settings = Settings(storage_path=tmp_path / "maps", log_path=tmp_path / "logs")

    assert settings.max_concurrent_jobs == 3
    assert settings.default_world_size == 8
    assert settings.navigation_timeout == 30000
    assert (settings.ui_action_timeout, settings.capture_timeout) == (5000, 30000)
    assert (settings.viewport_width, settings.viewport_height) == (3840, 2160)
    assert (tmp_path / "maps").is_dir()


def test_public_base_url(tmp_path):
    settings = Settings(log_path=tmp_path, storage_path=tmp_path, port=4000)
    assert settings.public_base_url == "http://localhost:4000"

    settings = Settings(log_path=tmp_path, storage_path=tmp_path, base_url="https://maps.example.com/")
    assert settings.public_base_url == "https://maps.example.com"


def test_environment_override(tmp_path, monkeypatch):
    monkeypatch.setenv("SEEDMAP_MAX_CONCURRENT_JOBS", "5")
    monkeypatch.setenv("SEEDMAP_GAME_VERSION", "1.20-Java")

    settings = Settings(log_path=tmp_path, storage_path=tmp_path)

    assert settings.max_concurrent_jobs == 5
    assert settings.game_version == "1.20-Java"


@pytest.mark.parametrize(
    "field, value",
    [("environment", "staging"), ("log_level", "LOUD"), ("settle_delay", -1)],
)
def test_invalid_values(tmp_path, field, value):
    with pytest.raises(ValidationError):
        Settings(log_path=tmp_path, storage_path=tmp_path, **{field: value})


def test_allowed_hosts_parsing(tmp_path):
    settings = Settings(log_path=tmp_path, storage_path=tmp_path, allowed_hosts="a.com, b.com")
    assert settings.allowed_hosts == ["a.com", "b.com"]

    settings = Settings(log_path=tmp_path, storage_path=tmp_path, allowed_hosts='["c.com"]')
    assert settings.allowed_hosts == ["c.com"]
