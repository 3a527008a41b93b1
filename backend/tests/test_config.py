"""
Tests for configuration loading and validation.
"""

import pytest
from pydantic import ValidationError

from backend.common.config import ConfigLoader, DatabaseConfig, GamificationConfig, RedisConfig


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in [
        "GAMIFICATION_POINTS_PER_LEVEL",
        "GAMIFICATION_ACTIVITY_POINTS",
        "GAMIFICATION_TIMEZONE",
        "DB_TYPE",
        "DB_URL",
        "CONFIG_PATH",
    ]:
        monkeypatch.delenv(name, raising=False)


def test_gamification_defaults():
    settings = GamificationConfig()

    assert settings.activity_points["quiz_passed"] == 20
    assert settings.default_activity_points == 5
    assert settings.points_per_level == 100
    assert settings.award_repeat_entities is True
    assert settings.rank_lock_backend == "local"


@pytest.mark.parametrize("overrides", [
    {"points_per_level": 0},
    {"leaderboard_page_size": -1},
    {"default_activity_points": 0},
    {"activity_points": {"quiz_passed": 0}},
    {"timezone": "Mars/Olympus_Mons"},
    {"rank_lock_backend": "memcached"},
])
def test_invalid_gamification_settings(overrides):
    with pytest.raises(ValidationError):
        GamificationConfig(**overrides)


def test_activity_point_keys_are_normalized():
    settings = GamificationConfig(activity_points={"Quiz-Passed": 30})

    assert settings.activity_points == {"quiz_passed": 30}


def test_environment_overrides_passed_values(monkeypatch):
    monkeypatch.setenv("GAMIFICATION_POINTS_PER_LEVEL", "250")
    monkeypatch.setenv("GAMIFICATION_ACTIVITY_POINTS", '{"video-watched": 7}')

    settings = GamificationConfig(points_per_level=100)

    assert settings.points_per_level == 250
    assert settings.activity_points == {"video_watched": 7}


def test_database_url():
    assert DatabaseConfig(path="/tmp/lq.db").database_url == "sqlite+aiosqlite:////tmp/lq.db"

    postgres = DatabaseConfig(type="PostgreSQL", host="db", name="quests", user="u", password="p")
    assert postgres.database_url == "postgresql+asyncpg://u:p@db:5432/quests"

    assert DatabaseConfig(url="sqlite+aiosqlite://").database_url == "sqlite+aiosqlite://"


def test_redis_connection_string():
    assert RedisConfig().connection_string == "redis://localhost:6379/0"
    assert RedisConfig(password="s3cret", use_ssl=True).connection_string == "rediss://:s3cret@localhost:6379/0"


def test_loader_reads_yaml_file(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "app_name: LearnQuest Staging\n"
        "gamification:\n"
        "  points_per_level: 200\n"
        "  timezone: Europe/Berlin\n"
        "database:\n"
        "  type: postgresql\n"
        "environment:\n"
        "  env: staging\n"
    )

    config = ConfigLoader(str(config_file)).load()

    assert config.app_name == "LearnQuest Staging"
    assert config.gamification.points_per_level == 200
    assert config.gamification.timezone == "Europe/Berlin"
    assert config.database.type == "postgresql"
    assert config.environment.env == "staging"
    assert not config.is_development


def test_loader_ignores_missing_file(tmp_path):
    config = ConfigLoader(str(tmp_path / "missing.yaml")).load()

    assert config.gamification.points_per_level == 100
