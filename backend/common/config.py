"""
Centralized Configuration for LearnQuest

This module provides a unified configuration system for the backend.
It handles configuration from environment variables, a ``.env`` file,
an optional YAML/JSON config file and defaults, with type checking and
validation.

Precedence (highest first): environment variables, ``.env``, config file,
defaults.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_ACTIVITY_POINTS = {
    "video_watched": 5,
    "quiz_passed": 20,
    "course_completed": 100,
    "discussion_posted": 10,
    "review_posted": 15,
}


class ConfigSection(BaseSettings):
    """
    Base class for configuration sections.

    Environment variables win over values passed in from the config file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return env_settings, dotenv_settings, init_settings, file_secret_settings


class DatabaseConfig(ConfigSection):
    """Database configuration"""

    model_config = SettingsConfigDict(env_prefix="DB_", env_file=".env", extra="ignore")

    url: Optional[str] = None
    type: str = "sqlite"
    host: str = "localhost"
    port: int = 5432
    name: str = "learnquest"
    user: str = "learnquest"
    password: str = "password"
    path: str = "./learnquest.db"
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        """Validate database type"""
        if v.lower() not in ("sqlite", "postgresql"):
            raise ValueError(f"Unsupported database type: {v}")
        return v.lower()

    @property
    def database_url(self) -> str:
        """Get the async SQLAlchemy connection URL"""
        if self.url:
            return self.url
        if self.type == "postgresql":
            return (
                f"postgresql+asyncpg://{self.user}:{self.password}"
                f"@{self.host}:{self.port}/{self.name}"
            )
        return f"sqlite+aiosqlite:///{self.path}"


class RedisConfig(ConfigSection):
    """Redis configuration"""

    model_config = SettingsConfigDict(env_prefix="REDIS_", env_file=".env", extra="ignore")

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    use_ssl: bool = False
    connection_timeout: int = 10

    @property
    def connection_string(self) -> str:
        """Get the Redis connection string"""
        protocol = "rediss" if self.use_ssl else "redis"
        auth = f":{self.password}@" if self.password else ""
        return f"{protocol}://{auth}{self.host}:{self.port}/{self.db}"


class LoggingConfig(ConfigSection):
    """Logging configuration"""

    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")

    level: str = "INFO"
    format: str = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
    file_path: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LOG_FILE", "file_path")
    )
    json_output: bool = Field(
        default=False, validation_alias=AliasChoices("LOG_JSON", "json_output")
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        """Validate log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class SecurityConfig(ConfigSection):
    """Security configuration"""

    model_config = SettingsConfigDict(env_prefix="SECURITY_", env_file=".env", extra="ignore")

    admin_user_ids: List[str] = Field(default_factory=list)
    allow_origins: List[str] = Field(default_factory=lambda: ["*"])


class APIConfig(ConfigSection):
    """API configuration"""

    model_config = SettingsConfigDict(env_prefix="API_", env_file=".env", extra="ignore")

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    reload: bool = False
    prefix: str = "/api"
    docs_url: str = "/docs"


class GamificationConfig(ConfigSection):
    """Points, streak and leaderboard rules"""

    model_config = SettingsConfigDict(
        env_prefix="GAMIFICATION_", env_file=".env", extra="ignore"
    )

    activity_points: Dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_ACTIVITY_POINTS)
    )
    default_activity_points: int = 5
    points_per_level: int = 100
    award_repeat_entities: bool = True
    timezone: Optional[str] = None
    leaderboard_page_size: int = 50
    leaderboard_max_page_size: int = 100
    rank_lock_backend: str = "local"
    rank_lock_timeout: float = 10.0
    rank_lock_blocking_timeout: float = 5.0
    seed_default_achievements: bool = True

    @field_validator("points_per_level", "leaderboard_page_size", "leaderboard_max_page_size")
    @classmethod
    def validate_positive(cls, v):
        """Validate sizes are positive"""
        if v <= 0:
            raise ValueError(f"Value must be positive, got {v}")
        return v

    @field_validator("activity_points")
    @classmethod
    def validate_activity_points(cls, v):
        """Validate every activity reward is positive"""
        for activity_type, points in v.items():
            if points <= 0:
                raise ValueError(f"Points for {activity_type} must be positive, got {points}")
        return {key.lower().replace("-", "_"): points for key, points in v.items()}

    @field_validator("default_activity_points")
    @classmethod
    def validate_default_points(cls, v):
        """Validate the fallback reward is positive"""
        if v <= 0:
            raise ValueError(f"Default activity points must be positive, got {v}")
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        """Validate the IANA timezone name"""
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @field_validator("rank_lock_backend")
    @classmethod
    def validate_lock_backend(cls, v):
        """Validate rank lock backend"""
        if v.lower() not in ("local", "redis"):
            raise ValueError(f"Invalid rank lock backend: {v}. Must be 'local' or 'redis'")
        return v.lower()


class EnvironmentConfig(ConfigSection):
    """Environment configuration"""

    env: str = "development"
    testing: bool = False
    debug: bool = False

    @field_validator("env")
    @classmethod
    def validate_env(cls, v):
        """Validate environment"""
        valid_envs = ['development', 'testing', 'staging', 'production']
        if v.lower() not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of {valid_envs}")
        return v.lower()


class AppConfig(BaseModel):
    """Main application configuration"""

    app_name: str = "LearnQuest"
    version: str = "1.0.0"
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    gamification: GamificationConfig = Field(default_factory=GamificationConfig)
    environment: EnvironmentConfig = Field(default_factory=EnvironmentConfig)

    @property
    def is_development(self) -> bool:
        """Check if environment is development"""
        return self.environment.env == "development"

    @property
    def is_testing(self) -> bool:
        """Check if environment is testing"""
        return self.environment.env == "testing" or self.environment.testing


SECTIONS = {
    "database": DatabaseConfig,
    "redis": RedisConfig,
    "logging": LoggingConfig,
    "security": SecurityConfig,
    "api": APIConfig,
    "gamification": GamificationConfig,
    "environment": EnvironmentConfig,
}


class ConfigLoader:
    """
    Configuration loader for the application.

    Loads configuration from:
    1. Default values
    2. Config file
    3. Environment variables and ``.env`` (highest priority)
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the config loader.

        Args:
            config_path: Path to config file (YAML or JSON)
        """
        self.config_path = config_path or os.environ.get("CONFIG_PATH")
        self._config = None

    def load(self) -> AppConfig:
        """
        Load configuration from all sources.

        Returns:
            Loaded configuration
        """
        if self._config is not None:
            return self._config

        file_config: Dict[str, Any] = {}
        if self.config_path:
            file_config = self._load_from_file(self.config_path)

        values: Dict[str, Any] = {
            key: value for key, value in file_config.items() if key not in SECTIONS
        }
        for name, section_class in SECTIONS.items():
            values[name] = section_class(**(file_config.get(name) or {}))

        self._config = AppConfig(**values)
        return self._config

    def _load_from_file(self, path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            path: Path to config file

        Returns:
            Loaded configuration dictionary
        """
        path = Path(path)
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return {}

        if path.suffix.lower() in ['.yaml', '.yml']:
            with open(path, 'r') as f:
                return yaml.safe_load(f) or {}
        if path.suffix.lower() == '.json':
            with open(path, 'r') as f:
                return json.load(f)

        logger.warning(f"Unsupported config file format: {path.suffix}")
        return {}


# Global configuration instance
config_loader = ConfigLoader()
config = config_loader.load()


def get_config() -> AppConfig:
    """
    Get the loaded configuration.

    Returns:
        Loaded configuration
    """
    return config
