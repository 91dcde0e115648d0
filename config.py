"""Application configuration.

Two layers live here:

* ``Settings`` -- service-level values (port, log level, CORS) loaded by
  pydantic-settings from the environment and the ``.env.<APP_ENV>`` file.
* ``BackendConfig`` -- one immutable section per datastore, resolved from an
  already-loaded key/value source through ``ConfigResolver``. Every key has an
  explicit default; values are type-checked once, at startup.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from services.base import ConfigurationError

logger = logging.getLogger(__name__)

APP_ENV = os.getenv("APP_ENV", "development")

# Env file lives at the project root, one per environment (.env.development, .env.production, ...)
ENV_FILE = Path(__file__).parent / f".env.{APP_ENV}"


class Settings(BaseSettings):
    """Service-level configuration.

    Backend connection values are not modelled here; they go
    through ``load_backend_config`` so each datastore only sees its own keys.
    """

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Service ---
    app_env: str = APP_ENV
    port: int = 3000
    log_level: str = "info"
    log_dir: str = ""  # Empty disables the rotating file handlers

    # --- CORS ---
    allowed_cors_origins: str = "http://localhost:3000"  # Comma-separated list


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Uses lru_cache so the env file is read only once per process.
    """
    return Settings()


def load_config_source(env_file: Path | str = ENV_FILE) -> dict[str, str]:
    """Merge the env file with ``os.environ`` into a flat key/value mapping.

    Process environment wins over the file. A missing file is not an error.
    """
    source: dict[str, str] = {
        key: value for key, value in dotenv_values(env_file).items() if value is not None
    }
    source.update(os.environ)
    return source


# ---------------------------------------------------------------------------
# Key/value resolution
# ---------------------------------------------------------------------------


class ConfigResolver:
    """Read named keys from an injected mapping with explicit defaults."""

    def __init__(self, source: Mapping[str, Any]) -> None:
        self._source = dict(source)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for *key*, or *default* when absent or blank."""
        value = self._source.get(key)
        if value is None:
            return default
        if isinstance(value, str) and not value.strip():
            return default
        return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class PostgresConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    database_url: SecretStr | None = None
    pool_min_size: int = 2
    pool_max_size: int = 10

    @field_validator("database_url", mode="before")
    @classmethod
    def blank_url(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @classmethod
    def from_resolver(cls, resolver: ConfigResolver) -> PostgresConfig:
        return _build(
            cls,
            {
                "database_url": ("DATABASE_URL", None),
                "pool_min_size": ("DATABASE_POOL_MIN_SIZE", 2),
                "pool_max_size": ("DATABASE_POOL_MAX_SIZE", 10),
            },
            resolver,
        )


class RedisConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int = 6379
    password: SecretStr | None = None
    db: int = 0

    @field_validator("password", mode="before")
    @classmethod
    def blank_password(cls, value: Any) -> Any:
        # An empty REDIS_PASSWORD means "no auth", not an empty password
        return _blank_to_none(value)

    @classmethod
    def from_resolver(cls, resolver: ConfigResolver) -> RedisConfig:
        return _build(
            cls,
            {
                "host": ("REDIS_HOST", "localhost"),
                "port": ("REDIS_PORT", 6379),
                "password": ("REDIS_PASSWORD", None),
                "db": ("REDIS_DB", 0),
            },
            resolver,
        )


class Neo4jConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    uri: str = "bolt://localhost:7687"
    user: str = "neo4j"
    password: SecretStr = SecretStr("neo4j")
    database: str = "neo4j"

    @classmethod
    def from_resolver(cls, resolver: ConfigResolver) -> Neo4jConfig:
        return _build(
            cls,
            {
                "uri": ("NEO4J_URI", "bolt://localhost:7687"),
                "user": ("NEO4J_USER", "neo4j"),
                "password": ("NEO4J_PASSWORD", "neo4j"),
                "database": ("NEO4J_DATABASE", "neo4j"),
            },
            resolver,
        )


class ElasticsearchConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    node: str = "http://localhost:9200"
    username: str | None = None
    password: SecretStr | None = None
    api_key: SecretStr | None = None
    serverless: bool = False

    @field_validator("username", "password", "api_key", mode="before")
    @classmethod
    def blank_credentials(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("serverless", mode="before")
    @classmethod
    def parse_serverless(cls, value: Any) -> bool:
        # Only the literal "true" switches serverless mode on
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return bool(value)

    @classmethod
    def from_resolver(cls, resolver: ConfigResolver) -> ElasticsearchConfig:
        return _build(
            cls,
            {
                "node": ("ELASTICSEARCH_NODE", "http://localhost:9200"),
                "username": ("ELASTICSEARCH_USER", None),
                "password": ("ELASTICSEARCH_PASSWORD", None),
                "api_key": ("ELASTICSEARCH_API_KEY", None),
                "serverless": ("ELASTICSEARCH_SERVERLESS", False),
            },
            resolver,
        )


class BackendConfig(BaseModel):
    """Resolved configuration for all four datastores."""

    model_config = ConfigDict(frozen=True)

    postgres: PostgresConfig = PostgresConfig()
    redis: RedisConfig = RedisConfig()
    neo4j: Neo4jConfig = Neo4jConfig()
    elasticsearch: ElasticsearchConfig = ElasticsearchConfig()


def _build(cls: type[BaseModel], fields: dict[str, tuple[str, Any]], resolver: ConfigResolver) -> Any:
    """Resolve *fields* (name -> (key, default)) and validate them as *cls*.

    Raises:
        ConfigurationError: If a value cannot be parsed; the message names
            the offending configuration key.
    """
    values = {name: resolver.get(key, default) for name, (key, default) in fields.items()}
    try:
        return cls(**values)
    except ValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]) if error["loc"] else ""
        key = fields[field][0] if field in fields else field
        raise ConfigurationError(f"Invalid value for {key}: {error['msg']}") from e


def load_backend_config(source: Mapping[str, Any]) -> BackendConfig:
    """Resolve and validate every datastore section from *source*."""
    resolver = ConfigResolver(source)
    config = BackendConfig(
        postgres=PostgresConfig.from_resolver(resolver),
        redis=RedisConfig.from_resolver(resolver),
        neo4j=Neo4jConfig.from_resolver(resolver),
        elasticsearch=ElasticsearchConfig.from_resolver(resolver),
    )
    logger.debug(
        "Resolved backend config: redis=%s:%d/%d neo4j=%s elasticsearch=%s (serverless=%s)",
        config.redis.host,
        config.redis.port,
        config.redis.db,
        config.neo4j.uri,
        config.elasticsearch.node,
        config.elasticsearch.serverless,
    )
    return config
