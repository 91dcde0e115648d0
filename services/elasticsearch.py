"""Elasticsearch async client management.

Search is a non-critical dependency: the service stays usable for its
relational and cache work even when Elasticsearch is unreachable. ``connect``
therefore never fails startup. A failed or raising ping marks the service
degraded and keeps the error on ``last_error`` so the readiness endpoint can
surface it (a ping exception usually means misconfiguration, e.g. a bad URL).

Authentication is chosen once, in priority order:
    1. API key
    2. Basic auth (only when both username and password are set)
    3. None
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from elasticsearch import AsyncElasticsearch

from config import ElasticsearchConfig
from services.base import ConnectionState, DatastoreService

SERVERLESS_MODE = "serverless"


@dataclass(frozen=True)
class ApiKeyAuth:
    api_key: str

    def as_options(self) -> dict[str, str]:
        return {"api_key": self.api_key}

    def client_kwargs(self) -> dict[str, Any]:
        return {"api_key": self.api_key}


@dataclass(frozen=True)
class BasicAuth:
    username: str
    password: str

    def as_options(self) -> dict[str, str]:
        return {"username": self.username, "password": self.password}

    def client_kwargs(self) -> dict[str, Any]:
        return {"basic_auth": (self.username, self.password)}


@dataclass(frozen=True)
class NoAuth:
    def as_options(self) -> None:
        return None

    def client_kwargs(self) -> dict[str, Any]:
        return {}


AuthStrategy = Union[ApiKeyAuth, BasicAuth, NoAuth]


def select_auth_strategy(
    api_key: str | None = None,
    username: str | None = None,
    password: str | None = None,
) -> AuthStrategy:
    """Pick the single auth strategy for the client. API key always wins."""
    if api_key:
        return ApiKeyAuth(api_key)
    if username and password:
        return BasicAuth(username, password)
    return NoAuth()


def _auth_from_config(config: ElasticsearchConfig) -> AuthStrategy:
    return select_auth_strategy(
        api_key=config.api_key.get_secret_value() if config.api_key else None,
        username=config.username,
        password=config.password.get_secret_value() if config.password else None,
    )


def build_client_options(config: ElasticsearchConfig) -> dict[str, Any]:
    """Describe the client to construct: ``{node, auth, server_mode?}``.

    The serverless flag only adds ``server_mode``; it never changes auth.
    """
    options: dict[str, Any] = {
        "node": config.node,
        "auth": _auth_from_config(config).as_options(),
    }
    if config.serverless:
        options["server_mode"] = SERVERLESS_MODE
    return options


class ElasticsearchService(DatastoreService):
    """Search engine backed by one AsyncElasticsearch client."""

    name = "elasticsearch"
    critical = False
    usable_states = frozenset({ConnectionState.READY, ConnectionState.DEGRADED})

    def __init__(self) -> None:
        super().__init__()
        self.auth: AuthStrategy = NoAuth()
        self.options: dict[str, Any] = {}

    def _create(self, config: ElasticsearchConfig) -> AsyncElasticsearch:
        self.auth = _auth_from_config(config)
        self.options = build_client_options(config)
        kwargs: dict[str, Any] = {"hosts": [config.node], **self.auth.client_kwargs()}
        if config.serverless:
            # Serverless endpoints accept gzip request bodies
            kwargs["http_compress"] = True
        self.logger.debug(
            "Elasticsearch client for %s (auth=%s, serverless=%s)",
            config.node,
            type(self.auth).__name__,
            config.serverless,
        )
        return AsyncElasticsearch(**kwargs)

    async def _connect(self) -> ConnectionState:
        try:
            is_connected = await self._handle.ping()
        except Exception as e:
            self.last_error = e
            self.logger.error("Elasticsearch connection error: %s", e)
            return ConnectionState.DEGRADED
        if not is_connected:
            self.logger.warning("Elasticsearch ping failed: not connected")
            return ConnectionState.DEGRADED
        self.logger.info("Elasticsearch search engine connected")
        return ConnectionState.READY

    async def _close(self, handle: AsyncElasticsearch) -> None:
        await handle.close()
        self.logger.info("Elasticsearch client closed")

    def get_client(self) -> AsyncElasticsearch:
        """Return the raw client for consumers to issue their own calls."""
        return self._require_handle()

    async def health_check(self) -> bool:
        try:
            return bool(await self.get_client().ping())
        except Exception:
            return False
