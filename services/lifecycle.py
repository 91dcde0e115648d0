"""Startup and shutdown of all datastore services.

``DatastoreManager`` is the single owner of the four services. Startup runs
sequentially in a fixed order so that critical backends fail first:

    PostgreSQL -> Redis -> Neo4j -> Elasticsearch

A critical failure aborts startup (after releasing whatever was already
opened). Shutdown runs in reverse order and attempts every service, logging
failures instead of raising them.
"""

from __future__ import annotations

import logging

from config import BackendConfig
from services.base import (
    ConnectionState,
    ConnectResult,
    DatastoreService,
    DatastoreStartupError,
)
from services.elasticsearch import ElasticsearchService
from services.neo4j import Neo4jService
from services.postgres import PostgresService
from services.redis import RedisService

logger = logging.getLogger(__name__)


class DatastoreManager:
    """Composition root for the datastore services.

    Services can be injected for tests; by default each is constructed here.
    Consumers borrow handles through the service attributes, e.g.
    ``manager.redis.get_client()``.
    """

    def __init__(
        self,
        postgres: PostgresService | None = None,
        redis: RedisService | None = None,
        neo4j: Neo4jService | None = None,
        elasticsearch: ElasticsearchService | None = None,
    ) -> None:
        self.postgres = postgres or PostgresService()
        self.redis = redis or RedisService()
        self.neo4j = neo4j or Neo4jService()
        self.elasticsearch = elasticsearch or ElasticsearchService()
        self._started = False
        self._shut_down = False

    @property
    def services(self) -> list[DatastoreService]:
        """All services in startup order."""
        return [self.postgres, self.redis, self.neo4j, self.elasticsearch]

    async def startup(self, config: BackendConfig) -> dict[str, ConnectResult]:
        """Initialize and connect every service in order.

        Returns:
            The connect result per service name.

        Raises:
            DatastoreStartupError: If a critical service fails. Services
                started before it are shut down first.
        """
        if self._started:
            raise RuntimeError("DatastoreManager.startup() called twice")
        self._started = True

        results: dict[str, ConnectResult] = {}
        for service in self.services:
            result = await self._start_service(service, getattr(config, service.name))
            results[service.name] = result
            if result.ok:
                continue
            if service.critical:
                logger.error("%s is required; aborting startup", service.name)
                await self.shutdown()
                raise DatastoreStartupError(service.name, result.error) from result.error
            logger.warning("%s unavailable; continuing in degraded mode", service.name)

        logger.info(
            "Datastores started: %s",
            ", ".join(f"{name}={r.state.value}" for name, r in results.items()),
        )
        return results

    async def _start_service(self, service: DatastoreService, section: object) -> ConnectResult:
        try:
            service.initialize(section)
        except Exception as e:
            logger.error("%s init failed: %s", service.name, e)
            service.state = ConnectionState.FAILED
            service.last_error = e
            return ConnectResult(service.name, ConnectionState.FAILED, e)
        return await service.connect()

    async def shutdown(self) -> None:
        """Disconnect every service in reverse order. Never raises."""
        if self._shut_down:
            return
        self._shut_down = True

        for service in reversed(self.services):
            try:
                await service.disconnect()
            except Exception as e:
                logger.error("%s shutdown failed: %s", service.name, e)

    def status(self) -> dict[str, str]:
        """Return the current connection state per service name."""
        return {service.name: service.state.value for service in self.services}
