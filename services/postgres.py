"""PostgreSQL async connection pool management.

Owns one asyncpg pool. The pool object is built synchronously in
``initialize``; connections are only opened when ``connect`` awaits it.
A PostgreSQL failure at startup is fatal.
"""

from __future__ import annotations

import asyncpg

from config import PostgresConfig
from services.base import ConfigurationError, ConnectionState, DatastoreService


class PostgresService(DatastoreService):
    """Relational store backed by a single asyncpg pool."""

    name = "postgres"
    critical = True

    def _create(self, config: PostgresConfig) -> asyncpg.Pool:
        if config.database_url is None:
            raise ConfigurationError("DATABASE_URL is not set")
        # create_pool() without await returns an uninitialized pool: no I/O yet
        return asyncpg.create_pool(
            config.database_url.get_secret_value(),
            min_size=config.pool_min_size,
            max_size=config.pool_max_size,
        )

    async def _connect(self) -> ConnectionState:
        await self._handle
        self.logger.info(
            "PostgreSQL connected (pool min=%d max=%d)",
            self._handle.get_min_size(),
            self._handle.get_max_size(),
        )
        return ConnectionState.READY

    async def _close(self, handle: asyncpg.Pool) -> None:
        if self.state is ConnectionState.UNINITIALIZED:
            # Pool was built but never awaited; there is nothing to release
            return
        await handle.close()
        self.logger.info("Disconnected from PostgreSQL")

    @property
    def pool(self) -> asyncpg.Pool:
        """The shared pool. Only available once connected."""
        return self._require_handle()

    async def health_check(self) -> bool:
        """Return True if a trivial query succeeds against the pool."""
        try:
            await self.pool.fetchval("SELECT 1")
            return True
        except Exception:
            return False
