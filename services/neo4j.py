"""Neo4j async driver management and session factories.

Provides connection lifecycle management plus read/write session factories.
Sessions are opened per call with an explicit access mode so the cluster can
route reads and writes to the right members; callers own each session and
must close it (``async with``). Session pooling stays inside the driver.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import neo4j
from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncSession

from config import Neo4jConfig
from services.base import ConnectionState, DatastoreService


class SessionMode(str, Enum):
    READ = neo4j.READ_ACCESS
    WRITE = neo4j.WRITE_ACCESS


class Neo4jService(DatastoreService):
    """Graph store backed by one Neo4j async driver."""

    name = "neo4j"
    critical = True

    def __init__(self) -> None:
        super().__init__()
        self.default_database = Neo4jConfig().database

    def _create(self, config: Neo4jConfig) -> AsyncDriver:
        self.default_database = config.database
        return AsyncGraphDatabase.driver(
            config.uri,
            auth=(config.user, config.password.get_secret_value()),
        )

    async def _connect(self) -> ConnectionState:
        await self._handle.verify_connectivity()
        self.logger.info("Neo4j graph database connected")
        return ConnectionState.READY

    async def _close(self, handle: AsyncDriver) -> None:
        await handle.close()
        self.logger.info("Neo4j driver closed")

    def get_driver(self) -> AsyncDriver:
        return self._require_handle()

    def get_session(self, mode: SessionMode, database: str | None = None) -> AsyncSession:
        """Open a new session in *mode* against *database* or the configured default."""
        return self.get_driver().session(
            database=database or self.default_database,
            default_access_mode=mode.value,
        )

    def get_read_session(self, database: str | None = None) -> AsyncSession:
        return self.get_session(SessionMode.READ, database)

    def get_write_session(self, database: str | None = None) -> AsyncSession:
        return self.get_session(SessionMode.WRITE, database)

    async def execute_read(
        self,
        cypher: str,
        database: str | None = None,
        **params: Any,
    ) -> list[dict[str, Any]]:
        """Run a read-only Cypher query in a read session.

        Returns a list of dicts, one per record.
        """
        async with self.get_read_session(database) as session:
            result = await session.run(cypher, **params)
            return await result.data()

    async def execute_write(
        self,
        cypher: str,
        database: str | None = None,
        **params: Any,
    ) -> list[dict[str, Any]]:
        """Run a Cypher query in a write session.

        Returns a list of dicts, one per record.
        """
        async with self.get_write_session(database) as session:
            result = await session.run(cypher, **params)
            return await result.data()

    async def health_check(self) -> bool:
        """Return True if a trivial Cypher query succeeds."""
        try:
            await self.execute_read("RETURN 1")
            return True
        except Exception:
            return False
