"""Shared fixtures for datastore lifecycle tests. No live backends are used."""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from services.base import ConnectionState, DatastoreService
from services.lifecycle import DatastoreManager


class FakePool:
    """Stand-in for an uninitialized asyncpg pool: awaiting it 'connects'."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.initialized = False
        self.close = AsyncMock()
        self.fetchval = AsyncMock(return_value=1)

    def __await__(self):
        return self._init().__await__()

    async def _init(self) -> "FakePool":
        if self.error is not None:
            raise self.error
        self.initialized = True
        return self

    def get_min_size(self) -> int:
        return 2

    def get_max_size(self) -> int:
        return 10


class StubService(DatastoreService):
    """Datastore service with scripted outcomes that records every call."""

    def __init__(
        self,
        name: str,
        critical: bool = True,
        outcome: ConnectionState = ConnectionState.READY,
        connect_error: Exception | None = None,
        init_error: Exception | None = None,
        close_error: Exception | None = None,
        healthy: bool = True,
        calls: list[tuple[str, str]] | None = None,
    ) -> None:
        super().__init__()
        self.name = name
        self.critical = critical
        if not critical:
            self.usable_states = frozenset({ConnectionState.READY, ConnectionState.DEGRADED})
        self.outcome = outcome
        self.connect_error = connect_error
        self.init_error = init_error
        self.close_error = close_error
        self.healthy = healthy
        self.calls = calls if calls is not None else []
        self.received_config: Any = None
        self.closed_handles = 0

    def initialize(self, config: Any) -> None:
        self.calls.append(("initialize", self.name))
        self.received_config = config
        super().initialize(config)

    async def disconnect(self) -> None:
        self.calls.append(("disconnect", self.name))
        await super().disconnect()

    def _create(self, config: Any) -> Any:
        if self.init_error is not None:
            raise self.init_error
        return object()

    async def _connect(self) -> ConnectionState:
        if self.connect_error is not None:
            raise self.connect_error
        return self.outcome

    async def _close(self, handle: Any) -> None:
        self.closed_handles += 1
        if self.close_error is not None:
            raise self.close_error

    async def health_check(self) -> bool:
        return self.healthy

    def disconnect_count(self) -> int:
        return sum(1 for call, name in self.calls if call == "disconnect" and name == self.name)


@pytest.fixture
def calls() -> list[tuple[str, str]]:
    return []


@pytest.fixture
def make_manager(calls):
    """Build a DatastoreManager from per-backend StubService overrides."""

    def _make(**overrides: dict[str, Any]) -> DatastoreManager:
        defaults = {
            "postgres": {"critical": True},
            "redis": {"critical": False},
            "neo4j": {"critical": True},
            "elasticsearch": {"critical": False},
        }
        services = {}
        for name, options in defaults.items():
            merged = {**options, **overrides.get(name, {})}
            services[name] = StubService(name, calls=calls, **merged)
        return DatastoreManager(**services)

    return _make


@pytest.fixture
def fake_pool_cls() -> type[FakePool]:
    return FakePool
