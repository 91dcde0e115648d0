"""Shared lifecycle contract for datastore services.

Every backend service owns exactly one connection handle and moves it through
the same states:

    UNINITIALIZED -> CONNECTING -> READY | DEGRADED | FAILED -> CLOSED

``connect()`` never raises. It returns a ``ConnectResult`` and the lifecycle
manager decides, from the service's ``critical`` flag, whether a failure
aborts startup or only degrades the service.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar


class DatastoreError(Exception):
    """Base class for datastore lifecycle errors."""


class ConfigurationError(DatastoreError):
    """Raised when backend configuration is missing or cannot be parsed."""


class DatastoreNotReadyError(DatastoreError):
    """Raised when a handle is requested outside a usable state."""


class DatastoreStartupError(DatastoreError):
    """Raised when a critical backend fails to start."""

    def __init__(self, backend: str, cause: BaseException | None = None) -> None:
        self.backend = backend
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{backend} failed to start{detail}")


class ConnectionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    READY = "ready"
    DEGRADED = "degraded"
    FAILED = "failed"
    CLOSED = "closed"


@dataclass(frozen=True)
class ConnectResult:
    """Outcome of a single ``connect()`` call."""

    backend: str
    state: ConnectionState
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.state is ConnectionState.READY


class DatastoreService:
    """Base class for a service owning one backend handle.

    Subclasses set ``name`` and ``critical`` and implement ``_create``,
    ``_connect``, ``_close`` and ``health_check``. ``_connect`` returns the
    state to move to on a normal return; any exception it raises is captured
    in the result.
    """

    name: ClassVar[str] = "datastore"
    critical: ClassVar[bool] = True
    usable_states: ClassVar[frozenset[ConnectionState]] = frozenset({ConnectionState.READY})

    def __init__(self) -> None:
        self.state = ConnectionState.UNINITIALIZED
        self.last_error: BaseException | None = None
        self._handle: Any = None
        self.logger = logging.getLogger(type(self).__module__)

    def initialize(self, config: Any) -> None:
        """Build the handle from *config* without any network I/O."""
        if self.state is ConnectionState.CLOSED:
            raise DatastoreNotReadyError(f"{self.name} is closed and cannot be reused")
        if self._handle is not None:
            raise DatastoreError(f"{self.name} is already initialized")
        self._handle = self._create(config)

    async def connect(self) -> ConnectResult:
        """Verify connectivity and report the outcome without raising."""
        if self.state is ConnectionState.CLOSED:
            # CLOSED is terminal
            return ConnectResult(
                self.name,
                ConnectionState.FAILED,
                DatastoreNotReadyError(f"{self.name} is closed and cannot be reused"),
            )
        if self._handle is None:
            error = DatastoreNotReadyError(f"{self.name} is not initialized")
            self.state = ConnectionState.FAILED
            self.last_error = error
            return ConnectResult(self.name, self.state, error)

        self.state = ConnectionState.CONNECTING
        self.last_error = None
        try:
            self.state = await self._connect()
        except Exception as e:
            self.state = ConnectionState.FAILED
            self.last_error = e
            self.logger.error("%s connection error: %s", self.name, e)
            return ConnectResult(self.name, self.state, e)
        return ConnectResult(self.name, self.state, self.last_error)

    async def disconnect(self) -> None:
        """Release the handle. Safe to call before initialize and more than once."""
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        try:
            await self._close(handle)
        finally:
            self.state = ConnectionState.CLOSED

    async def check_health(self) -> bool:
        """Run a live health check against the handle.

        Non-critical services move between READY and DEGRADED on the result,
        so a backend the driver reconnected after startup reports ready again.
        Critical services keep their state; only the result reflects the check.
        """
        if self._handle is None or self.state not in self.usable_states:
            return False
        healthy = await self.health_check()
        if self.critical:
            return healthy
        if healthy and self.state is ConnectionState.DEGRADED:
            self.state = ConnectionState.READY
            self.last_error = None
            self.logger.info("%s recovered", self.name)
        elif not healthy and self.state is ConnectionState.READY:
            self.state = ConnectionState.DEGRADED
            self.logger.warning("%s health check failed; marking degraded", self.name)
        return healthy

    def _require_handle(self) -> Any:
        if self._handle is None or self.state not in self.usable_states:
            raise DatastoreNotReadyError(f"{self.name} is not ready (state={self.state.value})")
        return self._handle

    def _create(self, config: Any) -> Any:
        raise NotImplementedError

    async def _connect(self) -> ConnectionState:
        raise NotImplementedError

    async def _close(self, handle: Any) -> None:
        raise NotImplementedError

    async def health_check(self) -> bool:
        raise NotImplementedError
