"""
Connection lifecycle for Cassandra:
  - connect → create keyspace → use keyspace → create table → verify
  - every step must succeed before the next one starts
  - any failure resets readiness, waits a fixed delay and restarts from step 1
  - no attempt cap and no backoff growth; the process has nothing to serve until storage is up
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from menu_service.config import Settings
from menu_service.database import CassandraStore, keyspace_ddl
from menu_service.errors import ProvisioningError
from menu_service.metrics import PROVISIONING_ATTEMPTS, STORAGE_READY
from menu_service.models import TABLE_DDL
from menu_service.models.menu_item import TABLE_NAME

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


class ConnectionPhase(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"


@dataclass(frozen=True)
class ConnectionState:
    """Immutable snapshot; the manager swaps in a new one on every transition."""

    connected: bool = False
    schema_ready: bool = False
    phase: ConnectionPhase = ConnectionPhase.DISCONNECTED
    attempts: int = 0

    @property
    def ready(self) -> bool:
        return self.connected and self.schema_ready


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class ConnectionManager:
    def __init__(self, store: CassandraStore, settings: Settings) -> None:
        self.store = store
        self.settings = settings
        self._state = ConnectionState()
        self._task: asyncio.Task | None = None
        STORAGE_READY.set(0)

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_ready(self) -> bool:
        return self._state.ready

    def start(self) -> asyncio.Task:
        """Schedule initialize() on a background task. Only the first call schedules anything."""
        if self._task is None:
            self._task = asyncio.create_task(self.initialize(), name="cassandra-provisioning")
        return self._task

    async def initialize(self) -> None:
        """Loop until one full provisioning sequence succeeds."""
        while True:
            attempt = self._state.attempts + 1
            self._state = ConnectionState(phase=ConnectionPhase.CONNECTING, attempts=attempt)
            logger.info("Attempting to connect to Cassandra", extra={"attempt": attempt})

            try:
                await self._provision()
            except ProvisioningError as exc:
                self._state = ConnectionState(phase=ConnectionPhase.DISCONNECTED, attempts=attempt)
                STORAGE_READY.set(0)
                PROVISIONING_ATTEMPTS.labels("failed").inc()
                logger.error(
                    "Error connecting to Cassandra: %s",
                    exc.message,
                    extra={"attempt": attempt, "error": exc.details},
                )
                await self._release_session()
                logger.info(
                    "Will attempt to reconnect in %ss",
                    self.settings.reconnect_delay,
                    extra={"attempt": attempt, "delay_s": self.settings.reconnect_delay},
                )
                await asyncio.sleep(self.settings.reconnect_delay)
                continue

            self._state = ConnectionState(
                connected=True,
                schema_ready=True,
                phase=ConnectionPhase.READY,
                attempts=attempt,
            )
            STORAGE_READY.set(1)
            PROVISIONING_ATTEMPTS.labels("success").inc()
            logger.info("Cassandra ready", extra={"attempt": attempt})
            return

    async def shutdown(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._state = ConnectionState(attempts=self._state.attempts)
        STORAGE_READY.set(0)
        await self.store.close()

    # ------------------------------------------------------------------
    # Provisioning steps
    # ------------------------------------------------------------------

    async def _provision(self) -> None:
        keyspace = self.settings.cassandra_keyspace

        await self._step("connect", self.store.connect())

        await self._step("create keyspace", self.store.execute(keyspace_ddl(self.settings)))
        logger.info("Keyspace created/verified", extra={"keyspace": keyspace})

        await self._step("use keyspace", self.store.execute(f"USE {keyspace}"))
        logger.info("Using keyspace", extra={"keyspace": keyspace})

        for ddl in TABLE_DDL:
            await self._step("create table", self.store.execute(ddl))
        logger.info("Database schema initialized successfully")

        await self._step("verify", self.store.execute(f"SELECT * FROM {TABLE_NAME} LIMIT 1"))
        logger.info("Test query executed successfully")

    @staticmethod
    async def _step(name: str, operation) -> None:
        try:
            await operation
        except Exception as exc:
            raise ProvisioningError(f"{name} failed", details=str(exc)) from exc

    async def _release_session(self) -> None:
        try:
            await self.store.close()
        except Exception as exc:
            logger.warning(
                "Failed to release Cassandra session after provisioning error",
                extra={"error": str(exc)},
            )
