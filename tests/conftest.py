import asyncio
import os
import time
import uuid

# Tracing is configured at import of menu_service.main; keep it off under test.
os.environ.setdefault("OTLP_ENDPOINT", "")

import pytest
from fastapi.testclient import TestClient

from menu_service.config import Settings
from menu_service.errors import NotReadyError
from menu_service.models.menu_item import COLUMNS
from menu_service.services import menu_item_service as svc
from menu_service.services.connection_manager import ConnectionManager


class FakeStore:
    """In-memory stand-in for CassandraStore that answers the service's CQL statements.

    `failures` maps a statement fragment (or "connect") to how many times it should fail.
    """

    def __init__(self, failures: dict[str, int] | None = None, hang_on_connect: bool = False):
        self.rows: dict[uuid.UUID, dict] = {}
        self.statements: list[str] = []
        self.failures = dict(failures or {})
        self.hang_on_connect = hang_on_connect
        self.connect_calls = 0
        self.close_calls = 0
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def _maybe_fail(self, key: str) -> None:
        for fragment, remaining in self.failures.items():
            if remaining > 0 and fragment in key:
                self.failures[fragment] = remaining - 1
                raise ConnectionError(f"simulated failure: {fragment}")

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.hang_on_connect:
            await asyncio.Event().wait()
        self._maybe_fail("connect")
        self._connected = True

    async def execute(self, query, parameters=None, *, prepare=False):
        if not self._connected:
            raise NotReadyError()
        self.statements.append(query)
        self._maybe_fail(query)

        if query == svc.SELECT_ALL:
            return [dict(row) for row in self.rows.values()]
        if query == svc.SELECT_BY_ID:
            row = self.rows.get(parameters[0])
            return [dict(row)] if row else []
        if query == svc.INSERT:
            row = dict(zip(COLUMNS, parameters))
            self.rows[row["id"]] = row
            return []
        if query == svc.UPDATE:
            name, description, category, price, is_vegetarian, updated_at, item_id = parameters
            row = self.rows.get(item_id)
            if row is None:
                return [{"[applied]": False}]
            row.update(
                name=name,
                description=description,
                category=category,
                price=price,
                is_vegetarian=is_vegetarian,
                updated_at=updated_at,
            )
            return [{"[applied]": True}]
        if query == svc.DELETE:
            if self.rows.pop(parameters[0], None) is None:
                return [{"[applied]": False}]
            return [{"[applied]": True}]
        # DDL, USE and the verification read
        return []

    async def close(self) -> None:
        self.close_calls += 1
        self._connected = False

    def count(self, fragment: str) -> int:
        return sum(1 for statement in self.statements if fragment in statement)


@pytest.fixture
def settings() -> Settings:
    return Settings(reconnect_delay=0.0, otlp_endpoint="")


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def manager(store: FakeStore, settings: Settings) -> ConnectionManager:
    return ConnectionManager(store, settings)


@pytest.fixture
def ready_store() -> FakeStore:
    store = FakeStore()
    store._connected = True
    return store


def wait_until(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        time.sleep(0.01)


@pytest.fixture
def client(manager: ConnectionManager):
    from menu_service.main import create_app

    with TestClient(create_app(manager)) as test_client:
        wait_until(manager.is_ready)
        yield test_client


@pytest.fixture
def unready_client(settings: Settings):
    from menu_service.main import create_app

    store = FakeStore(hang_on_connect=True)
    manager = ConnectionManager(store, settings)
    with TestClient(create_app(manager)) as test_client:
        test_client.store = store
        yield test_client
