"""
Cassandra access for the menu service.

The DataStax driver is callback based; CassandraStore bridges its
ResponseFuture onto the asyncio event loop so storage calls suspend the
calling coroutine instead of blocking the loop.
"""

import asyncio
import logging
from typing import Any, Sequence

from cassandra import ConsistencyLevel
from cassandra.cluster import EXEC_PROFILE_DEFAULT, Cluster, ExecutionProfile, ResponseFuture, Session
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra.query import PreparedStatement, dict_factory

from menu_service.config import Settings
from menu_service.errors import NotReadyError

logger = logging.getLogger(__name__)


def keyspace_ddl(settings: Settings) -> str:
    if settings.cassandra_replication_class == "NetworkTopologyStrategy":
        replication = (
            f"{{'class': 'NetworkTopologyStrategy', "
            f"'{settings.cassandra_dc}': {settings.cassandra_replication_factor}}}"
        )
    else:
        replication = (
            f"{{'class': '{settings.cassandra_replication_class}', "
            f"'replication_factor': {settings.cassandra_replication_factor}}}"
        )
    return (
        f"CREATE KEYSPACE IF NOT EXISTS {settings.cassandra_keyspace} "
        f"WITH replication = {replication}"
    )


def create_cluster(settings: Settings) -> Cluster:
    profile = ExecutionProfile(
        load_balancing_policy=TokenAwarePolicy(
            DCAwareRoundRobinPolicy(local_dc=settings.cassandra_dc)
        ),
        consistency_level=ConsistencyLevel.ONE,
        request_timeout=settings.cassandra_request_timeout,
        row_factory=dict_factory,
    )
    return Cluster(
        contact_points=settings.contact_points,
        port=settings.cassandra_port,
        execution_profiles={EXEC_PROFILE_DEFAULT: profile},
        connect_timeout=settings.cassandra_connect_timeout,
    )


class _PagedResult:
    """Collects every page of a ResponseFuture into an asyncio future."""

    def __init__(self, response: ResponseFuture, loop: asyncio.AbstractEventLoop) -> None:
        self._response = response
        self._loop = loop
        self._rows: list[dict[str, Any]] = []
        self.done: asyncio.Future = loop.create_future()
        response.add_callbacks(self._on_page, self._on_error)

    def _on_page(self, rows) -> None:
        self._rows.extend(rows or [])
        if self._response.has_more_pages:
            self._response.start_fetching_next_page()
        else:
            self._loop.call_soon_threadsafe(self._resolve, self._rows, None)

    def _on_error(self, exc: BaseException) -> None:
        self._loop.call_soon_threadsafe(self._resolve, None, exc)

    def _resolve(self, rows, exc) -> None:
        if self.done.done():
            return
        if exc is not None:
            self.done.set_exception(exc)
        else:
            self.done.set_result(rows)


class CassandraStore:
    """Owns one Cluster/Session pair and a cache of prepared statements."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._cluster: Cluster | None = None
        self._session: Session | None = None
        self._prepared: dict[str, PreparedStatement] = {}

    @property
    def connected(self) -> bool:
        return self._session is not None

    async def connect(self) -> None:
        loop = asyncio.get_running_loop()
        cluster = create_cluster(self.settings)
        try:
            session = await loop.run_in_executor(None, cluster.connect)
        except BaseException:
            # Cancellation included, otherwise the reactor threads outlive the task.
            await loop.run_in_executor(None, cluster.shutdown)
            raise
        session.default_fetch_size = self.settings.cassandra_fetch_size
        self._cluster = cluster
        self._session = session
        self._prepared.clear()
        logger.info(
            "Connected to Cassandra",
            extra={
                "contact_points": self.settings.contact_points,
                "datacenter": self.settings.cassandra_dc,
            },
        )

    async def execute(
        self,
        query: str,
        parameters: Sequence[Any] | None = None,
        *,
        prepare: bool = False,
    ) -> list[dict[str, Any]]:
        """Run a statement and return all rows as dicts. Driver errors propagate unchanged."""
        if self._session is None:
            raise NotReadyError()
        statement = await self._prepare(query) if prepare else query
        response = self._session.execute_async(statement, parameters)
        return await _PagedResult(response, asyncio.get_running_loop()).done

    async def _prepare(self, query: str) -> PreparedStatement:
        statement = self._prepared.get(query)
        if statement is None:
            loop = asyncio.get_running_loop()
            statement = await loop.run_in_executor(None, self._session.prepare, query)
            self._prepared[query] = statement
        return statement

    async def close(self) -> None:
        cluster = self._cluster
        self._cluster = None
        self._session = None
        self._prepared.clear()
        if cluster is not None:
            await asyncio.get_running_loop().run_in_executor(None, cluster.shutdown)
            logger.info("Cassandra cluster shut down")
