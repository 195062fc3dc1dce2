"""
PostgreSQL Client for the collaboration services

asyncpg connection pool exposing the store capabilities the workflows are
written against:

    select(table, filters, order_by)         scoped read
    insert(table, row)                       insert-append, returns id
    update_if(table, id, expected, new)      conditional update (optimistic guard)
    delete(table, filters)
    transaction()                            multi-statement atomic procedure

Transient transport failures on reads are retried with exponential backoff
(tenacity) inside a bounded per-call timeout, then surfaced as TransportError.
Writes (insert, update_if, delete) run once: a timed-out write may already be
committed. Calls made inside transaction() are never retried.

Filters are column -> value mappings. A list/tuple/set value means "IN", None
means "IS NULL", and a column suffix of __lt, __lte, __gt, __gte or __ne
selects that comparison. order_by entries prefixed with "-" sort descending.

Usage:
    from core.postgres_client import get_postgres_client

    db = await get_postgres_client("invitation_service")
    rows = await db.select("campaign_invitations", {"campaign_id": campaign_id}, order_by=["-created_at"])
"""

import asyncio
import json
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

import asyncpg
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.results import TransportError

logger = logging.getLogger(__name__)


TRANSIENT_ERRORS = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.InterfaceError,
    asyncpg.exceptions.TooManyConnectionsError,
    ConnectionError,
    OSError,
    asyncio.TimeoutError,
)

_OPERATORS = {
    "lt": "<",
    "lte": "<=",
    "gt": ">",
    "gte": ">=",
    "ne": "<>",
}


class ExtendedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal and datetime types"""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


def json_dumps(obj) -> str:
    return json.dumps(obj, cls=ExtendedJSONEncoder)


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def split_filter_key(key: str) -> Tuple[str, Optional[str]]:
    """Split "expires_at__lt" into ("expires_at", "lt")"""
    column, sep, op = key.rpartition("__")
    if sep and op in _OPERATORS:
        return column, op
    return key, None


def build_where(filters: Optional[Dict[str, Any]], start: int = 1) -> Tuple[str, List[Any]]:
    """Render a filter mapping as a WHERE clause with positional params"""
    if not filters:
        return "", []

    clauses: List[str] = []
    params: List[Any] = []
    index = start
    for key, value in filters.items():
        column, op = split_filter_key(key)
        col = _quote(column)
        if op:
            clauses.append(f"{col} {_OPERATORS[op]} ${index}")
            params.append(value)
            index += 1
        elif value is None:
            clauses.append(f"{col} IS NULL")
        elif isinstance(value, (list, tuple, set, frozenset)):
            clauses.append(f"{col} = ANY(${index})")
            params.append(list(value))
            index += 1
        else:
            clauses.append(f"{col} = ${index}")
            params.append(value)
            index += 1
    return " WHERE " + " AND ".join(clauses), params


def build_order(order_by: Optional[Sequence[str]]) -> str:
    if not order_by:
        return ""
    parts = []
    for item in order_by:
        if item.startswith("-"):
            parts.append(f"{_quote(item[1:])} DESC")
        else:
            parts.append(f"{_quote(item)} ASC")
    return " ORDER BY " + ", ".join(parts)


def _row_to_dict(record: Optional[asyncpg.Record]) -> Optional[Dict[str, Any]]:
    if record is None:
        return None
    row = dict(record)
    for key, value in row.items():
        if isinstance(value, uuid.UUID):
            row[key] = str(value)
    return row


async def _init_connection(conn: asyncpg.Connection) -> None:
    """Decode json/jsonb columns to Python objects"""
    for type_name in ("json", "jsonb"):
        await conn.set_type_codec(
            type_name,
            encoder=json_dumps,
            decoder=json.loads,
            schema="pg_catalog",
        )


class _StoreOperations:
    """SQL rendering shared by the pooled client and transaction scopes"""

    schema: str

    def _table(self, table: str) -> str:
        return f"{_quote(self.schema)}.{_quote(table)}"

    async def _fetch(self, operation: str, sql: str, params: List[Any], retry: bool = True) -> List[asyncpg.Record]:
        raise NotImplementedError

    async def _fetchrow(self, operation: str, sql: str, params: List[Any], retry: bool = True) -> Optional[asyncpg.Record]:
        raise NotImplementedError

    async def _fetchval(self, operation: str, sql: str, params: List[Any], retry: bool = True) -> Any:
        raise NotImplementedError

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Scoped read"""
        where, params = build_where(filters)
        sql = f"SELECT * FROM {self._table(table)}{where}{build_order(order_by)}"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
        records = await self._fetch(f"select {table}", sql, params)
        return [_row_to_dict(r) for r in records]

    async def select_one(
        self,
        table: str,
        filters: Dict[str, Any],
        order_by: Optional[Sequence[str]] = None,
    ) -> Optional[Dict[str, Any]]:
        rows = await self.select(table, filters, order_by=order_by, limit=1)
        return rows[0] if rows else None

    async def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        where, params = build_where(filters)
        sql = f"SELECT COUNT(*) FROM {self._table(table)}{where}"
        value = await self._fetchval(f"count {table}", sql, params)
        return int(value or 0)

    async def insert(self, table: str, row: Dict[str, Any]) -> str:
        """Insert-append; returns the row id"""
        columns = list(row.keys())
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        sql = (
            f"INSERT INTO {self._table(table)} ({', '.join(_quote(c) for c in columns)}) "
            f"VALUES ({placeholders}) RETURNING id"
        )
        value = await self._fetchval(f"insert {table}", sql, [row[c] for c in columns], retry=False)
        return str(value)

    async def update_if(
        self,
        table: str,
        row_id: str,
        expected: Dict[str, Any],
        new: Dict[str, Any],
    ) -> bool:
        """
        Conditional update: applies `new` only while every `expected` column
        still holds its expected value. Returns False when the guard trips.
        """
        columns = list(new.keys())
        assignments = ", ".join(f"{_quote(c)} = ${i}" for i, c in enumerate(columns, start=1))
        params: List[Any] = [new[c] for c in columns]

        params.append(row_id)
        id_index = len(params)
        where, where_params = build_where(expected, start=id_index + 1)
        guard = where.replace(" WHERE ", " AND ", 1) if where else ""
        params.extend(where_params)

        sql = (
            f"UPDATE {self._table(table)} SET {assignments} "
            f"WHERE {_quote('id')} = ${id_index}{guard} RETURNING id"
        )
        record = await self._fetchrow(f"update_if {table}", sql, params, retry=False)
        return record is not None

    async def delete(self, table: str, filters: Dict[str, Any]) -> int:
        where, params = build_where(filters)
        if not where:
            raise ValueError("delete requires at least one filter")
        sql = f"DELETE FROM {self._table(table)}{where} RETURNING id"
        records = await self._fetch(f"delete {table}", sql, params, retry=False)
        return len(records)


class PostgresTransaction(_StoreOperations):
    """Operations bound to one connection inside an open transaction"""

    def __init__(self, conn: asyncpg.Connection, schema: str, timeout: float):
        self._conn = conn
        self.schema = schema
        self.timeout = timeout

    async def _fetch(self, operation, sql, params, retry=True):
        return await self._conn.fetch(sql, *params, timeout=self.timeout)

    async def _fetchrow(self, operation, sql, params, retry=True):
        return await self._conn.fetchrow(sql, *params, timeout=self.timeout)

    async def _fetchval(self, operation, sql, params, retry=True):
        return await self._conn.fetchval(sql, *params, timeout=self.timeout)


class PostgresClient(_StoreOperations):
    """
    PostgreSQL client with service discovery integration.

    - Lazily creates an asyncpg pool on first use
    - Bounded timeout and bounded retry for transient failures
    - transaction() for store procedures that must be atomic
    """

    def __init__(
        self,
        service_name: str,
        host: Optional[str] = None,
        port: Optional[int] = None,
        database: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        schema: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        config=None,
    ):
        """
        Initialize PostgreSQL client.

        Args:
            service_name: Name of the service using this client
            host: PostgreSQL host (defaults to env/service discovery)
            port: PostgreSQL port (defaults to 5432)
            database: Database name
            username: Database username
            password: Database password
            schema: Schema holding the collaboration tables
            timeout: Per-call timeout in seconds
            retry_attempts: Attempts for transient failures
            config: Optional ConfigManager instance
        """
        from core.config_manager import ConfigManager

        self.service_name = service_name
        config = config or ConfigManager(service_name)
        infra = config.settings.infrastructure
        policy = config.policy

        discovered_host, discovered_port = config.discover_service(
            service_name="postgres_service",
            default_host="localhost",
            default_port=5432,
            env_host_key="POSTGRES_HOST",
            env_port_key="POSTGRES_PORT",
        )

        self.host = host or discovered_host
        self.port = port or discovered_port
        self.database = database or infra.postgres_db
        self.username = username or infra.postgres_user
        self.password = password or infra.postgres_password
        self.schema = schema or policy.store_schema
        self.timeout = timeout or policy.store_timeout_seconds
        self.retry_attempts = max(1, retry_attempts or policy.store_retry_attempts)
        self.retry_backoff = policy.store_retry_backoff_seconds
        self.pool_min = infra.postgres_pool_min
        self.pool_max = infra.postgres_pool_max

        self._pool: Optional[asyncpg.Pool] = None
        self._pool_lock = asyncio.Lock()

        logger.info(f"PostgreSQL client initialized for {service_name}: {self.host}:{self.port}/{self.database}")

    async def connect(self) -> None:
        async with self._pool_lock:
            if self._pool is None:
                self._pool = await asyncpg.create_pool(
                    host=self.host,
                    port=self.port,
                    database=self.database,
                    user=self.username,
                    password=self.password,
                    min_size=self.pool_min,
                    max_size=self.pool_max,
                    timeout=self.timeout,
                    init=_init_connection,
                )
                logger.info(f"PostgreSQL pool ready for {self.service_name}")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info(f"PostgreSQL pool closed for {self.service_name}")

    async def health_check(self) -> bool:
        try:
            return await self._fetchval("health_check", "SELECT 1", []) == 1
        except TransportError as e:
            logger.error(f"Health check failed: {e}")
            return False

    async def _run(self, operation: str, call, retry: bool = True) -> Any:
        attempts = self.retry_attempts if retry else 1
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=self.retry_backoff, max=2),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    if self._pool is None:
                        await self.connect()
                    return await asyncio.wait_for(call(), timeout=self.timeout)
        except TRANSIENT_ERRORS as e:
            logger.error(f"[{self.service_name}] {operation} failed after {attempts} attempts: {e}")
            raise TransportError(f"{operation} failed: {e}", operation=operation, attempts=attempts) from e
        except asyncpg.PostgresError as e:
            logger.error(f"[{self.service_name}] {operation} rejected by store: {e}")
            raise TransportError(f"{operation} failed: {e}", operation=operation, attempts=1) from e

    async def _fetch(self, operation, sql, params, retry=True):
        async def call():
            async with self._pool.acquire() as conn:
                return await conn.fetch(sql, *params)
        return await self._run(operation, call, retry=retry)

    async def _fetchrow(self, operation, sql, params, retry=True):
        async def call():
            async with self._pool.acquire() as conn:
                return await conn.fetchrow(sql, *params)
        return await self._run(operation, call, retry=retry)

    async def _fetchval(self, operation, sql, params, retry=True):
        async def call():
            async with self._pool.acquire() as conn:
                return await conn.fetchval(sql, *params)
        return await self._run(operation, call, retry=retry)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[PostgresTransaction]:
        """
        Run a store procedure atomically. Any exception raised inside the
        block rolls the transaction back and propagates.
        """
        if self._pool is None:
            await self._run("connect", self._noop)
        try:
            async with self._pool.acquire() as conn:
                async with conn.transaction():
                    yield PostgresTransaction(conn, self.schema, self.timeout)
        except TRANSIENT_ERRORS as e:
            logger.error(f"[{self.service_name}] transaction aborted: {e}")
            raise TransportError(f"transaction failed: {e}", operation="transaction", attempts=1) from e
        except asyncpg.PostgresError as e:
            logger.error(f"[{self.service_name}] transaction rejected by store: {e}")
            raise TransportError(f"transaction failed: {e}", operation="transaction", attempts=1) from e

    @staticmethod
    async def _noop() -> None:
        return None


# Singleton instances per service
_postgres_clients: Dict[str, PostgresClient] = {}


async def get_postgres_client(
    service_name: str,
    host: Optional[str] = None,
    port: Optional[int] = None,
    database: Optional[str] = None,
    **kwargs,
) -> PostgresClient:
    """
    Get or create PostgreSQL client for a service.

    Args:
        service_name: Service name
        host: Optional host override
        port: Optional port override
        database: Optional database override
        **kwargs: Additional client options

    Returns:
        PostgresClient instance
    """
    global _postgres_clients

    if service_name not in _postgres_clients:
        client = PostgresClient(
            service_name=service_name,
            host=host,
            port=port,
            database=database,
            **kwargs,
        )
        _postgres_clients[service_name] = client

    return _postgres_clients[service_name]


async def close_postgres_clients() -> None:
    for client in list(_postgres_clients.values()):
        await client.close()
    _postgres_clients.clear()
