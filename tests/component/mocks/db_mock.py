"""
Store Mock for Component Testing

In-memory stand-in for core.postgres_client.PostgresClient. Implements the
same filter grammar (IN for sequences, IS NULL for None, __lt/__lte/__gt/
__gte/__ne suffixes), ordering, conditional update and transactions with
rollback. Every call yields to the event loop once so concurrent workflows
interleave the way they would against a real pool.
"""
import asyncio
import copy
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Sequence

from core.postgres_client import split_filter_key

_COMPARATORS = {
    "lt": lambda a, b: a is not None and a < b,
    "lte": lambda a, b: a is not None and a <= b,
    "gt": lambda a, b: a is not None and a > b,
    "gte": lambda a, b: a is not None and a >= b,
    "ne": lambda a, b: a is not None and a != b,
}


def _matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    for key, expected in (filters or {}).items():
        column, op = split_filter_key(key)
        actual = row.get(column)
        if op:
            if not _COMPARATORS[op](actual, expected):
                return False
        elif expected is None:
            if actual is not None:
                return False
        elif isinstance(expected, (list, tuple, set, frozenset)):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


def _sort(rows: List[Dict[str, Any]], order_by: Optional[Sequence[str]]) -> List[Dict[str, Any]]:
    # Postgres puts NULLs last ascending and first descending
    for item in reversed(order_by or []):
        descending = item.startswith("-")
        column = item[1:] if descending else item
        rows.sort(
            key=lambda r: (r.get(column) is None, r.get(column) if r.get(column) is not None else 0),
            reverse=descending,
        )
    return rows


class MockStore:
    """In-memory store with the PostgresClient call surface"""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self._should_raise: Optional[Exception] = None
        self._tx_lock = asyncio.Lock()
        self.transactions = 0
        self.rollbacks = 0

    async def _enter(self, operation: str, table: str):
        self.calls.append((operation, table))
        if self._should_raise:
            raise self._should_raise
        await asyncio.sleep(0)

    def _rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        await self._enter("select", table)
        rows = _sort([copy.deepcopy(r) for r in self._rows(table) if _matches(r, filters)], order_by)
        return rows[:limit] if limit is not None else rows

    async def select_one(
        self,
        table: str,
        filters: Dict[str, Any],
        order_by: Optional[Sequence[str]] = None,
    ) -> Optional[Dict[str, Any]]:
        rows = await self.select(table, filters, order_by=order_by, limit=1)
        return rows[0] if rows else None

    async def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        await self._enter("count", table)
        return sum(1 for r in self._rows(table) if _matches(r, filters))

    async def insert(self, table: str, row: Dict[str, Any]) -> str:
        await self._enter("insert", table)
        stored = copy.deepcopy(row)
        stored.setdefault("id", str(uuid.uuid4()))
        if stored["id"] is None:
            stored["id"] = str(uuid.uuid4())
        self._rows(table).append(stored)
        return str(stored["id"])

    async def update_if(
        self,
        table: str,
        row_id: str,
        expected: Dict[str, Any],
        new: Dict[str, Any],
    ) -> bool:
        await self._enter("update_if", table)
        for row in self._rows(table):
            if row.get("id") == row_id:
                if not _matches(row, expected):
                    return False
                row.update(copy.deepcopy(new))
                return True
        return False

    async def delete(self, table: str, filters: Dict[str, Any]) -> int:
        if not filters:
            raise ValueError("delete requires at least one filter")
        await self._enter("delete", table)
        rows = self._rows(table)
        kept = [r for r in rows if not _matches(r, filters)]
        self.tables[table] = kept
        return len(rows) - len(kept)

    @asynccontextmanager
    async def transaction(self):
        """Serialized transaction; an exception restores the snapshot"""
        async with self._tx_lock:
            self.transactions += 1
            snapshot = copy.deepcopy(self.tables)
            try:
                yield self
            except BaseException:
                self.tables = snapshot
                self.rollbacks += 1
                raise

    async def health_check(self) -> bool:
        return self._should_raise is None

    async def close(self):
        pass

    # Test helper methods

    def seed(self, table: str, *rows: Dict[str, Any]) -> None:
        """Insert rows directly, bypassing call recording"""
        for row in rows:
            stored = copy.deepcopy(row)
            stored.setdefault("id", str(uuid.uuid4()))
            self._rows(table).append(stored)

    def rows(self, table: str, **filters) -> List[Dict[str, Any]]:
        return [copy.deepcopy(r) for r in self._rows(table) if _matches(r, filters)]

    def set_error(self, error: Exception):
        """Set an error to be raised on every call"""
        self._should_raise = error

    def clear_error(self):
        """Clear any pending error"""
        self._should_raise = None

    def get_calls(self, operation: Optional[str] = None) -> List[tuple]:
        if operation:
            return [c for c in self.calls if c[0] == operation]
        return self.calls
