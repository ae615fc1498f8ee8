"""SQLite document store.

Records are kept as JSON text and predicate trees are rendered to SQL over
``json_extract`` / ``json_each``. Every value reaches SQLite as a bound
parameter; only field paths, which come from the query builder, are
interpolated and they are validated first.
"""

import asyncio
import json
import logging
import re
import sqlite3
import threading
import uuid
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

from memsearch.exceptions import RecordNotFoundError, StoreError
from memsearch.storage.query import (
    AggregateQuery,
    Condition,
    GroupBy,
    Grouping,
    Operator,
    Query,
    Sort,
    StoreQuery,
)

from .base import MEMORIALS, DocumentStore

logger = logging.getLogger(__name__)

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Python lower() folds non-ASCII text, SQLite lower() does not
CONTAINS_FUNCTION = "memsearch_contains"


def _contains(haystack: Any, needle: Any) -> int:
    if haystack is None or needle is None:
        return 0
    return int(str(needle).lower() in str(haystack).lower())


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _json_path(parts: list[str]) -> str:
    for part in parts:
        if not _FIELD_NAME.match(part):
            raise StoreError(f"Invalid field name: {part!r}")
    return "$." + ".".join(parts) if parts else "$"


class _Renderer:
    """Renders predicate trees to SQL, collecting bound parameters."""

    def __init__(self, source: str = "r.data"):
        self.source = source
        self.params: list[Any] = []

    def where(self, query: Query) -> str:
        if not query.conditions:
            return "1"

        joiner = " AND " if query.operator == Operator.AND else " OR "
        parts = []
        for condition in query.conditions:
            if isinstance(condition, Query):
                parts.append(f"({self.where(condition)})")
            else:
                parts.append(self.condition(condition))
        return "(" + joiner.join(parts) + ")"

    def condition(self, condition: Condition) -> str:
        return self.path(condition.field, lambda expr: self.compare(expr, condition))

    def compare(self, expr: str, condition: Condition) -> str:
        op = condition.operator
        value = _plain(condition.value)

        if op == Operator.CONTAINS:
            self.params.append(str(value))
            return f"{CONTAINS_FUNCTION}({expr}, ?)"

        if op == Operator.IN:
            values = [_plain(v) for v in value]
            if not values:
                return "0"
            self.params.extend(values)
            return f"{expr} IN ({', '.join('?' for _ in values)})"

        if op in (Operator.EQ, Operator.GTE, Operator.LTE):
            self.params.append(value)
            return f"{expr} {op.value} ?"

        raise StoreError(f"Unsupported operator in condition: {op}")

    def path(self, path: str, compare: Callable[[str], str]) -> str:
        return self._segment(self.source, path.split("."), compare, 0)

    def _segment(
        self, source: str, parts: list[str], compare: Callable[[str], str], depth: int
    ) -> str:
        for i, part in enumerate(parts):
            if part.endswith("[]"):
                alias = f"j{depth}"
                json_path = _json_path(parts[:i] + [part[:-2]])
                inner = self._segment(f"{alias}.value", parts[i + 1 :], compare, depth + 1)
                return (
                    f"EXISTS (SELECT 1 FROM json_each({source}, '{json_path}') "
                    f"AS {alias} WHERE {inner})"
                )

        if not parts:
            return compare(source)
        return compare(f"json_extract({source}, '{_json_path(parts)}')")

    def scalar(self, path: str) -> str:
        """Expression for a path without list expansion."""
        if "[]" in path:
            raise StoreError(f"List path not allowed here: {path}")
        return f"json_extract({self.source}, '{_json_path(path.split('.'))}')"


class SQLiteStore(DocumentStore):
    """SQLite-backed document store.

    Blocking calls run in a worker thread; a lock serialises use of the
    single connection.
    """

    def __init__(self, db_path: Path | str = ":memory:"):
        self.db_path = str(db_path)
        self._lock = threading.RLock()
        self.conn: sqlite3.Connection | None = sqlite3.connect(
            self.db_path, check_same_thread=False
        )
        self.connection.row_factory = sqlite3.Row
        self.connection.create_function(
            CONTAINS_FUNCTION, 2, _contains, deterministic=True
        )
        self.initialize()

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the connection, ensuring it exists."""
        if self.conn is None:
            raise StoreError("Database connection is closed")
        return self.conn

    def initialize(self) -> None:
        """Create database schema."""
        if self.db_path != ":memory:":
            self.connection.execute("PRAGMA journal_mode=WAL")
        self.connection.executescript("""
            CREATE TABLE IF NOT EXISTS records (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                data TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (collection, id)
            );

            CREATE INDEX IF NOT EXISTS idx_records_collection ON records(collection);
        """)
        self.connection.commit()

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(self._locked, func, *args)

    def _locked(self, func: Callable[..., Any], *args: Any) -> Any:
        with self._lock:
            try:
                return func(*args)
            except sqlite3.Error as e:
                raise StoreError(f"SQLite error: {e}") from e

    async def fetch(
        self, query: StoreQuery, collection: str = MEMORIALS
    ) -> list[dict[str, Any]]:
        return await self._run(self._fetch, query, collection)

    def _fetch(self, query: StoreQuery, collection: str) -> list[dict[str, Any]]:
        renderer = _Renderer()
        where = renderer.where(query.where)
        order = self._order_by(renderer, query.sort)

        sql = (
            f"SELECT r.data FROM records AS r WHERE r.collection = ? AND {where} "
            f"ORDER BY {order} LIMIT ? OFFSET ?"
        )
        limit = -1 if query.limit is None else query.limit
        params = [collection, *renderer.params, limit, query.offset]

        logger.debug("fetch: %s %s", sql, params)
        cursor = self.connection.execute(sql, params)
        return [json.loads(row["data"]) for row in cursor]

    @staticmethod
    def _order_by(renderer: _Renderer, sort: Sort | None) -> str:
        if sort is None:
            return "r.seq"
        expr = renderer.scalar(sort.field)
        direction = "DESC" if sort.descending else "ASC"
        return f"({expr} IS NULL), {expr} {direction}, r.seq"

    async def count(self, where: Query, collection: str = MEMORIALS) -> int:
        return await self._run(self._count, where, collection)

    def _count(self, where: Query, collection: str) -> int:
        renderer = _Renderer()
        clause = renderer.where(where)
        cursor = self.connection.execute(
            f"SELECT COUNT(*) AS n FROM records AS r WHERE r.collection = ? AND {clause}",
            [collection, *renderer.params],
        )
        return cursor.fetchone()["n"]

    async def aggregate(
        self, query: AggregateQuery, collection: str = MEMORIALS
    ) -> list[tuple[Any, int]]:
        return await self._run(self._aggregate, query, collection)

    def _aggregate(self, query: AggregateQuery, collection: str) -> list[tuple[Any, int]]:
        renderer = _Renderer()
        key_sql, key_params, joins = self._group_key(renderer, query.group_by)
        where = renderer.where(query.where)

        sql = (
            f"SELECT {key_sql} AS k, COUNT(DISTINCT r.seq) AS n "
            f"FROM records AS r{joins} "
            f"WHERE r.collection = ? AND {where} "
            f"GROUP BY k"
        )
        params = [*key_params, collection, *renderer.params]
        cursor = self.connection.execute(
            f"SELECT k, n FROM ({sql}) WHERE k IS NOT NULL AND k != ''", params
        )
        return [(row["k"], row["n"]) for row in cursor]

    @staticmethod
    def _group_key(renderer: _Renderer, group_by: GroupBy) -> tuple[str, list[Any], str]:
        """SQL key expression, its parameters and any json_each join."""
        if group_by.grouping == Grouping.COMPOSITE:
            exprs = [renderer.scalar(path) for path in group_by.fields]
            guards = " AND ".join(f"trim({e}) != ''" for e in exprs)
            joined = " || ? || ".join(exprs)
            params = [group_by.separator] * (len(exprs) - 1)
            return f"CASE WHEN {guards} THEN {joined} END", params, ""

        path = group_by.fields[0]
        joins = ""
        if "[]" in path:
            head, _, rest = path.partition("[]")
            joins = f", json_each(r.data, '{_json_path(head.split('.'))}') AS g"
            rest = rest.lstrip(".")
            expr = f"json_extract(g.value, '{_json_path(rest.split('.'))}')" if rest else "g.value"
        else:
            expr = renderer.scalar(path)

        if group_by.grouping == Grouping.YEAR:
            prefix = f"substr({expr}, 1, 4)"
            expr = (
                f"CASE WHEN {prefix} GLOB '[0-9][0-9][0-9][0-9]' "
                f"THEN CAST({prefix} AS INTEGER) END"
            )

        return expr, [], joins

    async def create(self, collection: str, record: dict[str, Any]) -> str:
        return await self._run(self._create, collection, record)

    def _create(self, collection: str, record: dict[str, Any]) -> str:
        record_id = str(record.get("id") or uuid.uuid4().hex)
        data = json.dumps({**record, "id": record_id}, ensure_ascii=False)
        try:
            self.connection.execute(
                "INSERT INTO records (collection, id, data) VALUES (?, ?, ?)",
                (collection, record_id, data),
            )
        except sqlite3.IntegrityError as e:
            raise StoreError(f"Duplicate id in {collection}: {record_id}") from e
        self.connection.commit()
        logger.debug("Created %s/%s", collection, record_id)
        return record_id

    async def patch(
        self, collection: str, record_id: str, changes: dict[str, Any]
    ) -> None:
        await self._run(self._patch, collection, record_id, changes)

    def _patch(self, collection: str, record_id: str, changes: dict[str, Any]) -> None:
        record = self._get(collection, record_id)
        if record is None:
            raise RecordNotFoundError(collection, record_id)
        record.update(changes)
        self.connection.execute(
            "UPDATE records SET data = ? WHERE collection = ? AND id = ?",
            (json.dumps(record, ensure_ascii=False), collection, record_id),
        )
        self.connection.commit()

    async def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        return await self._run(self._get, collection, record_id)

    def _get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        row = self.connection.execute(
            "SELECT data FROM records WHERE collection = ? AND id = ?",
            (collection, record_id),
        ).fetchone()
        return json.loads(row["data"]) if row else None

    async def list_records(self, collection: str) -> list[dict[str, Any]]:
        return await self._run(self._list, collection)

    def _list(self, collection: str) -> list[dict[str, Any]]:
        cursor = self.connection.execute(
            "SELECT data FROM records WHERE collection = ? ORDER BY seq", (collection,)
        )
        return [json.loads(row["data"]) for row in cursor]

    async def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self.conn:
                self.conn.close()
                self.conn = None
