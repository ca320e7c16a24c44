"""Query adapter — one raw-SQL interface over PostgreSQL and SQLite.

Call sites write PostgreSQL-style SQL: positional ``$1..$n`` placeholders,
``NOW()``, and a trailing ``RETURNING *``. The adapter turns placeholders
into SQLAlchemy named binds (values are never inlined) and, on SQLite,
rewrites ``NOW()`` and emulates ``RETURNING *`` by re-selecting the row.
Upserts (``ON CONFLICT``) keep SQLite's native ``RETURNING *``.

Usage:
    adapter = QueryAdapter(database.engine)
    result = adapter.query("SELECT * FROM vendors WHERE email = $1", [email])
    result.rows  # -> [{"id": 1, "name": ..., ...}]

Store errors (IntegrityError etc.) propagate unchanged.
"""

import re
from dataclasses import dataclass, field

from loguru import logger
from sqlalchemy import text
from sqlalchemy.engine import Engine

_PLACEHOLDER = re.compile(r"\$(\d+)")
_RETURNING_ALL = re.compile(r"\s+RETURNING\s+\*\s*;?\s*$", re.IGNORECASE)
_NOW = re.compile(r"\bNOW\s*\(\s*\)", re.IGNORECASE)
_WHERE_ID = re.compile(r"\bWHERE\s+id\s*=\s*\$(\d+)", re.IGNORECASE)
_ON_CONFLICT = re.compile(r"\bON\s+CONFLICT\b", re.IGNORECASE)
_STATEMENT_TABLE = [
    ("insert", re.compile(r"^\s*INSERT\s+INTO\s+\"?(\w+)\"?", re.IGNORECASE)),
    ("update", re.compile(r"^\s*UPDATE\s+\"?(\w+)\"?", re.IGNORECASE)),
    ("delete", re.compile(r"^\s*DELETE\s+FROM\s+\"?(\w+)\"?", re.IGNORECASE)),
]

SQLITE_NOW = "CURRENT_TIMESTAMP"


class QueryAdapterError(ValueError):
    """SQL or parameters the adapter cannot translate."""


@dataclass
class QueryResult:
    rows: list[dict] = field(default_factory=list)
    rowcount: int = 0


def placeholder_count(sql: str) -> int:
    """Highest ``$n`` ordinal used in the statement (0 if none)."""
    ordinals = [int(n) for n in _PLACEHOLDER.findall(sql)]
    return max(ordinals) if ordinals else 0


def bind_placeholders(sql: str, params: list | tuple | None) -> tuple[str, dict]:
    """Replace ``$n`` with ``:pn`` and build the bind dict.

    Substitutes from the highest ordinal down so ``$1`` never matches the
    front of ``$10``.
    """
    params = list(params or [])
    count = placeholder_count(sql)
    used = {int(n) for n in _PLACEHOLDER.findall(sql)}
    if used and used != set(range(1, count + 1)):
        raise QueryAdapterError(f"Placeholders must be sequential from $1 (found {sorted(used)})")
    if len(params) != count:
        raise QueryAdapterError(f"Expected {count} parameters, got {len(params)}")

    for i in range(count, 0, -1):
        sql = sql.replace(f"${i}", f":p{i}")
    return sql, {f"p{i}": params[i - 1] for i in range(1, count + 1)}


def translate_functions(sql: str) -> str:
    """Map PostgreSQL time functions to the SQLite expression."""
    return _NOW.sub(SQLITE_NOW, sql)


def split_returning(sql: str) -> tuple[str, bool]:
    """Strip a trailing ``RETURNING *``; report whether one was present."""
    stripped, n = _RETURNING_ALL.subn("", sql)
    return stripped, n > 0


def statement_target(sql: str) -> tuple[str | None, str | None]:
    """Return (kind, table) for INSERT / UPDATE / DELETE statements."""
    for kind, pattern in _STATEMENT_TABLE:
        m = pattern.match(sql)
        if m:
            return kind, m.group(1)
    return None, None


def row_id_param(sql: str, params: list) -> object:
    """Row id targeted by an UPDATE/DELETE.

    Taken from ``WHERE id = $n`` when present, else the last parameter.
    """
    m = _WHERE_ID.search(sql)
    if m:
        return params[int(m.group(1)) - 1]
    return params[-1] if params else None


class QueryAdapter:
    def __init__(self, engine: Engine):
        self.engine = engine

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def query(self, sql: str, params: list | tuple | None = None) -> QueryResult:
        params = list(params or [])
        if self.dialect != "sqlite":
            bound_sql, binds = bind_placeholders(sql, params)
            return self._execute(bound_sql, binds)

        sql = translate_functions(sql)
        if _ON_CONFLICT.search(sql) and split_returning(sql)[1]:
            return self._native_upsert(sql, params)

        sql, returning = split_returning(sql)
        kind, table = statement_target(sql)
        bound_sql, binds = bind_placeholders(sql, params)

        if not returning or kind is None:
            return self._execute(bound_sql, binds)
        return self._emulate_returning(kind, table, sql, bound_sql, binds, params)

    def _execute(self, bound_sql: str, binds: dict) -> QueryResult:
        with self.engine.begin() as conn:
            result = conn.execute(text(bound_sql), binds)
            if result.returns_rows:
                rows = [dict(r) for r in result.mappings().all()]
                return QueryResult(rows=rows, rowcount=len(rows))
            return QueryResult(rows=[], rowcount=result.rowcount)

    def _native_upsert(self, sql: str, params: list) -> QueryResult:
        """Run ``INSERT ... ON CONFLICT ... RETURNING *`` as written.

        lastrowid is not moved by the DO UPDATE branch, so the row must come
        from SQLite's own RETURNING (3.35+).
        """
        if not self.engine.dialect.insert_returning:
            raise QueryAdapterError("ON CONFLICT ... RETURNING * needs SQLite 3.35 or newer")
        bound_sql, binds = bind_placeholders(sql, params)
        return self._execute(bound_sql, binds)

    def _emulate_returning(self, kind, table, sql, bound_sql, binds, params) -> QueryResult:
        select_sql = text(f"SELECT * FROM {table} WHERE id = :row_id")
        with self.engine.begin() as conn:
            if kind == "insert":
                result = conn.execute(text(bound_sql), binds)
                if not result.rowcount or result.lastrowid is None:
                    return QueryResult(rows=[], rowcount=0)
                row_id = result.lastrowid
                rows = conn.execute(select_sql, {"row_id": row_id}).mappings().all()
                return QueryResult(rows=[dict(r) for r in rows], rowcount=result.rowcount)

            row_id = row_id_param(sql, params)
            if kind == "delete":
                before = conn.execute(select_sql, {"row_id": row_id}).mappings().all()
                result = conn.execute(text(bound_sql), binds)
                rows = [dict(r) for r in before] if result.rowcount else []
                return QueryResult(rows=rows, rowcount=result.rowcount)

            result = conn.execute(text(bound_sql), binds)
            if not result.rowcount:
                return QueryResult(rows=[], rowcount=0)
            rows = conn.execute(select_sql, {"row_id": row_id}).mappings().all()
            return QueryResult(rows=[dict(r) for r in rows], rowcount=result.rowcount)

    def ping(self) -> bool:
        """Connectivity probe used at startup."""
        try:
            self.query("SELECT NOW() AS now")
            return True
        except Exception as e:
            logger.error("Database connection error: {}", e)
            return False
