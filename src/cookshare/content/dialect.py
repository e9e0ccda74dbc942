"""Dialect-aware SQL helpers — multi-row upsert, foreign keys, constraint errors."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import event, insert
from sqlalchemy.exc import IntegrityError

from .exceptions import ForeignKeyViolationError, UniqueViolationError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping, Sequence

    from sqlalchemy import Engine
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

    from .exceptions import ConstraintViolationError

logger = logging.getLogger(__name__)

SUPPORTED_DIALECTS = ("sqlite", "postgresql")

# SQLSTATE class 23 (integrity constraint violation)
_PG_FOREIGN_KEY = "23503"
_PG_UNIQUE = "23505"

# SQLite extended result codes
_SQLITE_FOREIGN_KEY = 787
_SQLITE_UNIQUE = 2067
_SQLITE_PRIMARY_KEY = 1555


def get_dialect(engine: Engine | AsyncEngine) -> str:
    """Return 'sqlite' or 'postgresql' (other names are returned unchanged)."""
    # AsyncEngine wraps a sync engine
    sync_engine = getattr(engine, "sync_engine", engine)
    name = sync_engine.dialect.name
    if name == "sqlite":
        return "sqlite"
    if name in ("postgresql", "postgres"):
        return "postgresql"
    return name


def _set_sqlite_pragma(dbapi_conn: Any, _connection_record: Any) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def enable_sqlite_foreign_keys(engine: Engine | AsyncEngine) -> None:
    """Turn on ``PRAGMA foreign_keys`` for every new SQLite connection.

    SQLite ignores ``ON DELETE CASCADE`` and foreign key checks unless the
    pragma is set per connection.  No-op for other dialects.
    """
    if get_dialect(engine) != "sqlite":
        return
    sync_engine = getattr(engine, "sync_engine", engine)
    if not event.contains(sync_engine, "connect", _set_sqlite_pragma):
        event.listen(sync_engine, "connect", _set_sqlite_pragma)


def _insert_for(dialect: str, model: type) -> Any:
    if dialect == "sqlite":
        from sqlalchemy.dialects import sqlite as dialect_module
    elif dialect == "postgresql":
        from sqlalchemy.dialects import postgresql as dialect_module
    else:
        raise ValueError(
            f"Unsupported dialect: {dialect!r}. Must be one of {', '.join(SUPPORTED_DIALECTS)}."
        )
    return dialect_module.insert(model)


def dedupe_rows(
    rows: Sequence[Mapping[str, Any]],
    keys: Sequence[str],
) -> list[dict[str, Any]]:
    """Collapse rows that share the same *keys*; the last occurrence wins.

    PostgreSQL refuses an ``ON CONFLICT DO UPDATE`` that touches the same row
    twice in one statement.  First-seen order is kept.
    """
    by_key: dict[tuple[Any, ...], dict[str, Any]] = {}
    for row in rows:
        by_key[tuple(row[k] for k in keys)] = dict(row)
    return list(by_key.values())


async def upsert_rows(
    session: AsyncSession,
    dialect: str,
    model: type,
    rows: Sequence[Mapping[str, Any]],
    conflict_keys: list[str],
    *,
    update_keys: list[str] | None = None,
    update_set: Mapping[str, Any] | Callable[[Any], Mapping[str, Any]] | None = None,
) -> int:
    """Dialect-aware multi-row upsert into *model*'s table. Returns rowcount.

    All rows go into a single ``INSERT ... VALUES (...), (...)`` statement.

    - ``update_set`` — explicit ``SET`` expressions; a callable receives the
      statement so expressions can reference ``stmt.excluded``.
    - ``update_keys`` — columns copied from the incoming row on conflict.
      An empty list means ``ON CONFLICT DO NOTHING``.
    - Neither — every non-key column is copied from the incoming row.

    Foreign key and unique failures surface as ``ConstraintViolationError``
    subclasses.
    """
    if not rows:
        return 0

    values = dedupe_rows(rows, conflict_keys)
    stmt = _insert_for(dialect, model).values(values)

    if update_set is not None:
        set_ = update_set(stmt) if callable(update_set) else dict(update_set)
    else:
        columns = update_keys if update_keys is not None else [
            k for k in values[0] if k not in conflict_keys
        ]
        set_ = {k: stmt.excluded[k] for k in columns}

    if set_:
        stmt = stmt.on_conflict_do_update(index_elements=conflict_keys, set_=set_)
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=conflict_keys)

    with translate_constraint_errors():
        result = await session.execute(stmt)
    return result.rowcount  # type: ignore[return-value]


async def insert_rows(
    session: AsyncSession,
    model: type,
    rows: Sequence[Mapping[str, Any]],
) -> int:
    """Plain multi-row insert; duplicates raise ``UniqueViolationError``."""
    if not rows:
        return 0
    with translate_constraint_errors():
        result = await session.execute(insert(model).values([dict(r) for r in rows]))
    return result.rowcount  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Constraint error translation
# ---------------------------------------------------------------------------


def _error_code(orig: BaseException | None) -> str | int | None:
    """Pull a SQLSTATE or SQLite extended code off a DBAPI error."""
    candidates = [orig]
    if orig is not None and orig.__cause__ is not None:
        # asyncpg errors arrive wrapped by the SQLAlchemy adapter
        candidates.append(orig.__cause__)
    for candidate in candidates:
        if candidate is None:
            continue
        for attr in ("sqlite_errorcode", "pgcode", "sqlstate"):
            code = getattr(candidate, attr, None)
            if code:
                return code
    return None


def constraint_violation(error: IntegrityError) -> ConstraintViolationError | None:
    """Classify an ``IntegrityError`` by driver error code, never by message.

    Returns ``None`` for anything but a foreign key or unique violation.
    """
    orig = error.orig
    code = _error_code(orig)
    name = getattr(orig, "sqlite_errorname", "") or ""

    if code in (_PG_FOREIGN_KEY, _SQLITE_FOREIGN_KEY) or name == "SQLITE_CONSTRAINT_FOREIGNKEY":
        return ForeignKeyViolationError("Referenced row does not exist", original=error)
    if code in (_PG_UNIQUE, _SQLITE_UNIQUE, _SQLITE_PRIMARY_KEY) or name in (
        "SQLITE_CONSTRAINT_UNIQUE",
        "SQLITE_CONSTRAINT_PRIMARYKEY",
    ):
        return UniqueViolationError("Duplicate key", original=error)
    return None


@contextmanager
def translate_constraint_errors() -> Iterator[None]:
    """Re-raise foreign key and unique violations as ``ConstraintViolationError``.

    Other integrity errors (NOT NULL, CHECK) propagate unchanged.
    """
    try:
        yield
    except IntegrityError as exc:
        translated = constraint_violation(exc)
        if translated is None:
            raise
        logger.debug("Translated integrity error: %s", type(translated).__name__)
        raise translated from exc
