# Overview: Database concurrency helpers: retries, keyed upserts, and uniqueness-violation mapping.

from __future__ import annotations

import time

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). IntegrityError is never retried: a
    uniqueness violation is a real answer, not a transient failure.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def _dialect_insert(table):
    name = db.engine.dialect.name
    if name == "postgresql":
        return postgresql.insert(table)
    if name == "sqlite":
        return sqlite.insert(table)
    raise RuntimeError(f"Upsert not supported for dialect {name!r}")


def upsert(model, *, values: dict, conflict_columns: list[str], update_columns: list[str] | None = None):
    """
    INSERT ... ON CONFLICT (conflict_columns) DO UPDATE, keyed by a natural key.

    Only `update_columns` (default: every non-key column in `values`) are
    overwritten on conflict, so a partial payload never nulls out columns
    written by an earlier checkpoint. version_id and updated_at are bumped
    when the table has them.

    Returns the fresh ORM instance. Does not commit.
    """
    table = model.__table__
    stmt = _dialect_insert(table).values(**values)

    columns = update_columns if update_columns is not None else [k for k in values if k not in conflict_columns]
    set_ = {name: stmt.excluded[name] for name in columns}
    if "version_id" in table.c:
        set_["version_id"] = table.c.version_id + 1
    if "updated_at" in table.c:
        set_["updated_at"] = db.func.now()

    if set_:
        stmt = stmt.on_conflict_do_update(index_elements=conflict_columns, set_=set_)
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=conflict_columns)
    db.session.execute(stmt)

    key = {name: values[name] for name in conflict_columns}
    return (
        db.session.query(model)
        .filter_by(**key)
        .populate_existing()
        .one()
    )


def is_unique_violation(exc: IntegrityError, *, constraint: str, columns: tuple[str, ...] = ()) -> bool:
    """
    True if `exc` was raised by the named unique constraint/index.

    PostgreSQL names the constraint; SQLite only lists the columns
    ("UNIQUE constraint failed: shifts.profile_id").
    """
    message = str(getattr(exc, "orig", exc))
    if constraint in message:
        return True
    if "UNIQUE constraint failed" in message and columns:
        failed = message.split("UNIQUE constraint failed:", 1)[1]
        failed_cols = {part.strip().split(".")[-1] for part in failed.split(",")}
        return failed_cols == set(columns)
    return False
