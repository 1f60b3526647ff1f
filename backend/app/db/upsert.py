"""Dialect-aware INSERT ... ON CONFLICT helpers."""
from __future__ import annotations

from typing import Any, Callable

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import Session

_INSERT_BY_DIALECT: dict[str, Callable[..., Any]] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(db: Session, table: Any) -> Any:
    """Return an INSERT for ``table`` that supports ``on_conflict_do_*`` on the session's backend."""
    dialect = db.get_bind().dialect.name
    try:
        insert = _INSERT_BY_DIALECT[dialect]
    except KeyError as exc:
        raise ArgumentError(f"Upserts are not supported on the {dialect!r} dialect") from exc
    return insert(table)
