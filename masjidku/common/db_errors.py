"""Classify IntegrityError by driver error code (Postgres SQLSTATE, SQLite extended result code)."""

from typing import Optional

from sqlalchemy.exc import IntegrityError

PG_UNIQUE_VIOLATION = "23505"
PG_FOREIGN_KEY_VIOLATION = "23503"

SQLITE_CONSTRAINT_FOREIGNKEY = 787
SQLITE_CONSTRAINT_PRIMARYKEY = 1555
SQLITE_CONSTRAINT_UNIQUE = 2067


def _sqlstate(exc: IntegrityError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    # asyncpg errors are wrapped by SQLAlchemy's adapter; the driver error is the __cause__
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def _sqlite_code(exc: IntegrityError) -> Optional[int]:
    return getattr(getattr(exc, "orig", None), "sqlite_errorcode", None)


def is_unique_violation(exc: IntegrityError) -> bool:
    if _sqlstate(exc) == PG_UNIQUE_VIOLATION:
        return True
    return _sqlite_code(exc) in (SQLITE_CONSTRAINT_UNIQUE, SQLITE_CONSTRAINT_PRIMARYKEY)


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    if _sqlstate(exc) == PG_FOREIGN_KEY_VIOLATION:
        return True
    return _sqlite_code(exc) == SQLITE_CONSTRAINT_FOREIGNKEY
