# edu_portal/database.py
"""Thin data-access layer over the configured SQLAlchemy engine.

Routes write plain SQL with ``?`` placeholders and call :func:`Database.run`,
:func:`Database.get` or :func:`Database.all`. The placeholders are rewritten
into whatever paramstyle the active DB-API driver expects (``qmark`` for
sqlite3, ``pyformat`` for psycopg2), so the same statements run against the
embedded SQLite file and a hosted PostgreSQL server.
"""

import logging
import sqlite3
from collections import namedtuple
from datetime import date, datetime

from sqlalchemy import event
from sqlalchemy.engine import Engine

from edu_portal.extensions import db

logger = logging.getLogger(__name__)

RunResult = namedtuple("RunResult", ["inserted_id", "rows_affected"])


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _marker(paramstyle, index):
    if paramstyle in ("format", "pyformat"):
        return "%s"
    if paramstyle == "numeric":
        return f":{index}"
    if paramstyle == "named":
        return f":p{index}"
    raise ValueError(f"Unsupported paramstyle: {paramstyle}")


def adapt_query(sql, params, paramstyle):
    """Rewrite ``?`` placeholders for ``paramstyle``.

    Returns the adapted statement and parameters (a tuple, or a dict for the
    ``named`` style). Question marks inside single-quoted literals are kept.
    """
    params = tuple(params or ())
    if paramstyle == "qmark":
        return sql, params
    if not params:
        # Without parameters the driver does no interpolation, so nothing to escape
        return sql, params

    escape_percent = paramstyle in ("format", "pyformat")
    pieces = []
    count = 0
    in_literal = False
    for char in sql:
        if char == "'":
            in_literal = not in_literal
            pieces.append(char)
        elif char == "?" and not in_literal:
            count += 1
            pieces.append(_marker(paramstyle, count))
        elif char == "%" and escape_percent:
            pieces.append("%%")
        else:
            pieces.append(char)

    if count != len(params):
        raise ValueError(f"Query expects {count} parameters, got {len(params)}")

    adapted = "".join(pieces)
    if paramstyle == "named":
        return adapted, {f"p{i}": value for i, value in enumerate(params, start=1)}
    return adapted, params


def _normalize_value(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _row_to_dict(row):
    return {key: _normalize_value(value) for key, value in row.items()}


class Database:
    """``run``/``get``/``all`` over the Flask-SQLAlchemy engine."""

    @property
    def engine(self):
        return db.engine

    @property
    def is_postgres(self):
        return self.engine.dialect.name == "postgresql"

    def _prepare(self, sql, params):
        return adapt_query(sql, params, self.engine.dialect.paramstyle)

    def run(self, sql, params=()):
        """Execute a write statement and commit it."""
        is_insert = sql.lstrip().upper().startswith("INSERT")
        if is_insert and self.is_postgres and "RETURNING" not in sql.upper():
            sql = f"{sql.rstrip().rstrip(';')} RETURNING id"

        statement, bound = self._prepare(sql, params)
        logger.debug("run: %s %r", statement, bound)
        with self.engine.begin() as conn:
            result = conn.exec_driver_sql(statement, bound)
            rows_affected = result.rowcount
            inserted_id = None
            if is_insert:
                if result.returns_rows:
                    inserted_id = result.scalar()
                else:
                    inserted_id = result.lastrowid
            return RunResult(inserted_id=inserted_id, rows_affected=rows_affected)

    def get(self, sql, params=()):
        """Return the first row as a dict, or None."""
        statement, bound = self._prepare(sql, params)
        logger.debug("get: %s %r", statement, bound)
        with self.engine.connect() as conn:
            row = conn.exec_driver_sql(statement, bound).mappings().first()
            return _row_to_dict(row) if row is not None else None

    def all(self, sql, params=()):
        """Return every row as a list of dicts."""
        statement, bound = self._prepare(sql, params)
        logger.debug("all: %s %r", statement, bound)
        with self.engine.connect() as conn:
            return [_row_to_dict(row) for row in conn.exec_driver_sql(statement, bound).mappings().all()]

    def list_tables(self):
        if self.is_postgres:
            rows = self.all("SELECT tablename AS name FROM pg_tables WHERE schemaname = 'public' ORDER BY tablename")
        else:
            rows = self.all("SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name")
        return [row["name"] for row in rows]


database = Database()
