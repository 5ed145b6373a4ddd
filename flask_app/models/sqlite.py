# flask_app/models/sqlite.py
"""
SQLite engine setup.

pysqlite defers ``BEGIN`` until the first write, so two resolutions could
both read an empty cluster and both insert a primary. Every transaction
here opens with ``BEGIN IMMEDIATE`` instead, which takes the database
write lock up front; a second writer waits ``busy_timeout`` and then fails
with "database is locked", which the identity service retries.
"""

import logging
import sqlite3

from sqlalchemy import event

logger = logging.getLogger(__name__)


def configure_sqlite_engine(engine, *, busy_timeout_ms=5000, enable_foreign_keys=True):
    """Attach connect/begin hooks to a SQLite engine once."""
    if getattr(engine, "_identity_sqlite_configured", False):
        return engine

    def _on_connect(dbapi_connection, connection_record):
        # Hand transaction control to SQLAlchemy's begin hook
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
            cursor.execute("PRAGMA journal_mode=WAL")
            if enable_foreign_keys:
                cursor.execute("PRAGMA foreign_keys=ON")
        except sqlite3.Error as exc:
            logger.warning("Failed to apply SQLite PRAGMAs: %s", exc)
        finally:
            cursor.close()

    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    event.listen(engine, "connect", _on_connect)
    event.listen(engine, "begin", _on_begin)
    engine._identity_sqlite_configured = True  # type: ignore[attr-defined]
    return engine
