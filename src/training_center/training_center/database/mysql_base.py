from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Type

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import StoreConflictError, StoreError, StoreWriteError
from .connection import DatabaseConnection


@contextmanager
def db_cursor(
    conn_factory: DatabaseConnection,
    *,
    dictionary: bool = True,
    error_cls: Type[StoreError] = StoreWriteError,
    connect_error_cls: Optional[Type[StoreError]] = None,
):
    """One connection, one transaction.

    Commits when the block finishes, rolls back on any exception. Connector
    errors are re-raised as ``error_cls`` (``connect_error_cls`` while the
    connection is being opened, defaulting to ``error_cls``); a lost deadlock
    becomes ``StoreConflictError``. Domain errors pass through untouched.
    """

    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        raise (connect_error_cls or error_cls)(f"Không kết nối được CSDL: {exc}") from exc

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        _safe_rollback(conn)
        if getattr(exc, "errno", None) == errorcode.ER_LOCK_DEADLOCK:
            raise StoreConflictError(str(exc)) from exc
        raise error_cls(str(exc)) from exc
    except Exception:
        _safe_rollback(conn)
        raise
    finally:
        conn.close()


def _safe_rollback(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error:
        # Connection already broken; the server discards the open transaction.
        pass


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def in_placeholders(values) -> str:
    return ",".join(["%s"] * len(values))
