"""Schema and demo data loading for local setups and tests against a real MySQL."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator, Optional

import mysql.connector

from ..core.constants import DEFAULT_DB_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "training_center_db"

_CREATE_DB_RE = re.compile(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$")
_USE_DB_RE = re.compile(r"(?im)^\s*USE\b.*?;\s*$")


def _connect(db_config: dict, *, with_database: bool = True):
    kwargs = {
        "host": str(db_config.get("host", "localhost")),
        "port": int(db_config.get("port", 3306)),
        "user": str(db_config.get("user", "root")),
        "password": str(db_config.get("password", "")),
        "connection_timeout": int(db_config.get("timeout", DEFAULT_DB_TIMEOUT_SECONDS)),
        "use_pure": True,
    }
    if with_database:
        kwargs["database"] = _database_name(db_config)
    return mysql.connector.connect(**kwargs)


def _database_name(db_config: dict) -> str:
    return str(db_config.get("database") or DEFAULT_DATABASE)


def split_sql_statements(sql: str) -> Iterator[str]:
    """Yield statements of a .sql file one by one.

    Semicolons inside quoted literals do not end a statement; ``--`` comments
    are dropped up to the end of the line.
    """

    start = 0
    quote: Optional[str] = None
    chunks: list[str] = []
    i = 0
    n = len(sql)

    while i < n:
        ch = sql[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif sql.startswith("--", i):
            chunks.append(sql[start:i])
            newline = sql.find("\n", i)
            i = n if newline < 0 else newline
            start = i
            continue
        elif ch == ";":
            chunks.append(sql[start:i])
            stmt = "".join(chunks).strip()
            chunks = []
            start = i + 1
            if stmt:
                yield stmt
        i += 1

    chunks.append(sql[start:])
    tail = "".join(chunks).strip()
    if tail:
        yield tail


def ensure_database_exists(db_config: dict) -> None:
    name = _database_name(db_config)
    conn = _connect(db_config, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(f"CREATE DATABASE IF NOT EXISTS `{name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
        conn.commit()
    finally:
        conn.close()


def apply_sql_file(db_config: dict, path: str | Path) -> int:
    """Run every statement of ``path`` in one connection; returns the statement count."""

    path = Path(path)
    # The target database comes from config, not from the file.
    sql = _USE_DB_RE.sub("", _CREATE_DB_RE.sub("", path.read_text(encoding="utf-8")))

    count = 0
    conn = _connect(db_config)
    try:
        cur = conn.cursor()
        for stmt in split_sql_statements(sql):
            cur.execute(stmt)
            count += 1
        conn.commit()
    except mysql.connector.Error:
        conn.rollback()
        raise
    finally:
        conn.close()

    logger.info("Applied %s statement(s) from %s", count, path.name)
    return count


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(db_config)
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()


def prepare_database(db_config: dict, *, schema_path: str | Path, seed_path: str | Path | None = None) -> list[str]:
    ensure_database_exists(db_config)
    apply_sql_file(db_config, schema_path)
    if seed_path is not None:
        apply_sql_file(db_config, seed_path)
    return list_tables(db_config)
