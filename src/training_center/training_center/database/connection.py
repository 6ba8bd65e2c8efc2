from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import mysql.connector

from ..core.constants import DEFAULT_DB_TIMEOUT_SECONDS


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    timeout: int = DEFAULT_DB_TIMEOUT_SECONDS


class DatabaseConnection:
    """Singleton-like DB connection factory.

    Note: We create short-lived connections per unit of work; one connection
    equals one transaction (see ``mysql_base.db_cursor``).
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig):
        self._config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None:
            cls._instance = DatabaseConnection(config)
        return cls._instance

    def connect(self):
        conn = mysql.connector.connect(
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
            connection_timeout=int(self._config.timeout),
            autocommit=False,
        )
        # connection_timeout doubles as the socket timeout; also bound row-lock waits.
        cur = conn.cursor()
        try:
            cur.execute("SET SESSION innodb_lock_wait_timeout = %s", (int(self._config.timeout),))
        finally:
            cur.close()
        return conn
