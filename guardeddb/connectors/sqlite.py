"""
SQLite executor for GuardedDB.
"""

import logging
import os
import sqlite3
from typing import Dict, List, Any, Optional

from ..base import Executor, PreparedStatement
from ..exceptions import BindingError, ConnectionError, ConfigurationError, ExecutionError, PrepareError

logger = logging.getLogger(__name__)


class SQLiteStatement(PreparedStatement):
    """
    Prepared statement backed by a sqlite3 cursor.

    sqlite3 compiles the SQL on first execution, so preparation errors
    surface from ``execute``.
    """

    def __init__(self, conn: sqlite3.Connection, sql: str):
        super().__init__(sql)
        self.cur = conn.cursor()

    def execute(self) -> None:
        try:
            self.cur.execute(self.sql, self.values)
        except (sqlite3.ProgrammingError, sqlite3.InterfaceError) as e:
            if "binding" in str(e).lower():
                raise BindingError(f"Parameter binding failed: {e}") from e
            raise ExecutionError(f"Query execution failed: {e}") from e
        except (sqlite3.Error, sqlite3.Warning) as e:
            raise ExecutionError(f"Query execution failed: {e}") from e

    @property
    def affected_rows(self) -> int:
        return self.cur.rowcount

    @property
    def last_insert_id(self) -> Optional[int]:
        return self.cur.lastrowid

    def fetch_one(self) -> Optional[Dict[str, Any]]:
        try:
            row = self.cur.fetchone()
        except sqlite3.Error as e:
            raise ExecutionError(f"Failed to fetch row: {e}") from e
        return dict(row) if row is not None else None

    def fetch_all(self) -> List[Dict[str, Any]]:
        try:
            rows = self.cur.fetchall()
        except sqlite3.Error as e:
            raise ExecutionError(f"Failed to fetch rows: {e}") from e
        return [dict(row) for row in rows]

    def close(self) -> None:
        try:
            self.cur.close()
        except sqlite3.Error as e:
            logger.warning(f"Error closing cursor: {e}")


class SQLiteExecutor(Executor):
    """
    Executor for SQLite databases.
    """

    def __init__(self, **kwargs):
        """
        Initialize the SQLite executor.

        Args:
            database (str): Path to the SQLite database file, or ':memory:'
            timeout (float): Timeout for acquiring a lock
            check_same_thread (bool): Restrict the connection to its creating thread
            uri (bool): Treat the database parameter as a URI
            **kwargs: Additional connector-specific parameters
        """
        super().__init__(**kwargs)

        if 'database' not in kwargs:
            raise ConfigurationError("Required parameter 'database' is missing")

        self.conf['database'] = kwargs['database']
        self.conf['timeout'] = kwargs.get('timeout', 5.0)
        self.conf['check_same_thread'] = kwargs.get('check_same_thread', True)
        self.conf['uri'] = kwargs.get('uri', False)

        self.conn = None
        self.connect()

    def connect(self) -> None:
        """Establish a connection to the database."""
        try:
            db_dir = os.path.dirname(self.conf['database'])
            if db_dir and not self.conf['uri'] and not os.path.exists(db_dir):
                os.makedirs(db_dir)

            # isolation_level=None keeps the connection in autocommit mode
            self.conn = sqlite3.connect(
                database=self.conf['database'],
                isolation_level=None,
                timeout=self.conf['timeout'],
                check_same_thread=self.conf['check_same_thread'],
                uri=self.conf['uri']
            )
            self.conn.execute("PRAGMA foreign_keys = ON")
            self.conn.row_factory = sqlite3.Row

            logger.debug(f"Connected to SQLite database: {self.conf['database']}")

        except (sqlite3.Error, OSError) as e:
            logger.error(f"SQLite connection failed: {e}")
            raise ConnectionError(f"Failed to connect to SQLite database: {e}") from e

    def disconnect(self) -> None:
        """Close the database connection."""
        if self.conn is None:
            return
        try:
            self.conn.close()
        except sqlite3.Error as e:
            logger.warning(f"Error closing connection: {e}")
        self.conn = None
        logger.debug("SQLite connection closed")

    def is_connected(self) -> bool:
        """Check if the database connection is active."""
        if not self.conn:
            return False

        try:
            self.conn.execute("SELECT 1").fetchone()
            return True
        except sqlite3.Error:
            return False

    def prepare(self, sql: str) -> SQLiteStatement:
        """Prepare a statement on the open connection."""
        if self.conn is None:
            raise PrepareError("Cannot prepare a statement on a closed connection")
        return SQLiteStatement(self.conn, sql)

    def escape_literal(self, value: Any) -> str:
        """SQLite escapes quotes by doubling them."""
        if value is None:
            return 'NULL'
        return "'" + str(value).replace("'", "''") + "'"
