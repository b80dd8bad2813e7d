"""
MySQL/MariaDB/Percona executor for GuardedDB.
"""

import logging
from typing import Dict, List, Any, Optional

from ..base import Executor, PreparedStatement
from ..exceptions import BindingError, ConnectionError, ConfigurationError, ExecutionError, PrepareError

logger = logging.getLogger(__name__)

# Driver messages that mean the parameters did not line up with the placeholders
_BINDING_MESSAGES = (
    "incorrect number of arguments",
    "not all parameters were used",
    "not enough parameters",
)


class MySQLStatement(PreparedStatement):
    """
    Prepared statement backed by a server-side prepared cursor.

    The SQL is sent to the server with ``?`` placeholders; values travel
    separately in the binary protocol.
    """

    def __init__(self, executor: 'MySQLExecutor', sql: str):
        super().__init__(sql)
        self.db_module = executor.db_module
        self.cur = executor.conn.cursor(prepared=True)

    def execute(self) -> None:
        try:
            self.cur.execute(self.sql, tuple(self.values))
        except self.db_module.Error as e:
            message = str(e).lower()
            if any(m in message for m in _BINDING_MESSAGES):
                raise BindingError(f"Parameter binding failed: {e}") from e
            raise ExecutionError(f"Query execution failed: {e}") from e

    @property
    def affected_rows(self) -> int:
        return self.cur.rowcount

    @property
    def last_insert_id(self) -> Optional[int]:
        return self.cur.lastrowid

    def _columns(self) -> List[str]:
        return [desc[0] for desc in (self.cur.description or ())]

    def fetch_one(self) -> Optional[Dict[str, Any]]:
        try:
            row = self.cur.fetchone()
            # the connection refuses new statements while rows are unread
            if row is not None:
                self.cur.fetchall()
        except self.db_module.Error as e:
            raise ExecutionError(f"Failed to fetch row: {e}") from e
        if row is None:
            return None
        return dict(zip(self._columns(), row))

    def fetch_all(self) -> List[Dict[str, Any]]:
        try:
            rows = self.cur.fetchall()
        except self.db_module.Error as e:
            raise ExecutionError(f"Failed to fetch rows: {e}") from e
        columns = self._columns()
        return [dict(zip(columns, row)) for row in rows]

    def close(self) -> None:
        try:
            self.cur.close()
        except self.db_module.Error as e:
            logger.warning(f"Error closing cursor: {e}")


class MySQLExecutor(Executor):
    """
    Executor for MySQL, MariaDB, and Percona databases.
    """

    VARIANTS = ("mysql", "mariadb", "percona")

    def __init__(self, **kwargs):
        """
        Initialize the MySQL executor.

        Args:
            host (str): Database host
            port (int): Database port
            name (str): Database name
            user (str): Username
            password (str): Password
            db_variant (str): 'mysql', 'mariadb', or 'percona'
            charset (str): Character set
            ssl (dict): SSL configuration
            connect_timeout (int): Connection timeout in seconds
            autocommit (bool): Whether to autocommit statements
            **kwargs: Additional connector-specific parameters
        """
        super().__init__(**kwargs)

        self.conf["host"] = kwargs.get("host", "localhost")
        self.conf["port"] = kwargs.get("port", 3306)
        self.conf["charset"] = kwargs.get("charset", "utf8mb4")
        self.conf["db_variant"] = kwargs.get("db_variant", "mysql").lower()
        self.conf["autocommit"] = kwargs.get("autocommit", True)
        self.conf["connect_timeout"] = kwargs.get("connect_timeout", 10)
        self.conf["ssl"] = kwargs.get("ssl", None)

        required_params = ["name", "user", "password"]
        missing_params = [p for p in required_params if p not in kwargs]
        if missing_params:
            raise ConfigurationError(f"Missing required parameters: {', '.join(missing_params)}")

        if self.conf["db_variant"] not in self.VARIANTS:
            raise ConfigurationError(f"Unsupported MySQL variant: {self.conf['db_variant']}")

        self.conn = None
        self._import_db_module()
        self.connect()

    def _import_db_module(self):
        """Import mysql.connector, which speaks to all supported variants."""
        try:
            import mysql.connector
        except ImportError:
            raise ConfigurationError(
                "Failed to import mysql.connector. "
                "Install it with: pip install mysql-connector-python"
            )
        self.db_module = mysql.connector
        logger.debug(f"Using mysql.connector for {self.conf['db_variant']}")

    def connect(self) -> None:
        """Establish a connection to the database."""
        connection_args = {
            'database': self.conf['name'],
            'host': self.conf['host'],
            'port': self.conf['port'],
            'user': self.conf['user'],
            'password': self.conf['password'],
            'charset': self.conf['charset'],
            'connection_timeout': self.conf['connect_timeout'],
            'autocommit': self.conf['autocommit'],
        }
        if self.conf["ssl"]:
            connection_args.update(self.conf["ssl"])

        try:
            self.conn = self.db_module.connect(**connection_args)
        except self.db_module.Error as e:
            logger.error(f"Database connection failed: {e}")
            raise ConnectionError(
                f"Failed to connect to {self.conf['db_variant']} database: {e}") from e

        logger.debug(f"Connected to {self.conf['db_variant']} database: {self.conf['name']}")

    def disconnect(self) -> None:
        """Close the database connection."""
        if self.conn is None:
            return
        try:
            self.conn.close()
        except self.db_module.Error as e:
            logger.warning(f"Error closing connection: {e}")
        self.conn = None
        logger.debug("Database connection closed")

    def is_connected(self) -> bool:
        """Check if the database connection is active."""
        if not self.conn:
            return False
        try:
            return self.conn.is_connected()
        except self.db_module.Error:
            return False

    def prepare(self, sql: str) -> MySQLStatement:
        """Open a prepared cursor for ``sql``."""
        if self.conn is None:
            raise PrepareError("Cannot prepare a statement on a closed connection")
        try:
            return MySQLStatement(self, sql)
        except self.db_module.Error as e:
            raise PrepareError(f"Failed to prepare statement: {e}") from e
