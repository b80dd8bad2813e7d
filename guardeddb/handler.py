"""
Guarded query handler for GuardedDB.

Every public operation runs the same pipeline: validate the identifiers,
build the SQL text, bind the values and execute, then report. Any failure
along the way is logged in full (masked) and turned into a generic failure
envelope, so callers never see database error text or SQL fragments.
"""

import logging
from contextlib import contextmanager
from typing import Dict, List, Any, Optional, Sequence, Union, Iterator, TextIO

from .base import Executor, PreparedStatement
from .binding import bind_params
from .config import load_config
from .connectors import create_executor
from .exceptions import ConnectionError, ErrorKind, GuardedDBError, InvalidIdentifierError, MissingArgumentError
from .utils.logging import QueryLogger, sensitive_values
from .utils.passwords import hash_password, verify_password
from .utils.sanitization import escape_column, quote_identifier, sanitize_limit, sanitize_order_by
from .whitelist import IdentifierWhitelist

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Internal server error"
RESULT_KEYWORDS = ("SELECT", "SHOW")

Params = Optional[Sequence[Any]]


class QueryHandler:
    """
    Whitelisted CRUD access over a single database connection.

    Each operation returns a result envelope::

        {"status": 1, "data": ..., "affected_rows": ..., "insert_id": ...}
        {"status": 0, "error": "Internal server error"}

    Table names, insert/update column names and ORDER BY terms are checked
    or escaped here. ``where`` and ``columns`` text is trusted SQL written
    by the application; user input must reach it through ``?`` placeholders.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 executor: Optional[Executor] = None,
                 echo_stream: Optional[TextIO] = None,
                 config_path: Optional[str] = None,
                 **overrides):
        """
        Initialize the handler and open its connection.

        Args:
            config: Ready configuration dict (see ``load_config``). When
                omitted it is loaded from ``config_path`` and ``overrides``.
            executor: Already connected executor. When omitted one is
                created from ``config["db"]``.
            echo_stream: Where print-mode entries go (stdout by default)
            config_path: JSON config file to load
            **overrides: Config overrides such as ``debug`` or ``log_file``

        Raises:
            ConfigurationError: If the configuration is invalid
            ConnectionError: If the database connection fails
        """
        if config is None:
            config = load_config(config_path, **overrides)
        self.conf = config

        self.whitelist = IdentifierWhitelist(
            tables=config.get("allowed_tables"),
            columns=config.get("allowed_columns"),
            functions=config.get("allowed_functions"),
        )
        self.strict_columns = bool(config.get("strict_columns", False))
        self.query_log = QueryLogger(config["log_file"], config.get("debug", False), echo_stream)

        self._last_query = ""
        self._last_error_kind: Optional[ErrorKind] = None
        self._closed = False

        if executor is None:
            try:
                executor = create_executor(config.get("db", {}))
            except ConnectionError as e:
                self.query_log.write("ERROR", f"DB connection failed: {e}", force=True)
                self.query_log.close()
                raise ConnectionError("Database connection failed") from e

        self.executor = executor
        self.query_log.escape = executor.escape_literal

    # ------------------------------------------------------------------
    # Pipeline helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _statement(self, sql: str, params: Params) -> Iterator[PreparedStatement]:
        """Prepare, bind and execute ``sql``; close the statement afterwards."""
        self._last_query = sql
        statement = self.executor.prepare(sql)
        try:
            bind_params(statement, list(params or ()))
            statement.execute()
            yield statement
        finally:
            statement.close()

    def _success(self, **fields) -> Dict[str, Any]:
        self._last_error_kind = None
        return {"status": 1, **fields}

    def _failure(self, context: str, sql: str, error: Exception, echo: bool,
                 secrets: Sequence[str] = ()) -> Dict[str, Any]:
        kind = error.kind if isinstance(error, GuardedDBError) else ErrorKind.EXECUTION_FAILURE
        self._last_error_kind = kind
        self.query_log.log_failure(context, sql, f"[{kind.value}] {error}", echo=echo, secrets=secrets)
        logger.warning(f"{context} failed: {kind.value}")
        return {"status": 0, "error": GENERIC_ERROR}

    def _check_data(self, data: Dict[str, Any], operation: str) -> List[str]:
        if not data:
            raise MissingArgumentError(f"Data required for {operation}")
        if self.strict_columns:
            for column in data:
                if not self.whitelist.is_allowed_column(column):
                    raise InvalidIdentifierError(f"Invalid column name: {column!r}")
        return [escape_column(column) for column in data]

    @staticmethod
    def _projection(columns: Union[str, Sequence[str]]) -> str:
        if isinstance(columns, str):
            return columns.strip() or '*'
        return ', '.join(columns) or '*'

    # ------------------------------------------------------------------
    # CRUD operations
    # ------------------------------------------------------------------

    def insert(self, table: str, data: Dict[str, Any], echo: bool = False) -> Dict[str, Any]:
        """
        Insert a row into a table.

        Args:
            table: Whitelisted table name
            data: Column -> value mapping; keys are escaped to ``[A-Za-z0-9_]``
            echo: Print the log entry for this call

        Returns:
            ``{"status": 1, "insert_id": ..., "affected_rows": ...}`` on success
        """
        sql = ''
        secrets: List[str] = []
        try:
            self.whitelist.check_table(table)
            columns = self._check_data(data, "insert")

            placeholders = ', '.join(['?'] * len(columns))
            sql = f"INSERT INTO {quote_identifier(table)} ({', '.join(columns)}) VALUES ({placeholders})"
            values = list(data.values())
            # masking goes by the column the value is bound to
            secrets = sensitive_values(values, columns)

            with self._statement(sql, values) as stmt:
                insert_id, affected_rows = stmt.last_insert_id, stmt.affected_rows

            self.query_log.log_attempt(sql, values, 'INSERT', names=columns, echo=echo)
            return self._success(insert_id=insert_id, affected_rows=affected_rows)
        except Exception as e:
            return self._failure('Insert', sql, e, echo, secrets)

    def update(self, table: str, data: Dict[str, Any], where: str,
               where_params: Params = None, echo: bool = False) -> Dict[str, Any]:
        """
        Update rows matching a WHERE clause.

        Args:
            table: Whitelisted table name
            data: Column -> new value mapping
            where: Trusted WHERE text using ``?`` for values; required
            where_params: Values for the WHERE placeholders
            echo: Print the log entry for this call

        Returns:
            ``{"status": 1, "affected_rows": ...}`` on success
        """
        sql = ''
        secrets: List[str] = []
        try:
            self.whitelist.check_table(table)
            if not where:
                raise MissingArgumentError("WHERE required for update")
            columns = self._check_data(data, "update")

            assignments = ', '.join(f"{column} = ?" for column in columns)
            sql = f"UPDATE {quote_identifier(table)} SET {assignments} WHERE {where}"
            where_values = list(where_params or ())
            values = list(data.values()) + where_values
            names = columns + [None] * len(where_values)
            secrets = sensitive_values(values, names)

            with self._statement(sql, values) as stmt:
                affected_rows = stmt.affected_rows

            self.query_log.log_attempt(sql, values, 'UPDATE', names=names, echo=echo)
            return self._success(affected_rows=affected_rows)
        except Exception as e:
            return self._failure('Update', sql, e, echo, secrets)

    def select_one(self, table: str, columns: Union[str, Sequence[str]] = '*',
                   where: str = '', params: Params = None, echo: bool = False) -> Dict[str, Any]:
        """
        Fetch the first matching row.

        Returns:
            ``{"status": 1, "data": row or None}`` on success
        """
        sql = ''
        secrets: List[str] = []
        try:
            secrets = sensitive_values(list(params or ()))
            self.whitelist.check_table(table)

            sql = f"SELECT {self._projection(columns)} FROM {quote_identifier(table)}"
            if where:
                sql += f" WHERE {where}"
            sql += " LIMIT 1"

            with self._statement(sql, params) as stmt:
                row = stmt.fetch_one()

            self.query_log.log_attempt(sql, list(params or ()), 'SELECT ONE', echo=echo)
            return self._success(data=row or None)
        except Exception as e:
            return self._failure('SelectOne', sql, e, echo, secrets)

    def select_all(self, table: str, columns: Union[str, Sequence[str]] = '*',
                   where: str = '', params: Params = None, order_by: str = '',
                   limit: Union[str, int, Sequence[int], None] = '',
                   echo: bool = False) -> Dict[str, Any]:
        """
        Fetch all matching rows.

        ``order_by`` may only name whitelisted columns, optionally wrapped in
        one whitelisted function, each with an optional ASC/DESC. ``limit``
        must be ``"count"`` or ``"offset, count"``. Anything else fails the
        whole query.

        Returns:
            ``{"status": 1, "data": [row, ...]}`` on success
        """
        sql = ''
        secrets: List[str] = []
        try:
            secrets = sensitive_values(list(params or ()))
            self.whitelist.check_table(table)
            safe_order = sanitize_order_by(order_by, self.whitelist) if order_by else ''
            safe_limit = sanitize_limit(limit)

            sql = f"SELECT {self._projection(columns)} FROM {quote_identifier(table)}"
            if where:
                sql += f" WHERE {where}"
            if safe_order:
                sql += f" ORDER BY {safe_order}"
            if safe_limit:
                sql += f" LIMIT {safe_limit}"

            with self._statement(sql, params) as stmt:
                rows = stmt.fetch_all()

            self.query_log.log_attempt(sql, list(params or ()), 'SELECT ALL', echo=echo)
            return self._success(data=rows)
        except Exception as e:
            return self._failure('SelectAll', sql, e, echo, secrets)

    def delete(self, table: str, where: str, params: Params = None,
               echo: bool = False) -> Dict[str, Any]:
        """
        Delete rows matching a WHERE clause. An empty ``where`` is refused.

        Returns:
            ``{"status": 1, "affected_rows": ...}`` on success
        """
        sql = ''
        secrets: List[str] = []
        try:
            secrets = sensitive_values(list(params or ()))
            self.whitelist.check_table(table)
            if not where:
                raise MissingArgumentError("WHERE required for delete")

            sql = f"DELETE FROM {quote_identifier(table)} WHERE {where}"

            with self._statement(sql, params) as stmt:
                affected_rows = stmt.affected_rows

            self.query_log.log_attempt(sql, list(params or ()), 'DELETE', echo=echo)
            return self._success(affected_rows=affected_rows)
        except Exception as e:
            return self._failure('Delete', sql, e, echo, secrets)

    def custom_query(self, sql: str, params: Params = None, echo: bool = False) -> Dict[str, Any]:
        """
        Run caller-written SQL (JOINs, GROUP BY, ...) with bound parameters.

        The SQL text is used as given; only values passed in ``params`` are
        safe from injection.

        Returns:
            ``{"status": 1, "data": rows}`` for SELECT/SHOW, otherwise
            ``{"status": 1, "data": {"affected_rows": ...}}``
        """
        secrets: List[str] = []
        try:
            secrets = sensitive_values(list(params or ()))
            words = sql.split(None, 1)
            keyword = words[0].upper() if words else ''

            with self._statement(sql, params) as stmt:
                if keyword in RESULT_KEYWORDS:
                    data = stmt.fetch_all()
                else:
                    data = {"affected_rows": stmt.affected_rows}

            self.query_log.log_attempt(sql, list(params or ()), 'CUSTOM QUERY', echo=echo)
            return self._success(data=data)
        except Exception as e:
            return self._failure('CustomQuery', sql if isinstance(sql, str) else '', e, echo, secrets)

    # ------------------------------------------------------------------
    # Accessors, password helpers and teardown
    # ------------------------------------------------------------------

    def last_query(self) -> str:
        """SQL text of the last statement sent to the executor."""
        return self._last_query

    def last_error_kind(self) -> Optional[ErrorKind]:
        """Kind of failure of the last operation, or None if it succeeded."""
        return self._last_error_kind

    @staticmethod
    def hash_password(plain: str) -> str:
        return hash_password(plain)

    @staticmethod
    def verify_password(plain: str, hashed: str) -> bool:
        return verify_password(plain, hashed)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Close the connection and the query log. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self.executor.disconnect()
        finally:
            self.query_log.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
