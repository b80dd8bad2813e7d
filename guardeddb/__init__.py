"""
GuardedDB: a guarded data-access layer for relational databases.

Only whitelisted table names, escaped column names and sanitized
ORDER BY / LIMIT clauses are ever written into SQL text; every value
travels as a bound parameter.

Supported databases:
- MySQL/MariaDB/Percona
- SQLite
"""

from .factory import create_handler, create_executor
from .base import Executor, PreparedStatement
from .handler import QueryHandler
from .whitelist import IdentifierWhitelist
from .config import load_config
from .exceptions import (
    ErrorKind,
    GuardedDBError,
    InvalidIdentifierError,
    InvalidClauseError,
    MissingArgumentError,
    BindingError,
    ExecutionError,
    PrepareError,
    ConnectionError,
    ConfigurationError
)

__version__ = "1.0.0"

from .connectors.mysql import MySQLExecutor
from .connectors.sqlite import SQLiteExecutor


def connect(**kwargs):
    """
    Create a new query handler.

    Args:
        **kwargs: Passed to ``create_handler``: ``config``, ``executor``,
                  ``config_path`` or individual config overrides

    Returns:
        QueryHandler: A handler with an open connection

    Raises:
        ConfigurationError: If the configuration is invalid
        ConnectionError: If the database connection fails
    """
    return create_handler(**kwargs)
