"""
Exceptions for GuardedDB.

Every exception carries an ``ErrorKind`` so the query handler can record
what went wrong without leaking the message to callers.
"""

from enum import Enum


class ErrorKind(Enum):
    """Categories of failure a query operation can end in."""
    INVALID_IDENTIFIER = "invalid_identifier"
    INVALID_CLAUSE = "invalid_clause"
    MISSING_ARGUMENT = "missing_argument"
    BINDING_FAILURE = "binding_failure"
    EXECUTION_FAILURE = "execution_failure"
    CONNECTION_FAILURE = "connection_failure"
    CONFIGURATION = "configuration"


class GuardedDBError(Exception):
    """Base exception for all GuardedDB errors."""
    kind = ErrorKind.EXECUTION_FAILURE


class InvalidIdentifierError(GuardedDBError):
    """Error raised when a table, column or function name is not whitelisted."""
    kind = ErrorKind.INVALID_IDENTIFIER


class InvalidClauseError(GuardedDBError):
    """Error raised when an ORDER BY or LIMIT clause is malformed or not allowed."""
    kind = ErrorKind.INVALID_CLAUSE


class MissingArgumentError(GuardedDBError):
    """Error raised when required data or a WHERE clause is empty."""
    kind = ErrorKind.MISSING_ARGUMENT


class BindingError(GuardedDBError):
    """Error raised when parameters cannot be attached to a prepared statement."""
    kind = ErrorKind.BINDING_FAILURE


class ExecutionError(GuardedDBError):
    """Error raised when a statement fails to execute."""
    kind = ErrorKind.EXECUTION_FAILURE


class PrepareError(ExecutionError):
    """Error raised when the database refuses to prepare a statement."""
    pass


class ConnectionError(GuardedDBError):
    """Error raised when a database connection cannot be established."""
    kind = ErrorKind.CONNECTION_FAILURE


class ConfigurationError(GuardedDBError):
    """Error raised when there is an issue with the handler configuration."""
    kind = ErrorKind.CONFIGURATION
