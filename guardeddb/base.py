"""
Base classes for GuardedDB executors.

An executor owns one database connection and hands out prepared statements.
The query handler only ever talks to these two interfaces.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Any, Optional, Sequence
import logging

from .exceptions import BindingError
from .utils.logging import escape_literal as _escape_literal

logger = logging.getLogger(__name__)


class PreparedStatement(ABC):
    """
    Abstract base class for a prepared statement.

    Lifecycle: ``bind`` (optional) -> ``execute`` -> fetch / inspect -> ``close``.
    """

    def __init__(self, sql: str):
        self.sql = sql
        self.type_tags = ''
        self.values: List[Any] = []

    def bind(self, type_tags: str, values: Sequence[Any]) -> None:
        """
        Attach positional parameters to the statement

        DB-API drivers infer each parameter's wire type from the Python
        value itself, so the executors here pass ``values`` through as they
        are. The tags are checked against the values and kept on the
        statement for auditing; they do not change how a value is sent.

        Args:
            type_tags: One tag per value ('i', 'd' or 's')
            values: Values in placeholder order

        Raises:
            BindingError: If tags and values do not line up
        """
        if len(type_tags) != len(values):
            raise BindingError(
                f"Got {len(type_tags)} type tag(s) for {len(values)} value(s)")
        if any(tag not in 'ids' for tag in type_tags):
            raise BindingError(f"Unknown bind type in '{type_tags}'")

        self.type_tags = type_tags
        self.values = list(values)

    @abstractmethod
    def execute(self) -> None:
        """
        Execute the statement with the bound values

        Raises:
            BindingError: If the database rejects the bound parameters
            ExecutionError: If the statement fails
        """
        pass

    @property
    @abstractmethod
    def affected_rows(self) -> int:
        """Number of rows changed by the last execution"""
        pass

    @property
    @abstractmethod
    def last_insert_id(self) -> Optional[int]:
        """ID generated by the last INSERT, or None if not applicable"""
        pass

    @abstractmethod
    def fetch_one(self) -> Optional[Dict[str, Any]]:
        """
        Fetch a single row from the result set

        Returns:
            A dictionary representing a single row or None
        """
        pass

    @abstractmethod
    def fetch_all(self) -> List[Dict[str, Any]]:
        """
        Fetch all rows from the result set

        Returns:
            A list of dictionaries, each representing a row
        """
        pass

    def close(self) -> None:
        """Release any resources held by the statement"""
        pass


class Executor(ABC):
    """
    Abstract base class for all database executors.

    This defines the prepared-statement boundary every connector implements.
    """

    @abstractmethod
    def __init__(self, **kwargs):
        """Initialize the database connection"""
        self.conn = None
        self.conf = kwargs

    @abstractmethod
    def connect(self) -> None:
        """Establish a connection to the database"""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Close the database connection. Safe to call more than once."""
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the database connection is active"""
        pass

    @abstractmethod
    def prepare(self, sql: str) -> PreparedStatement:
        """
        Prepare a statement

        Args:
            sql: SQL text with ``?`` placeholders

        Returns:
            A prepared statement

        Raises:
            PrepareError: If the statement cannot be prepared
        """
        pass

    def escape_literal(self, value: Any) -> str:
        """
        Render a value as a quoted SQL literal for log output only.

        Never used to build executed SQL.
        """
        return _escape_literal(value)

    def __enter__(self):
        """Context manager entry point"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit point"""
        self.disconnect()
