"""
Identifier whitelist for GuardedDB.
"""

from typing import Iterable, Optional

from .exceptions import InvalidIdentifierError


class IdentifierWhitelist:
    """
    Immutable sets of table, column and SQL function names that may be
    interpolated into SQL text.

    Table and column checks are exact and case-sensitive. Function names are
    compared case-insensitively, so ``lower`` and ``LOWER`` are the same.
    """

    def __init__(self, tables: Optional[Iterable[str]] = None,
                 columns: Optional[Iterable[str]] = None,
                 functions: Optional[Iterable[str]] = None):
        self._tables = frozenset(tables or ())
        self._columns = frozenset(columns or ())
        self._functions = frozenset(f.upper() for f in (functions or ()))

    @property
    def tables(self) -> frozenset:
        return self._tables

    @property
    def columns(self) -> frozenset:
        return self._columns

    @property
    def functions(self) -> frozenset:
        return self._functions

    def is_allowed_table(self, name: str) -> bool:
        return isinstance(name, str) and name in self._tables

    def is_allowed_column(self, name: str) -> bool:
        return isinstance(name, str) and name in self._columns

    def is_allowed_function(self, name: str) -> bool:
        return isinstance(name, str) and name.upper() in self._functions

    def check_table(self, name: str) -> str:
        """
        Validate a table name against the whitelist.

        Args:
            name: Table name supplied by the caller

        Returns:
            The same name, if allowed

        Raises:
            InvalidIdentifierError: If the table is not whitelisted
        """
        if not self.is_allowed_table(name):
            raise InvalidIdentifierError(f"Invalid table name: {name!r}")
        return name

    def __repr__(self):
        return (f"IdentifierWhitelist(tables={sorted(self._tables)}, "
                f"columns={sorted(self._columns)}, functions={sorted(self._functions)})")
