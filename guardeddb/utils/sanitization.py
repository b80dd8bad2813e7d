"""
Sanitization utilities for GuardedDB.

Turns caller-supplied identifiers, ORDER BY text and LIMIT text into SQL
fragments that only ever contain whitelisted names and plain integers.
Nothing in here touches the database.
"""

import re
from typing import Union, List, Tuple, Iterable, Optional

from ..exceptions import InvalidClauseError, InvalidIdentifierError
from ..whitelist import IdentifierWhitelist

_DIRECTION_RE = re.compile(r'\s+(ASC|DESC)$', re.IGNORECASE)
_FUNCTION_TERM_RE = re.compile(r'^([A-Za-z0-9_]+)\(([^()]*)\)$')
_LIMIT_RE = re.compile(r'([0-9]+)(?:\s*,\s*([0-9]+))?')
_UNSAFE_COLUMN_CHARS = re.compile(r'[^A-Za-z0-9_]')


def quote_identifier(identifier: str) -> str:
    """Backtick-quote an identifier that has already been validated."""
    return f"`{identifier}`"


def escape_column(column: str) -> str:
    """
    Escape a column name for INSERT / UPDATE statements.

    Every character outside ``[A-Za-z0-9_]`` is stripped before quoting.

    Args:
        column: Column name taken from a data dictionary key

    Returns:
        Backtick-quoted column name

    Raises:
        InvalidIdentifierError: If nothing is left after stripping
    """
    cleaned = _UNSAFE_COLUMN_CHARS.sub('', str(column))
    if not cleaned:
        raise InvalidIdentifierError(f"Invalid column name: {column!r}")
    return quote_identifier(cleaned)


def escape_columns(columns: Iterable[str]) -> List[str]:
    """Escape a sequence of column names, preserving order."""
    return [escape_column(column) for column in columns]


def _split_direction(term: str) -> Tuple[str, str]:
    match = _DIRECTION_RE.search(term)
    if not match:
        return term, ''
    return term[:match.start()].strip(), match.group(1).upper()


def sanitize_order_by(order_by: str, whitelist: IdentifierWhitelist) -> str:
    """
    Sanitize an ORDER BY clause against the whitelist.

    Each comma separated term must be ``column [ASC|DESC]`` or
    ``FUNC(column) [ASC|DESC]``. Function arguments must be a single
    whitelisted column; nested calls and expressions are rejected.

    Args:
        order_by: Raw ORDER BY text, without the ``ORDER BY`` keywords
        whitelist: Identifier whitelist to validate against

    Returns:
        Safe ORDER BY fragment, e.g. ``LOWER(`email`) DESC, `id```

    Raises:
        InvalidClauseError: If any term is malformed or not whitelisted
    """
    safe_parts = []
    for raw_term in order_by.split(','):
        term, direction = _split_direction(raw_term.strip())
        if not term:
            raise InvalidClauseError("Empty term in ORDER BY")

        match = _FUNCTION_TERM_RE.match(term)
        if match:
            func, arg = match.group(1).upper(), match.group(2)
            if not whitelist.is_allowed_function(func):
                raise InvalidClauseError(f"Invalid function in ORDER BY: {func}")
            if not whitelist.is_allowed_column(arg):
                raise InvalidClauseError(f"Invalid column in ORDER BY function: {arg!r}")
            safe = f"{func}({quote_identifier(arg)})"
        else:
            if not whitelist.is_allowed_column(term):
                raise InvalidClauseError(f"Invalid column in ORDER BY: {term!r}")
            safe = quote_identifier(term)

        safe_parts.append(f"{safe} {direction}" if direction else safe)

    return ', '.join(safe_parts)


def validate_limit(limit: str) -> bool:
    """Return True if ``limit`` is ``digits`` or ``digits , digits``."""
    return isinstance(limit, str) and _LIMIT_RE.fullmatch(limit) is not None


def _is_count(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def sanitize_limit(limit: Optional[Union[str, int, List[int], Tuple[int, int]]]) -> str:
    """
    Sanitize a LIMIT clause.

    Args:
        limit: ``"10"``, ``"5, 10"``, a non-negative int, or an
            ``(offset, count)`` pair. Empty or None means no LIMIT.

    Returns:
        The LIMIT value fragment (without the keyword), or ``''`` when absent

    Raises:
        InvalidClauseError: If the limit is in any other form
    """
    if limit is None or limit == '':
        return ''

    if isinstance(limit, str):
        match = _LIMIT_RE.fullmatch(limit)
        if not match:
            raise InvalidClauseError(f"Invalid LIMIT: {limit!r}")
        if match.group(2) is None:
            return match.group(1)
        return f"{match.group(1)}, {match.group(2)}"

    if _is_count(limit):
        return str(limit)

    if isinstance(limit, (list, tuple)) and len(limit) == 2 and all(_is_count(v) for v in limit):
        return f"{limit[0]}, {limit[1]}"

    raise InvalidClauseError(f"Invalid LIMIT: {limit!r}")
