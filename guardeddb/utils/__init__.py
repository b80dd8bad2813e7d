"""
Utility modules for GuardedDB.
"""

from .sanitization import (
    quote_identifier,
    escape_column,
    escape_columns,
    sanitize_order_by,
    sanitize_limit,
    validate_limit
)

from .logging import configure_logger, QueryLogger, LockingFileHandler
from .passwords import hash_password, verify_password

__all__ = [
    'quote_identifier',
    'escape_column',
    'escape_columns',
    'sanitize_order_by',
    'sanitize_limit',
    'validate_limit',
    'configure_logger',
    'QueryLogger',
    'LockingFileHandler',
    'hash_password',
    'verify_password'
]
