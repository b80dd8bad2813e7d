"""
Factory functions for GuardedDB handlers.
"""

from typing import Dict, Any, Optional

from .base import Executor
from .connectors import create_executor
from .handler import QueryHandler


def create_handler(config: Optional[Dict[str, Any]] = None,
                   executor: Optional[Executor] = None,
                   config_path: Optional[str] = None,
                   **overrides) -> QueryHandler:
    """
    Create a query handler.

    Args:
        config: Ready configuration dict; loaded from ``config_path`` and
            ``overrides`` when omitted
        executor: Already connected executor to use instead of opening one
        config_path: JSON config file
        **overrides: Config overrides such as ``debug=True``,
            ``log_file=...`` or ``db={"driver": "sqlite", "database": ...}``

    Returns:
        QueryHandler: A handler owning its connection

    Raises:
        ConfigurationError: If the configuration is invalid
        ConnectionError: If the database connection fails
    """
    return QueryHandler(config=config, executor=executor, config_path=config_path, **overrides)


__all__ = ['create_handler', 'create_executor']
