"""
Database executors for GuardedDB.
"""

from typing import Dict, Any

from ..base import Executor
from ..exceptions import ConfigurationError
from .mysql import MySQLExecutor
from .sqlite import SQLiteExecutor

EXECUTORS = {
    "mysql": MySQLExecutor,
    "mariadb": MySQLExecutor,
    "percona": MySQLExecutor,
    "sqlite": SQLiteExecutor,
}


def create_executor(db_conf: Dict[str, Any]) -> Executor:
    """
    Create an executor from the ``db`` section of the configuration.

    Args:
        db_conf: Connection parameters; ``driver`` selects the executor

    Returns:
        A connected executor

    Raises:
        ConfigurationError: If the driver is unknown or parameters are missing
        ConnectionError: If the database cannot be reached
    """
    params = dict(db_conf)
    driver = str(params.pop("driver", "mysql")).lower()

    executor_class = EXECUTORS.get(driver)
    if executor_class is None:
        raise ConfigurationError(
            f"Unsupported database driver: {driver}. "
            f"Supported drivers are: {', '.join(sorted(EXECUTORS))}")

    if executor_class is MySQLExecutor:
        params.setdefault("db_variant", driver)
    else:
        for key in ("host", "port"):
            params.pop(key, None)

    return executor_class(**params)


__all__ = [
    'MySQLExecutor',
    'SQLiteExecutor',
    'create_executor'
]
