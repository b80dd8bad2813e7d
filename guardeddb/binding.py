"""
Parameter binding for GuardedDB prepared statements.
"""

import logging
from enum import Enum
from typing import Any, List, NamedTuple, Sequence, TYPE_CHECKING

from .exceptions import BindingError

if TYPE_CHECKING:
    from .base import PreparedStatement

logger = logging.getLogger(__name__)


class BindType(Enum):
    """Bind type tags understood by the executors."""
    INT = 'i'
    FLOAT = 'd'
    TEXT = 's'


class BoundValue(NamedTuple):
    """A scalar value together with the bind type it is sent as."""
    tag: BindType
    value: Any

    @classmethod
    def of(cls, value: Any) -> 'BoundValue':
        """
        Tag a caller-supplied value.

        Integers get INT and floats get FLOAT. Everything else, booleans and
        None included, is sent as TEXT. The value itself is never converted.
        """
        if isinstance(value, bool):
            return cls(BindType.TEXT, value)
        if isinstance(value, int):
            return cls(BindType.INT, value)
        if isinstance(value, float):
            return cls(BindType.FLOAT, value)
        return cls(BindType.TEXT, value)


def tag_values(values: Sequence[Any]) -> List[BoundValue]:
    """Tag each value in positional order."""
    return [BoundValue.of(value) for value in values]


def type_tags(bound: Sequence[BoundValue]) -> str:
    """Build the positional type-tag string, e.g. ``'ssid'``."""
    return ''.join(b.tag.value for b in bound)


def bind_params(statement: 'PreparedStatement', values: Sequence[Any]) -> None:
    """
    Attach values to a prepared statement.

    An empty sequence is a no-op, so statements without placeholders are
    never forced through a bind call.

    Args:
        statement: Prepared statement returned by an executor
        values: Values in placeholder order

    Raises:
        BindingError: If the statement rejects the parameters
    """
    if not values:
        return

    bound = tag_values(values)
    tags = type_tags(bound)
    try:
        statement.bind(tags, [b.value for b in bound])
    except BindingError:
        raise
    except Exception as e:
        raise BindingError(f"Parameter binding failed: {e}") from e

    logger.debug(f"Bound {len(bound)} parameter(s) with types '{tags}'")
