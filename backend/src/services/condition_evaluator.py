"""
Condition evaluator for automation rule triggers.

A rule's conditions are a flat mapping of context key -> expected value. All
keys must be present in the firing context and strictly equal to the
expected value. Evaluation never raises: malformed input is a non-match, so
one bad rule cannot halt the scheduler loop.
"""

import logging
from collections.abc import Mapping
from numbers import Number
from typing import Any

logger = logging.getLogger(__name__)

_PRIMITIVE_TYPES = (str, bytes, Number, type(None))


def _strict_equals(actual: Any, expected: Any) -> bool:
    """
    Strict equality between a context value and an expected value.

    - booleans only equal booleans (True does not equal 1)
    - numbers compare by value across int/float
    - other primitives must share the same type
    - containers and objects compare by identity, never structurally
    """
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected

    if isinstance(actual, Number) and isinstance(expected, Number):
        return bool(actual == expected)

    if isinstance(actual, _PRIMITIVE_TYPES) and isinstance(expected, _PRIMITIVE_TYPES):
        return type(actual) is type(expected) and actual == expected

    return actual is expected


def matches(conditions: Any, context: Any) -> bool:
    """
    Check whether every condition holds in the context.

    Args:
        conditions: Mapping of key -> expected value (None or empty always matches)
        context: Event/context mapping

    Returns:
        True if all keys are present and strictly equal, False otherwise
    """
    try:
        if not conditions:
            return True
        if not isinstance(conditions, Mapping) or not isinstance(context, Mapping):
            return False

        for key, expected in conditions.items():
            if key not in context:
                return False
            if not _strict_equals(context[key], expected):
                return False
        return True
    except Exception as e:
        logger.warning(f"Condition evaluation failed, treating as no match: {e}")
        return False
