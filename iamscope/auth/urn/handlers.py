"""
Built-in URN path handlers.

Handlers receive the regex match and the fragment being built, and may
add any constraint to it. Registered by name so JSON mapping files can
reference them.
"""

import re

import structlog

from ..conditions.builtin import to_datetime
from ..predicates import MATCH_NONE, Range
from ..registry import AuthRegistry
from .parser import FilterFragment

logger = structlog.get_logger()


@AuthRegistry.path_handler("date_range")
def date_range_handler(match: re.Match[str], fragment: FilterFragment, field: str = "createdAt") -> None:
    """``date/after-<ISO>`` -> field > date, ``date/before-<ISO>`` -> field < date."""
    direction, raw = match.group(1), match.group(2)
    moment = to_datetime(raw)
    if moment is None:
        logger.warning("urn_date_unparseable", value=raw)
        fragment.set(field, MATCH_NONE)
        return
    if direction == "after":
        fragment.set(field, Range(field, gt=moment))
    else:
        fragment.set(field, Range(field, lt=moment))


@AuthRegistry.path_handler("tag")
def tag_handler(match: re.Match[str], fragment: FilterFragment, field: str = "tags") -> None:
    """``tag/<name>`` -> name in tags (accumulates across handlers)."""
    fragment.add_to_set(field, match.group(1))
