"""
In-memory filter backend.

Evaluates predicates against mapping records, for tests, caches and
small collections:

    backend = MemoryFilterBackend()
    visible = backend.filter(scope, chats)

Field semantics follow document stores: a dotted field walks nested
objects, and a scalar test against a list field matches if any element
matches.
"""

import re
from typing import Any, Callable, Iterable, Mapping

from ..context import resolve
from ..interfaces import DataScope, FilterBackend
from ..predicates import And, Equals, Exists, In, Not, Or, Predicate, Range, Regex
from ..registry import AuthRegistry

_MISSING = object()

RecordPredicate = Callable[[Mapping[str, Any]], bool]


def _candidates(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _compare(value: Any, predicate: Range) -> bool:
    try:
        if predicate.gt is not None and not value > predicate.gt:
            return False
        if predicate.gte is not None and not value >= predicate.gte:
            return False
        if predicate.lt is not None and not value < predicate.lt:
            return False
        if predicate.lte is not None and not value <= predicate.lte:
            return False
    except TypeError:
        return False
    return True


@AuthRegistry.filter_backend("memory")
class MemoryFilterBackend(FilterBackend):
    """Compiles predicates to Python callables over mapping records."""

    def compile(self, predicate: Predicate) -> RecordPredicate:
        return lambda record: self.matches(predicate, record)

    def matches(self, predicate: Predicate, record: Mapping[str, Any]) -> bool:
        """Evaluate a predicate against one record."""
        if isinstance(predicate, And):
            return all(self.matches(operand, record) for operand in predicate.operands)
        if isinstance(predicate, Or):
            return any(self.matches(operand, record) for operand in predicate.operands)
        if isinstance(predicate, Not):
            return not self.matches(predicate.operand, record)

        value = resolve(record, predicate.field, _MISSING)  # type: ignore[attr-defined]

        if isinstance(predicate, Exists):
            return (value is not _MISSING and value is not None) == predicate.present
        if value is _MISSING:
            return False

        if isinstance(predicate, Equals):
            if value == predicate.value:
                return True
            return isinstance(value, (list, tuple)) and predicate.value in value
        if isinstance(predicate, In):
            return any(candidate in predicate.values for candidate in _candidates(value))
        if isinstance(predicate, Regex):
            flags = re.IGNORECASE if predicate.ignore_case else 0
            try:
                regex = re.compile(predicate.pattern, flags)
            except re.error:
                return False
            return any(isinstance(c, str) and regex.search(c) is not None for c in _candidates(value))
        if isinstance(predicate, Range):
            return any(_compare(candidate, predicate) for candidate in _candidates(value))

        raise TypeError(f"Unsupported predicate: {predicate!r}")

    def filter(self, scope: DataScope, records: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
        """Records visible under the scope."""
        if not scope.has_access:
            return []
        return [record for record in records if self.matches(scope.predicate, record)]
