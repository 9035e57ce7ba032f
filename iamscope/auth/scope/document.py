"""
Document-store filter backend.

Renders predicates as a Mongo-style query document:

    Equals     {"status": "open"}
    In         {"tags": {"$in": ["vip"]}}
    Regex      {"title": {"$regex": "^a.*$", "$options": "i"}}
    Range      {"createdAt": {"$gt": datetime(...)}}
    Exists     {"closedAt": {"$exists": False}}
    And / Or   {"$and": [...]} / {"$or": [...]}
    Not        {"$nor": [...]}

MATCH_ALL renders as ``{}`` and MATCH_NONE as ``{"$expr": False}``.
"""

from typing import Any

from ..interfaces import FilterBackend
from ..predicates import MATCH_ALL, MATCH_NONE, And, Equals, Exists, In, Not, Or, Predicate, Range, Regex
from ..registry import AuthRegistry

NEVER: dict[str, Any] = {"$expr": False}


@AuthRegistry.filter_backend("document")
class DocumentFilterBackend(FilterBackend):
    """Predicate -> query document."""

    def compile(self, predicate: Predicate) -> dict[str, Any]:
        if predicate == MATCH_ALL:
            return {}
        if predicate == MATCH_NONE:
            return dict(NEVER)

        if isinstance(predicate, And):
            parts = [self.compile(operand) for operand in predicate.operands]
            return self._merge(parts)
        if isinstance(predicate, Or):
            return {"$or": [self.compile(operand) for operand in predicate.operands]}
        if isinstance(predicate, Not):
            return {"$nor": [self.compile(predicate.operand)]}

        if isinstance(predicate, Equals):
            return {predicate.field: predicate.value}
        if isinstance(predicate, In):
            return {predicate.field: {"$in": list(predicate.values)}}
        if isinstance(predicate, Regex):
            condition: dict[str, Any] = {"$regex": predicate.pattern}
            if predicate.ignore_case:
                condition["$options"] = "i"
            return {predicate.field: condition}
        if isinstance(predicate, Range):
            bounds = {
                f"${name}": getattr(predicate, name)
                for name in ("gt", "gte", "lt", "lte")
                if getattr(predicate, name) is not None
            }
            return {predicate.field: bounds}
        if isinstance(predicate, Exists):
            return {predicate.field: {"$exists": predicate.present}}

        raise TypeError(f"Unsupported predicate: {predicate!r}")

    @staticmethod
    def _merge(parts: list[dict[str, Any]]) -> dict[str, Any]:
        """Flatten an AND into one document when no keys collide."""
        merged: dict[str, Any] = {}
        for part in parts:
            if any(key in merged for key in part):
                return {"$and": parts}
            merged.update(part)
        return merged
