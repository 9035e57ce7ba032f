"""
Storage-agnostic predicate tree.

Scope filters are built from these nodes and handed to a backend
(``iamscope.auth.scope``) that renders them for a concrete store:

    And, Or, Not          boolean composition
    Equals, In            value tests
    Regex                 pattern test (anchored, optionally case-insensitive)
    Range                 ordered comparison (gt / gte / lt / lte)
    Exists                field presence

``MATCH_ALL`` (empty And) and ``MATCH_NONE`` (empty Or) are the
always-true and always-false constants.
"""

from dataclasses import dataclass
from typing import Any, Mapping

from .errors import ExpressionError


class Predicate:
    """Base class for predicate nodes."""

    __slots__ = ()

    def __and__(self, other: "Predicate") -> "Predicate":
        return all_of(self, other)

    def __or__(self, other: "Predicate") -> "Predicate":
        return any_of(self, other)

    def __invert__(self) -> "Predicate":
        return negate(self)


@dataclass(frozen=True)
class And(Predicate):
    operands: tuple[Predicate, ...] = ()


@dataclass(frozen=True)
class Or(Predicate):
    operands: tuple[Predicate, ...] = ()


@dataclass(frozen=True)
class Not(Predicate):
    operand: Predicate


@dataclass(frozen=True)
class Equals(Predicate):
    field: str
    value: Any


@dataclass(frozen=True)
class In(Predicate):
    field: str
    values: tuple[Any, ...]


@dataclass(frozen=True)
class Regex(Predicate):
    field: str
    pattern: str
    ignore_case: bool = True


@dataclass(frozen=True)
class Range(Predicate):
    field: str
    gt: Any = None
    gte: Any = None
    lt: Any = None
    lte: Any = None


@dataclass(frozen=True)
class Exists(Predicate):
    field: str
    present: bool = True


MATCH_ALL: Predicate = And(())
MATCH_NONE: Predicate = Or(())


# ============================================================
# COMBINATORS
# ============================================================

def all_of(*predicates: Predicate) -> Predicate:
    """Conjunction, flattening nested Ands and folding constants."""
    operands: list[Predicate] = []
    for predicate in predicates:
        if predicate == MATCH_NONE:
            return MATCH_NONE
        if isinstance(predicate, And):
            operands.extend(predicate.operands)
        else:
            operands.append(predicate)
    if len(operands) == 1:
        return operands[0]
    return And(tuple(operands))


def any_of(*predicates: Predicate) -> Predicate:
    """Disjunction, flattening nested Ors and folding constants."""
    operands: list[Predicate] = []
    for predicate in predicates:
        if predicate == MATCH_ALL:
            return MATCH_ALL
        if isinstance(predicate, Or):
            operands.extend(predicate.operands)
        else:
            operands.append(predicate)
    if len(operands) == 1:
        return operands[0]
    return Or(tuple(operands))


def negate(predicate: Predicate) -> Predicate:
    """Logical NOT with constant folding and double-negation removal."""
    if predicate == MATCH_ALL:
        return MATCH_NONE
    if predicate == MATCH_NONE:
        return MATCH_ALL
    if isinstance(predicate, Not):
        return predicate.operand
    return Not(predicate)


# ============================================================
# EXPRESSION LITERALS
# ============================================================

_RANGE_OPERATORS = {"$gt": "gt", "$gte": "gte", "$lt": "lt", "$lte": "lte"}


def parse_expression(field: str, expression: Any) -> Predicate:
    """
    Convert a field-scoped filter literal into a predicate.

    The literal uses document-store operator keys:

        "support"                         -> Equals
        {"$in": ["a", "b"]}               -> In
        {"$ne": "closed"}                 -> Not(Equals)
        {"$nin": [...]}                   -> Not(In)
        {"$gt": 1, "$lte": 5}             -> Range
        {"$exists": true}                 -> Exists
        {"$regex": "^a", "$options": "i"} -> Regex
        {"$not": {...}}                   -> Not(...)

    A mapping without operator keys is an exact (embedded document) match.

    Raises:
        ExpressionError: Unknown operator or malformed operand
    """
    if not isinstance(expression, Mapping):
        return Equals(field, expression)

    keys = list(expression.keys())
    if not keys or not all(isinstance(k, str) and k.startswith("$") for k in keys):
        if any(isinstance(k, str) and k.startswith("$") for k in keys):
            raise ExpressionError(f"Cannot mix operators and fields in expression for '{field}'")
        return Equals(field, dict(expression))

    predicates: list[Predicate] = []
    bounds: dict[str, Any] = {}

    for key, operand in expression.items():
        if key in _RANGE_OPERATORS:
            bounds[_RANGE_OPERATORS[key]] = operand
        elif key == "$eq":
            predicates.append(Equals(field, operand))
        elif key == "$ne":
            predicates.append(negate(Equals(field, operand)))
        elif key in ("$in", "$nin"):
            if not isinstance(operand, (list, tuple)):
                raise ExpressionError(f"{key} expects a list for '{field}'")
            membership = In(field, tuple(operand))
            predicates.append(membership if key == "$in" else negate(membership))
        elif key == "$exists":
            predicates.append(Exists(field, bool(operand)))
        elif key == "$regex":
            if not isinstance(operand, str):
                raise ExpressionError(f"$regex expects a string for '{field}'")
            options = expression.get("$options", "")
            predicates.append(Regex(field, operand, ignore_case="i" in str(options)))
        elif key == "$options":
            if "$regex" not in expression:
                raise ExpressionError(f"$options without $regex for '{field}'")
        elif key == "$not":
            predicates.append(negate(parse_expression(field, operand)))
        else:
            raise ExpressionError(f"Unsupported operator '{key}' for '{field}'")

    if bounds:
        bounds = {name: value for name, value in bounds.items() if value is not None}
        if not bounds:
            raise ExpressionError(f"Range for '{field}' has no bounds")
        predicates.append(Range(field, **bounds))

    return all_of(*predicates)
