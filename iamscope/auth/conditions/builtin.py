"""
Built-in condition translators.

Each translator turns one statement condition into a predicate on the
scope filter. Values arrive with ``${context:...}`` placeholders already
resolved. A translator returns None when the value cannot be
interpreted; the compiler then fails closed.

Usage in a policy:
    {"operator": "BelongsTo", "field": "assignedTeam", "value": "${context:user.teamIds}"}
    {"operator": "DateGreaterThan", "field": "createdAt", "value": "2024-01-01"}
    {"operator": "RawExpression", "field": "priority", "value": "{\"$in\": [\"high\", \"urgent\"]}"}
"""

import json
from datetime import date, datetime, time, timezone
from typing import Any

import structlog

from ..errors import ExpressionError
from ..interfaces import ConditionTranslator
from ..matching import wildcard_to_regex
from ..predicates import (
    MATCH_NONE,
    Equals,
    Exists,
    In,
    Predicate,
    Range,
    Regex,
    negate,
    parse_expression,
)
from ..registry import AuthRegistry

logger = structlog.get_logger()

_TRUE_STRINGS = {"true", "1", "yes"}
_FALSE_STRINGS = {"false", "0", "no", ""}


# ============================================================
# VALUE COERCION
# ============================================================

def to_number(value: Any) -> int | float | None:
    """Coerce to int/float; None if not numeric."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return number if number == number else None
    return None


def to_datetime(value: Any) -> datetime | None:
    """Coerce ISO strings, dates and epoch milliseconds to a datetime."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def to_bool(value: Any) -> bool | None:
    """Coerce booleans, numbers and "true"/"false" strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    return None


def _warn(operator: str, field: str, value: Any) -> None:
    logger.warning("condition_value_uninterpretable", operator=operator, field=field, value=repr(value))


# ============================================================
# STRING
# ============================================================

@AuthRegistry.condition("StringEquals")
class StringEqualsCondition(ConditionTranslator):
    """field == value"""

    operator = "StringEquals"

    def translate(self, field: str, value: Any) -> Predicate | None:
        return Equals(field, value)


@AuthRegistry.condition("StringNotEquals")
class StringNotEqualsCondition(ConditionTranslator):
    """field != value"""

    operator = "StringNotEquals"

    def translate(self, field: str, value: Any) -> Predicate | None:
        return negate(Equals(field, value))


@AuthRegistry.condition("StringLike")
class StringLikeCondition(ConditionTranslator):
    """
    Wildcard match with the same rules as action/resource patterns.

    ``*`` and ``?`` are the only special characters; everything else is
    escaped before the regex is built.
    """

    operator = "StringLike"
    negated = False

    def translate(self, field: str, value: Any) -> Predicate | None:
        if not isinstance(value, str):
            _warn(self.operator, field, value)
            return None
        predicate = Regex(field, wildcard_to_regex(value), ignore_case=True)
        return negate(predicate) if self.negated else predicate


@AuthRegistry.condition("StringNotLike")
class StringNotLikeCondition(StringLikeCondition):
    """Negated wildcard match."""

    operator = "StringNotLike"
    negated = True


# ============================================================
# NUMERIC / DATE
# ============================================================

class _ComparisonCondition(ConditionTranslator):
    """Shared logic for numeric and date comparisons."""

    comparison: str = "eq"

    def coerce(self, value: Any) -> Any:
        raise NotImplementedError

    def translate(self, field: str, value: Any) -> Predicate | None:
        operand = self.coerce(value)
        if operand is None:
            _warn(self.operator, field, value)
            return None
        if self.comparison == "eq":
            return Equals(field, operand)
        if self.comparison == "ne":
            return negate(Equals(field, operand))
        return Range(field, **{self.comparison: operand})


class _NumericCondition(_ComparisonCondition):
    def coerce(self, value: Any) -> Any:
        return to_number(value)


class _DateCondition(_ComparisonCondition):
    def coerce(self, value: Any) -> Any:
        return to_datetime(value)


@AuthRegistry.condition("NumericEquals")
class NumericEqualsCondition(_NumericCondition):
    operator = "NumericEquals"
    comparison = "eq"


@AuthRegistry.condition("NumericNotEquals")
class NumericNotEqualsCondition(_NumericCondition):
    operator = "NumericNotEquals"
    comparison = "ne"


@AuthRegistry.condition("NumericLessThan")
class NumericLessThanCondition(_NumericCondition):
    operator = "NumericLessThan"
    comparison = "lt"


@AuthRegistry.condition("NumericGreaterThan")
class NumericGreaterThanCondition(_NumericCondition):
    operator = "NumericGreaterThan"
    comparison = "gt"


@AuthRegistry.condition("DateEquals")
class DateEqualsCondition(_DateCondition):
    operator = "DateEquals"
    comparison = "eq"


@AuthRegistry.condition("DateNotEquals")
class DateNotEqualsCondition(_DateCondition):
    operator = "DateNotEquals"
    comparison = "ne"


@AuthRegistry.condition("DateLessThan")
class DateLessThanCondition(_DateCondition):
    operator = "DateLessThan"
    comparison = "lt"


@AuthRegistry.condition("DateGreaterThan")
class DateGreaterThanCondition(_DateCondition):
    operator = "DateGreaterThan"
    comparison = "gt"


# ============================================================
# BOOLEAN / MEMBERSHIP / PRESENCE
# ============================================================

@AuthRegistry.condition("Bool")
class BoolCondition(ConditionTranslator):
    """field == true/false"""

    operator = "Bool"

    def translate(self, field: str, value: Any) -> Predicate | None:
        flag = to_bool(value)
        if flag is None:
            _warn(self.operator, field, value)
            return None
        return Equals(field, flag)


@AuthRegistry.condition("BelongsTo")
class BelongsToCondition(ConditionTranslator):
    """
    field in value (list) or field == value (scalar).

    Usually fed by a whole-value placeholder such as
    ``${context:user.teamIds}`` so the list passes through intact.
    """

    operator = "BelongsTo"

    def translate(self, field: str, value: Any) -> Predicate | None:
        if isinstance(value, (list, tuple, set, frozenset)):
            return In(field, tuple(value))
        return Equals(field, value)


@AuthRegistry.condition("NotBelongsTo")
class NotBelongsToCondition(BelongsToCondition):
    """Negated membership."""

    operator = "NotBelongsTo"

    def translate(self, field: str, value: Any) -> Predicate | None:
        return negate(super().translate(field, value))


@AuthRegistry.condition("Exists")
class ExistsCondition(ConditionTranslator):
    """Field presence; value gives the polarity, an omitted value means absent."""

    operator = "Exists"

    def translate(self, field: str, value: Any) -> Predicate | None:
        present = False if value is None else to_bool(value)
        if present is None:
            _warn(self.operator, field, value)
            return None
        return Exists(field, present)


@AuthRegistry.condition("RawExpression")
class RawExpressionCondition(ConditionTranslator):
    """
    Pre-structured filter literal for a field.

    The value is a JSON string (or an already decoded object) in the
    operator syntax accepted by ``parse_expression``. A literal that
    cannot be parsed never matches.
    """

    operator = "RawExpression"

    def translate(self, field: str, value: Any) -> Predicate | None:
        try:
            expression = json.loads(value) if isinstance(value, str) else value
            return parse_expression(field, expression)
        except (ValueError, ExpressionError) as exc:
            logger.warning("raw_expression_unparseable", field=field, error=str(exc))
            return MATCH_NONE
