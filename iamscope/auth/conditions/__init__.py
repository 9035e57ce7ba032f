"""
Condition translators for scope filter compilation.

Built-in operators:
- StringEquals, StringNotEquals, StringLike, StringNotLike
- NumericEquals, NumericNotEquals, NumericLessThan, NumericGreaterThan
- DateEquals, DateNotEquals, DateLessThan, DateGreaterThan
- Bool, BelongsTo, NotBelongsTo, Exists, RawExpression

Add custom operators with the @AuthRegistry.condition decorator.
"""

from .builtin import (
    BelongsToCondition,
    BoolCondition,
    DateEqualsCondition,
    DateGreaterThanCondition,
    DateLessThanCondition,
    DateNotEqualsCondition,
    ExistsCondition,
    NotBelongsToCondition,
    NumericEqualsCondition,
    NumericGreaterThanCondition,
    NumericLessThanCondition,
    NumericNotEqualsCondition,
    RawExpressionCondition,
    StringEqualsCondition,
    StringLikeCondition,
    StringNotEqualsCondition,
    StringNotLikeCondition,
    to_bool,
    to_datetime,
    to_number,
)

__all__ = [
    "BelongsToCondition",
    "BoolCondition",
    "DateEqualsCondition",
    "DateGreaterThanCondition",
    "DateLessThanCondition",
    "DateNotEqualsCondition",
    "ExistsCondition",
    "NotBelongsToCondition",
    "NumericEqualsCondition",
    "NumericGreaterThanCondition",
    "NumericLessThanCondition",
    "NumericNotEqualsCondition",
    "RawExpressionCondition",
    "StringEqualsCondition",
    "StringLikeCondition",
    "StringNotEqualsCondition",
    "StringNotLikeCondition",
    "to_bool",
    "to_datetime",
    "to_number",
]
