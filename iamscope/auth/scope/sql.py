"""
SQLAlchemy filter backend.

Renders predicates as a boolean SQL expression over a mapped model and
applies scopes to ``Select`` statements:

    backend = SQLAlchemyFilterBackend(Chat, field_map={"_id": "id"})
    query = backend.apply_to_query(select(Chat), scope)

A NULL column counts as an absent field for ``Exists``. Fields that do
not map to a column raise FilterCompilationError rather than being
skipped, so a Deny can never be silently dropped.
"""

from typing import Any, Mapping

from sqlalchemy import Select, and_, false, not_, or_, true
from sqlalchemy.sql.elements import ColumnElement

from ..errors import FilterCompilationError
from ..interfaces import DataScope, FilterBackend
from ..predicates import MATCH_ALL, MATCH_NONE, And, Equals, Exists, In, Not, Or, Predicate, Range, Regex
from ..registry import AuthRegistry


@AuthRegistry.filter_backend("sql")
class SQLAlchemyFilterBackend(FilterBackend):
    """
    Predicate -> SQLAlchemy clause.

    Configuration:
        model: Mapped class (or Table) whose columns are filtered
        field_map: Predicate field name -> attribute/column name
    """

    def __init__(self, model: Any = None, field_map: Mapping[str, str] | None = None, **kwargs: Any):
        self.model = model
        self.field_map = dict(field_map or {})

    def compile(self, predicate: Predicate) -> ColumnElement[bool]:
        if predicate == MATCH_ALL:
            return true()
        if predicate == MATCH_NONE:
            return false()

        if isinstance(predicate, And):
            return and_(*(self.compile(operand) for operand in predicate.operands))
        if isinstance(predicate, Or):
            return or_(*(self.compile(operand) for operand in predicate.operands))
        if isinstance(predicate, Not):
            return not_(self.compile(predicate.operand))

        column = self.column(predicate.field)  # type: ignore[attr-defined]

        if isinstance(predicate, Equals):
            if predicate.value is None:
                return column.is_(None)
            return column == predicate.value
        if isinstance(predicate, In):
            return column.in_(list(predicate.values))
        if isinstance(predicate, Regex):
            flags = "i" if predicate.ignore_case else None
            return column.regexp_match(predicate.pattern, flags=flags)
        if isinstance(predicate, Range):
            clauses = []
            if predicate.gt is not None:
                clauses.append(column > predicate.gt)
            if predicate.gte is not None:
                clauses.append(column >= predicate.gte)
            if predicate.lt is not None:
                clauses.append(column < predicate.lt)
            if predicate.lte is not None:
                clauses.append(column <= predicate.lte)
            return and_(*clauses) if clauses else true()
        if isinstance(predicate, Exists):
            return column.is_not(None) if predicate.present else column.is_(None)

        raise FilterCompilationError(f"Unsupported predicate: {predicate!r}")

    def column(self, field: str) -> Any:
        """Resolve a predicate field to a column attribute."""
        if self.model is None:
            raise FilterCompilationError("SQLAlchemyFilterBackend needs a model")
        name = self.field_map.get(field, field)
        columns = getattr(self.model, "c", None)
        if columns is not None and name in columns:
            return columns[name]
        attribute = getattr(self.model, name, None)
        if attribute is None or not hasattr(attribute, "in_"):
            raise FilterCompilationError(f"Field '{field}' does not map to a column of {self.model!r}")
        return attribute

    def apply_to_query(self, query: Select, scope: DataScope) -> Select:
        """
        Apply scope to a SQLAlchemy query.

        For global scope: returns query unchanged.
        For no access: adds an always-false WHERE clause.
        """
        if scope.level == "global":
            return query
        return query.where(self.compile(scope.predicate))
