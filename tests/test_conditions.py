"""
Tests for condition translators and value coercion.
"""

from datetime import date, datetime, timezone

import pytest

from iamscope.auth import AuthRegistry, ConditionOperator
from iamscope.auth.conditions import to_bool, to_datetime, to_number
from iamscope.auth.predicates import MATCH_NONE, Equals, Exists, In, Not, Range, Regex


def translate(operator: str, field: str, value):
    return AuthRegistry.get_condition_translator(operator).translate(field, value)


def test_every_builtin_operator_is_registered():
    registered = set(AuthRegistry.list_conditions())
    assert {op.value for op in ConditionOperator} <= registered


def test_unknown_operator_lookup_raises():
    with pytest.raises(ValueError, match="Unknown condition operator"):
        AuthRegistry.get_condition_translator("IpAddress")


# ============ Coercion ============


@pytest.mark.parametrize("value,expected", [(5, 5), ("5", 5), (" 2.5 ", 2.5), (True, 1), ("abc", None), ("nan", None)])
def test_to_number(value, expected):
    assert to_number(value) == expected


def test_to_datetime():
    assert to_datetime("2024-01-01") == datetime(2024, 1, 1)
    assert to_datetime("2024-01-01T10:00:00Z") == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)
    assert to_datetime(date(2024, 1, 1)) == datetime(2024, 1, 1)
    assert to_datetime(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert to_datetime("yesterday") is None


@pytest.mark.parametrize("value,expected", [(True, True), ("true", True), ("0", False), ("", False), ("maybe", None)])
def test_to_bool(value, expected):
    assert to_bool(value) is expected


# ============ Translators ============


def test_string_conditions():
    assert translate("StringEquals", "status", "open") == Equals("status", "open")
    assert translate("StringNotEquals", "status", "open") == Not(Equals("status", "open"))
    assert translate("StringLike", "title", "Re: *?") == Regex("title", r"^Re:\ .*.$", ignore_case=True)
    assert translate("StringNotLike", "title", "spam*") == Not(Regex("title", "^spam.*$", ignore_case=True))
    assert translate("StringLike", "title", ["a"]) is None


def test_numeric_conditions():
    assert translate("NumericEquals", "priority", "3") == Equals("priority", 3)
    assert translate("NumericNotEquals", "priority", 3) == Not(Equals("priority", 3))
    assert translate("NumericLessThan", "priority", "10") == Range("priority", lt=10)
    assert translate("NumericGreaterThan", "priority", 1.5) == Range("priority", gt=1.5)
    assert translate("NumericLessThan", "priority", "high") is None


def test_date_conditions():
    moment = datetime(2024, 1, 1)
    assert translate("DateEquals", "createdAt", "2024-01-01") == Equals("createdAt", moment)
    assert translate("DateNotEquals", "createdAt", "2024-01-01") == Not(Equals("createdAt", moment))
    assert translate("DateLessThan", "createdAt", "2024-01-01") == Range("createdAt", lt=moment)
    assert translate("DateGreaterThan", "createdAt", "2024-01-01") == Range("createdAt", gt=moment)
    assert translate("DateGreaterThan", "createdAt", "soon") is None


def test_bool_condition():
    assert translate("Bool", "archived", "false") == Equals("archived", False)
    assert translate("Bool", "archived", "sometimes") is None


def test_belongs_to_preserves_lists():
    assert translate("BelongsTo", "assignedTeam", ["t1", "t2"]) == In("assignedTeam", ("t1", "t2"))
    assert translate("BelongsTo", "assignedTeam", "t1") == Equals("assignedTeam", "t1")
    assert translate("NotBelongsTo", "assignedTeam", ["t1"]) == Not(In("assignedTeam", ("t1",)))
    assert translate("NotBelongsTo", "assignedTeam", "t1") == Not(Equals("assignedTeam", "t1"))


def test_exists_condition():
    assert translate("Exists", "closedAt", True) == Exists("closedAt", True)
    assert translate("Exists", "closedAt", "false") == Exists("closedAt", False)
    assert translate("Exists", "closedAt", "perhaps") is None


def test_exists_without_value_means_absent():
    assert translate("Exists", "closedAt", None) == Exists("closedAt", False)


def test_raw_expression():
    assert translate("RawExpression", "priority", '{"$in": ["high", "urgent"]}') == In("priority", ("high", "urgent"))
    assert translate("RawExpression", "priority", {"$gte": 2}) == Range("priority", gte=2)


@pytest.mark.parametrize("value", ["{not json", '{"$where": "1"}', '{"$in": 5}', '{"$gt": null}'])
def test_raw_expression_failure_never_matches(value):
    assert translate("RawExpression", "priority", value) == MATCH_NONE
