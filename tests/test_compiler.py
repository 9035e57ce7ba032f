"""
Tests for compiling policies into scope filters.
"""

import pytest

from iamscope.auth import DataScope
from iamscope.auth.predicates import MATCH_ALL, And, Equals, In, Not, Or, Regex

SUPPORT = Equals("category", "support")
OPEN = Equals("status", "open")
LOW = Equals("priority", "low")


def test_allow_statements_are_ored(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow("chat:List", "urn:chat:*:*:category/support"),
        policy_factory.allow("chat:List", "urn:chat:*:*:status/open"),
    )

    scope = compiler.get_scope([policy], "chat:List", "chat")

    assert scope.level == "filtered"
    assert scope.predicate == Or((SUPPORT, OPEN))


def test_deny_statement_narrows(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow("chat:List", "urn:chat:*:*:category/support"),
        policy_factory.allow("chat:List", "urn:chat:*:*:status/open"),
        policy_factory.deny("chat:*", "urn:chat:*:*:priority/low"),
    )

    scope = compiler.get_scope([policy], "chat:List", "chat")

    assert scope.predicate == And((Or((SUPPORT, OPEN)), Not(LOW)))


def test_multiple_resources_in_one_statement_are_ored(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow("chat:List", ["urn:chat:*:*:category/support", "urn:chat:*:*:status/open"]),
    )
    assert compiler.get_scope([policy], "chat:List", "chat").predicate == Or((SUPPORT, OPEN))


def test_conditions_are_anded_with_resources(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow(
            "chat:List",
            "urn:chat:*:*:category/support",
            conditions=[{"operator": "StringLike", "field": "item:title", "value": "Re:*"}],
        ),
    )
    scope = compiler.get_scope([policy], "chat:List", "chat")
    assert scope.predicate == And((SUPPORT, Regex("title", "^Re:.*$", ignore_case=True)))


def test_belongs_to_context_list_becomes_membership(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow(
            "chat:View",
            "urn:chat:*:*:*",
            conditions=[{"operator": "BelongsTo", "field": "assignedTeam", "value": "${context:user.teamIds}"}],
        ),
    )

    scope = compiler.get_scope([policy], "chat:View", "chat", {"user.teamIds": ["t1", "t2"]})

    assert scope.predicate == In("assignedTeam", ("t1", "t2"))


def test_urn_placeholders_use_context(compiler, policy_factory):
    policy = policy_factory.create(policy_factory.allow("team:List", "urn:team:${context:user.teamId}:*:*"))
    scope = compiler.get_scope([policy], "team:List", "team", {"user.teamId": "t1"})
    assert scope.predicate == In("_id", ("t1",))


def test_no_matching_allow_is_no_access(compiler, policy_factory):
    policy = policy_factory.create(policy_factory.allow("chat:View", "urn:chat:*:*:*"))

    assert compiler.get_scope([], "chat:View", "chat") == DataScope.no_access()
    assert compiler.get_scope([policy], "chat:Delete", "chat") == DataScope.no_access()
    assert compiler.get_scope([policy], "kb:View", "kb") == DataScope.no_access()


def test_resource_type_hint_filters_resources(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow("*:List", ["urn:kb:*:*:category/faq", "urn:chat:*:*:status/open"]),
    )
    assert compiler.get_scope([policy], "chat:List", "chat").predicate == OPEN
    assert compiler.get_scope([policy], "chat:List", "kb").predicate == Equals("category", "faq")
    assert compiler.get_scope([policy], "chat:List", None).predicate == Or((Equals("category", "faq"), OPEN))


def test_star_resource_is_global(compiler, policy_factory):
    policy = policy_factory.create(policy_factory.allow("*", "*"))
    scope = compiler.get_scope([policy], "chat:List", "chat")
    assert scope == DataScope.global_access()
    assert scope.predicate == MATCH_ALL


def test_deny_everything_is_no_access(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow("*", "*"),
        policy_factory.deny("chat:*", "urn:chat:*:*:*"),
    )
    assert compiler.get_scope([policy], "chat:List", "chat") == DataScope.no_access()


# ============ Fail closed ============


def test_unknown_service_in_allow_contributes_nothing(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow("chat:List", "urn:ticket:*:*:*"),
        policy_factory.allow("chat:List", "urn:chat:*:*:status/open"),
    )
    assert compiler.get_scope([policy], "chat:List").predicate == OPEN


def test_unknown_service_in_deny_widens_deny(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow("chat:List", "urn:chat:*:*:status/open"),
        policy_factory.deny("chat:List", "urn:ticket:*:*:*"),
    )
    assert compiler.get_scope([policy], "chat:List") == DataScope.no_access()


def test_unknown_operator_drops_allow_statement(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow(
            "chat:List",
            "urn:chat:*:*:*",
            conditions=[{"operator": "IpAddress", "field": "ip", "value": "10.0.0.0/8"}],
        ),
        policy_factory.allow("chat:List", "urn:chat:*:*:status/open"),
    )
    assert compiler.get_scope([policy], "chat:List", "chat").predicate == OPEN


def test_unknown_operator_in_deny_widens_deny(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow("chat:List", "urn:chat:*:*:*"),
        policy_factory.deny(
            "chat:List",
            "urn:chat:*:*:priority/low",
            conditions=[{"operator": "IpAddress", "field": "ip", "value": "10.0.0.0/8"}],
        ),
    )
    assert compiler.get_scope([policy], "chat:List", "chat").predicate == Not(LOW)


def test_unparseable_raw_expression_never_matches(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow(
            "chat:List",
            "urn:chat:*:*:*",
            conditions=[{"operator": "RawExpression", "field": "priority", "value": "{oops"}],
        ),
    )
    assert compiler.get_scope([policy], "chat:List", "chat") == DataScope.no_access()


def test_uninterpretable_condition_value_drops_allow(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow(
            "chat:List",
            "urn:chat:*:*:*",
            conditions=[{"operator": "NumericLessThan", "field": "priority", "value": "${context:user.limit}"}],
        ),
    )
    assert compiler.get_scope([policy], "chat:List", "chat") == DataScope.no_access()


@pytest.mark.parametrize("action", ["chat:List", "chat:View"])
def test_compilation_is_idempotent(compiler, policy_factory, action):
    policy = policy_factory.create(
        policy_factory.allow("chat:*", "urn:chat:*:*:category/support"),
        policy_factory.deny("chat:View", "urn:chat:*:*:priority/low"),
    )
    context = {"user.id": "u1"}
    assert compiler.get_scope([policy], action, "chat", context) == compiler.get_scope([policy], action, "chat", context)


def test_compile_alias(compiler, policy_factory):
    policy = policy_factory.create(policy_factory.allow("chat:List", "urn:chat:*:*:status/open"))
    assert compiler.compile([policy], "chat:List", "chat") == compiler.get_scope([policy], "chat:List", "chat")


def test_list_placeholder_in_urn_expands(compiler, policy_factory):
    policy = policy_factory.create(policy_factory.allow("team:List", "urn:team:${context:user.teamIds}:*:*"))

    scope = compiler.get_scope([policy], "team:List", "team", {"user.teamIds": ["t1", "t2"]})
    assert scope.predicate == Or((In("_id", ("t1",)), In("_id", ("t2",))))

    empty = compiler.get_scope([policy], "team:List", "team", {"user.teamIds": []})
    assert empty == DataScope.no_access()


# ============ Unresolved placeholders ============


def test_unresolved_placeholder_in_allow_urn_grants_nothing(compiler, policy_factory):
    policy = policy_factory.create(policy_factory.allow("team:List", "urn:team:${context:user.primaryTeam}:*:*"))

    assert compiler.get_scope([policy], "team:List", "team", {}) == DataScope.no_access()
    assert compiler.get_scope([policy], "team:List", "team", {"user.primaryTeam": "t1"}).predicate == In("_id", ("t1",))


def test_unresolved_placeholder_in_deny_urn_widens_deny(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow("chat:List", "urn:chat:*:*:*"),
        policy_factory.deny("chat:List", "urn:chat:*:*:owner/${context:user.managerId}"),
    )
    assert compiler.get_scope([policy], "chat:List", "chat", {}) == DataScope.no_access()


def test_unresolved_placeholder_in_deny_condition_widens_deny(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow("chat:List", "urn:chat:*:*:*"),
        policy_factory.deny(
            "chat:List",
            "urn:chat:*:*:*",
            conditions=[{"operator": "StringEquals", "field": "assignedTeam", "value": "${context:user.primaryTeam}"}],
        ),
    )

    assert compiler.get_scope([policy], "chat:List", "chat", {}) == DataScope.no_access()

    scope = compiler.get_scope([policy], "chat:List", "chat", {"user.primaryTeam": "t1"})
    assert scope.predicate == Not(Equals("assignedTeam", "t1"))


def test_unresolved_placeholder_in_allow_condition_matches_nothing_real(compiler, policy_factory):
    policy = policy_factory.create(
        policy_factory.allow(
            "chat:List",
            "urn:chat:*:*:*",
            conditions=[{"operator": "StringEquals", "field": "assignedTeam", "value": "${context:user.primaryTeam}"}],
        ),
    )
    scope = compiler.get_scope([policy], "chat:List", "chat", {})
    assert scope.predicate == Equals("assignedTeam", "${context:user.primaryTeam}")
