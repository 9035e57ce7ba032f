"""
Policy-to-filter compiler.

Builds the data scope for "which records of type T may this principal
see for action A":

    scope = (Allow_1 OR Allow_2 OR ...) AND NOT (Deny_1 OR Deny_2 OR ...)

Each statement contributes

    (URN_1 OR URN_2 OR ...) AND condition_1 AND condition_2 ...

where a ``*`` resource is unconstrained and a list-valued placeholder
expands a URN into one alternative per element. Only resources relevant
to the requested resource type take part: ``*`` or a URN whose service
token matches the type.

Anything uninterpretable fails closed, unresolved placeholders included:
it contributes nothing to an Allow and widens a Deny to the statement's
whole resource.
"""

from typing import Any, Mapping, Sequence

import structlog

from ..context import expand, substitute_value, unresolved_placeholders
from ..interfaces import DataScope, ScopeProvider
from ..matching import match_any, match_pattern
from ..models import Condition, Effect, Policy, Statement
from ..predicates import MATCH_ALL, Predicate, all_of, any_of, negate
from ..registry import AuthRegistry
from ..urn import UrnParser

# Import to register built-in condition translators
from .. import conditions  # noqa: F401

logger = structlog.get_logger()

ITEM_PREFIX = "item:"


class PolicyFilterCompiler(ScopeProvider):
    """
    Compiles statements into a storage-agnostic scope predicate.

    Args:
        urn_parser: Parser bound to the service mapping configuration
    """

    def __init__(self, urn_parser: UrnParser):
        self.urn_parser = urn_parser

    def get_scope(
        self,
        policies: Sequence[Policy],
        action: str,
        resource_type: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> DataScope:
        allow: list[Predicate] = []
        deny: list[Predicate] = []

        for policy in policies:
            for statement in policy.statements:
                if not match_any(statement.actions, action):
                    continue

                resources = [r for r in statement.resources if self.targets(r, resource_type)]
                if not resources:
                    continue

                fragment = self.statement_predicate(statement, resources, context)
                if fragment is None:
                    continue

                if statement.effect is Effect.ALLOW:
                    allow.append(fragment)
                else:
                    deny.append(fragment)

        if not allow:
            logger.debug("scope_no_access", action=action, resource_type=resource_type)
            return DataScope.no_access()

        predicate = any_of(*allow)
        if deny:
            predicate = all_of(predicate, negate(any_of(*deny)))

        scope = DataScope.filtered(predicate)
        logger.debug(
            "scope_compiled",
            action=action,
            resource_type=resource_type,
            level=scope.level,
            allow_statements=len(allow),
            deny_statements=len(deny),
        )
        return scope

    # Alias matching the BuildScopeFilter vocabulary
    compile = get_scope

    def targets(self, resource: str, resource_type: str | None) -> bool:
        """Whether a statement resource concerns the requested resource type."""
        if resource == "*" or not resource_type or resource_type == "*":
            return True
        parts = resource.split(":")
        if len(parts) < 2 or parts[0].lower() != "urn":
            return False
        return match_pattern(parts[1], resource_type)

    def statement_predicate(
        self,
        statement: Statement,
        resources: Sequence[str],
        context: Mapping[str, Any] | None,
    ) -> Predicate | None:
        """
        Predicate for one statement, or None if it contributes nothing.
        """
        is_allow = statement.effect is Effect.ALLOW

        resource_predicates: list[Predicate] = []
        for resource in resources:
            if resource == "*":
                resource_predicates.append(MATCH_ALL)
                continue
            missing = unresolved_placeholders(resource, context)
            if missing:
                logger.warning("resource_placeholder_unresolved", resource=resource, paths=missing)
                if not is_allow:
                    resource_predicates.append(MATCH_ALL)
                continue
            for candidate in expand(resource, context):
                predicate = self.urn_parser.to_predicate(candidate, context)
                if predicate is None:
                    if is_allow:
                        continue
                    predicate = MATCH_ALL
                resource_predicates.append(predicate)

        if not resource_predicates:
            return None

        condition_predicates: list[Predicate] = []
        for condition in statement.conditions:
            # An Allow keeps the placeholder text, which matches no real value
            if not is_allow and unresolved_placeholders(condition.value, context):
                logger.warning("condition_placeholder_unresolved", operator=condition.operator, field=condition.field)
                continue
            predicate = self.condition_predicate(condition, context)
            if predicate is None:
                if is_allow:
                    return None
                continue
            condition_predicates.append(predicate)

        return all_of(any_of(*resource_predicates), *condition_predicates)

    def condition_predicate(self, condition: Condition, context: Mapping[str, Any] | None) -> Predicate | None:
        """Translate one condition; None if operator or value is unusable."""
        if not AuthRegistry.has_condition(condition.operator):
            logger.warning("condition_operator_unknown", operator=condition.operator, field=condition.field)
            return None

        field = condition.field
        if field.startswith(ITEM_PREFIX):
            field = field[len(ITEM_PREFIX):]

        value = substitute_value(condition.value, context)
        translator = AuthRegistry.get_condition_translator(condition.operator)
        return translator.translate(field, value)
