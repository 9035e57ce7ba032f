"""
Statement-based policy evaluator.

Decision rules:
1. A statement matches when any action pattern matches the action AND
   any resource pattern matches the resource.
2. Any matching Deny statement decides Deny immediately.
3. Otherwise at least one matching Allow statement decides Allow.
4. No match at all is Deny (fail closed).

Statement conditions are NOT evaluated here. They only narrow scope
filters (see ``iamscope.auth.scope``). A point check on a statement with
conditions therefore allows on action/resource match alone; callers that
need row-level narrowing must use the scope filter.

Resource patterns may contain ``${context:...}`` placeholders; a list
value expands the pattern into one alternative per element. A pattern
whose placeholder does not resolve grants nothing and denies everything.
"""

from typing import Any, Mapping, Sequence

import structlog

from ..context import expand, unresolved_placeholders
from ..interfaces import PolicyDecision, PolicyEngine
from ..matching import match_any, match_pattern
from ..models import Effect, Policy, Statement

logger = structlog.get_logger()


class PolicyEvaluator(PolicyEngine):
    """Deny-overrides evaluation over an effective policy set."""

    def evaluate(
        self,
        policies: Sequence[Policy],
        action: str,
        resource: str,
        context: Mapping[str, Any] | None = None,
    ) -> PolicyDecision:
        allow_matches = 0

        for policy in policies:
            for statement in policy.statements:
                if not self.statement_matches(statement, action, resource, context):
                    continue

                if statement.effect is Effect.DENY:
                    logger.debug(
                        "policy_decision",
                        effect="Deny",
                        action=action,
                        resource=resource,
                        policy=policy.name,
                    )
                    return PolicyDecision.deny(
                        f"Explicitly denied by policy '{policy.name}'",
                        action=action,
                        resource=resource,
                        policy=policy.name,
                    )
                allow_matches += 1

        if allow_matches:
            logger.debug("policy_decision", effect="Allow", action=action, resource=resource, matches=allow_matches)
            return PolicyDecision.allow(
                f"Allowed by {allow_matches} statement(s)",
                action=action,
                resource=resource,
                matches=allow_matches,
            )

        logger.debug("policy_decision", effect="Deny", action=action, resource=resource, matches=0)
        return PolicyDecision.deny(
            f"No statement allows {action} on {resource}",
            action=action,
            resource=resource,
            matches=0,
        )

    def statement_matches(
        self,
        statement: Statement,
        action: str,
        resource: str,
        context: Mapping[str, Any] | None = None,
    ) -> bool:
        """
        Action and resource match for a single statement.

        A resource pattern with an unresolved placeholder matches nothing
        in an Allow statement and everything in a Deny statement.
        """
        if not match_any(statement.actions, action):
            return False

        for pattern in statement.resources:
            missing = unresolved_placeholders(pattern, context)
            if missing:
                logger.warning("resource_placeholder_unresolved", pattern=pattern, paths=missing)
                if statement.effect is Effect.DENY:
                    return True
                continue
            if any(match_pattern(candidate, resource) for candidate in expand(pattern, context)):
                return True
        return False


def evaluate_policies(
    policies: Sequence[Policy],
    action: str,
    resource: str,
    context: Mapping[str, Any] | None = None,
) -> bool:
    """Boolean shortcut over ``PolicyEvaluator().evaluate``."""
    return PolicyEvaluator().evaluate(policies, action, resource, context).allowed
