"""
Policy documents and principals.

Policies are JSON-shaped records:

    {
        "name": "AgentPolicy",
        "version": "2023-01-01",
        "isSystemPolicy": true,
        "statements": [
            {
                "effect": "Allow",
                "actions": ["chat:View", "chat:List"],
                "resources": ["urn:chat:agent:${context:user.id}:*"],
                "conditions": [
                    {"operator": "BelongsTo", "field": "assignedTeam",
                     "value": "${context:user.teamIds}"}
                ]
            }
        ]
    }

The singular keys used by older documents (``statement``, ``action``,
``resource``, ``condition`` and a condition's ``type``) are accepted too.
Models are frozen: a loaded policy is a read-only snapshot.
"""

from enum import Enum
from typing import Any, Collection, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import PolicyValidationError, SystemPolicyError


class Effect(str, Enum):
    """Statement effect."""
    ALLOW = "Allow"
    DENY = "Deny"


class ConditionOperator(str, Enum):
    """Condition operators with a built-in translator."""
    STRING_EQUALS = "StringEquals"
    STRING_NOT_EQUALS = "StringNotEquals"
    STRING_LIKE = "StringLike"
    STRING_NOT_LIKE = "StringNotLike"
    NUMERIC_EQUALS = "NumericEquals"
    NUMERIC_NOT_EQUALS = "NumericNotEquals"
    NUMERIC_LESS_THAN = "NumericLessThan"
    NUMERIC_GREATER_THAN = "NumericGreaterThan"
    DATE_EQUALS = "DateEquals"
    DATE_NOT_EQUALS = "DateNotEquals"
    DATE_LESS_THAN = "DateLessThan"
    DATE_GREATER_THAN = "DateGreaterThan"
    BOOL = "Bool"
    BELONGS_TO = "BelongsTo"
    NOT_BELONGS_TO = "NotBelongsTo"
    EXISTS = "Exists"
    RAW_EXPRESSION = "RawExpression"


# Names used by documents written for the document-store era
OPERATOR_ALIASES = {
    "MongoExists": ConditionOperator.EXISTS.value,
    "MongoExpression": ConditionOperator.RAW_EXPRESSION.value,
}

DEFAULT_POLICY_VERSION = "2023-01-01"


class Condition(BaseModel):
    """A single field constraint applied when compiling scope filters."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    operator: str = Field(validation_alias=AliasChoices("operator", "type"), min_length=1)
    field: str = Field(min_length=1)
    value: Any = None

    @field_validator("operator")
    @classmethod
    def normalize_operator(cls, v: str) -> str:
        return OPERATOR_ALIASES.get(v, v)


class Statement(BaseModel):
    """One Allow/Deny rule."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    effect: Effect
    actions: tuple[str, ...] = Field(
        validation_alias=AliasChoices("actions", "action"),
        min_length=1,
    )
    resources: tuple[str, ...] = Field(
        validation_alias=AliasChoices("resources", "resource"),
        min_length=1,
    )
    conditions: tuple[Condition, ...] = Field(
        default=(),
        validation_alias=AliasChoices("conditions", "condition"),
    )

    @field_validator("actions", "resources", mode="before")
    @classmethod
    def wrap_single_pattern(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("conditions", mode="before")
    @classmethod
    def default_conditions(cls, v: Any) -> Any:
        return () if v is None else v

    @field_validator("actions", "resources")
    @classmethod
    def reject_blank_patterns(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if any(not pattern.strip() for pattern in v):
            raise ValueError("patterns must be non-empty strings")
        return v

    @property
    def is_allow(self) -> bool:
        return self.effect is Effect.ALLOW


class Policy(BaseModel):
    """A named set of statements."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    name: str = Field(min_length=1)
    description: str | None = None
    version: str = DEFAULT_POLICY_VERSION
    statements: tuple[Statement, ...] = Field(
        validation_alias=AliasChoices("statements", "statement"),
        min_length=1,
    )
    is_system_policy: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_system_policy", "isSystemPolicy"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return None if v is None else str(v)

    def ensure_mutable(self) -> None:
        """
        Guard for update/delete operations.

        Raises:
            SystemPolicyError: If this is a system policy
        """
        if self.is_system_policy:
            raise SystemPolicyError(f"System policy '{self.name}' cannot be modified or deleted")


class TeamMembership(BaseModel):
    """A team the principal belongs to, with the team's policies."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    team_id: str = Field(validation_alias=AliasChoices("team_id", "teamId"))
    policies: tuple[Policy, ...] = ()

    @field_validator("team_id", mode="before")
    @classmethod
    def coerce_team_id(cls, v: Any) -> Any:
        return str(v)


class Principal(BaseModel):
    """
    The authenticated actor.

    Effective policy set = direct policies + every team's policies,
    recomputed on each access.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    policies: tuple[Policy, ...] = Field(
        default=(),
        validation_alias=AliasChoices("policies", "direct_policies", "directPolicies"),
    )
    teams: tuple[TeamMembership, ...] = ()

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return str(v)

    @property
    def team_ids(self) -> list[str]:
        return [team.team_id for team in self.teams]

    @property
    def effective_policies(self) -> list[Policy]:
        policies = list(self.policies)
        for team in self.teams:
            policies.extend(team.policies)
        return policies


# ============================================================
# LOADING
# ============================================================

def load_policy(
    document: Mapping[str, Any] | Policy,
    known_operators: Collection[str] | None = None,
) -> Policy:
    """
    Validate a policy document.

    Args:
        document: Raw document or an already loaded policy
        known_operators: When given, condition operators outside this set
            are rejected instead of failing closed at compile time

    Raises:
        PolicyValidationError: On structural errors (missing effect,
            empty action/resource lists, no statements, ...)
    """
    policy = document if isinstance(document, Policy) else _validate(document)

    if known_operators is not None:
        unknown = sorted({
            condition.operator
            for statement in policy.statements
            for condition in statement.conditions
            if condition.operator not in known_operators
        })
        if unknown:
            raise PolicyValidationError(
                f"Policy {policy.name!r} uses unknown condition operators: {unknown}",
                errors=[{"type": "unknown_operator", "loc": ("conditions",), "msg": op} for op in unknown],
            )
    return policy


def _validate(document: Mapping[str, Any]) -> Policy:
    try:
        return Policy.model_validate(document)
    except ValidationError as exc:
        name = document.get("name") if isinstance(document, Mapping) else None
        raise PolicyValidationError(
            f"Invalid policy document{f' {name!r}' if name else ''}: {exc.error_count()} error(s)",
            errors=exc.errors(include_url=False),
        ) from exc


def load_policies(
    documents: list[Mapping[str, Any] | Policy],
    known_operators: Collection[str] | None = None,
) -> list[Policy]:
    """Validate a list of policy documents."""
    return [load_policy(document, known_operators) for document in documents]
