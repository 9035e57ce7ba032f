"""
Authorization interfaces - Core abstractions.

These define the contracts the engine components follow. Hosts depend
on these and on ``AuthorizationService``, never on a concrete backend.

Two questions are answered:
- "May principal P perform action A on resource R?"  -> PolicyDecision
- "Which records of type T may P see for action A?"   -> DataScope
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from .models import Effect, Policy
from .predicates import MATCH_ALL, MATCH_NONE, Predicate


# ============================================================
# POLICY DECISION
# ============================================================

@dataclass
class PolicyDecision:
    """
    Result of a permission check.

    Attributes:
        effect: Allow or Deny
        reason: Human-readable explanation (for errors/logging)
        metadata: Matched statement counts, action, resource
    """
    effect: Effect
    reason: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def allowed(self) -> bool:
        return self.effect is Effect.ALLOW

    @classmethod
    def allow(cls, reason: str | None = None, **metadata: Any) -> "PolicyDecision":
        return cls(effect=Effect.ALLOW, reason=reason, metadata=metadata)

    @classmethod
    def deny(cls, reason: str = "Permission denied", **metadata: Any) -> "PolicyDecision":
        return cls(effect=Effect.DENY, reason=reason, metadata=metadata)


# ============================================================
# DATA SCOPE
# ============================================================

@dataclass(frozen=True)
class DataScope:
    """
    Boundaries of what data an actor can access.

    The predicate is storage-agnostic; a FilterBackend renders it.

    Levels:
        "global"    no restriction (predicate is MATCH_ALL)
        "filtered"  restricted by predicate
        "none"      no access at all (predicate is MATCH_NONE)
    """
    level: str
    predicate: Predicate = MATCH_ALL

    @classmethod
    def global_access(cls) -> "DataScope":
        """No data restrictions."""
        return cls(level="global", predicate=MATCH_ALL)

    @classmethod
    def no_access(cls) -> "DataScope":
        """Nothing is visible."""
        return cls(level="none", predicate=MATCH_NONE)

    @classmethod
    def filtered(cls, predicate: Predicate) -> "DataScope":
        """Restrict by predicate, normalizing constant predicates."""
        if predicate == MATCH_NONE:
            return cls.no_access()
        if predicate == MATCH_ALL:
            return cls.global_access()
        return cls(level="filtered", predicate=predicate)

    @property
    def has_access(self) -> bool:
        return self.level != "none"


# ============================================================
# POLICY ENGINE
# ============================================================

class PolicyEngine(ABC):
    """Decides Allow/Deny for a point permission check."""

    @abstractmethod
    def evaluate(
        self,
        policies: Sequence[Policy],
        action: str,
        resource: str,
        context: Mapping[str, Any] | None = None,
    ) -> PolicyDecision:
        """
        Evaluate whether the policies permit action on resource.

        Returns:
            PolicyDecision (never raises for uninterpretable data)
        """
        pass


# ============================================================
# SCOPE PROVIDER
# ============================================================

class ScopeProvider(ABC):
    """Compiles policies into a data scope for list/query operations."""

    @abstractmethod
    def get_scope(
        self,
        policies: Sequence[Policy],
        action: str,
        resource_type: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> DataScope:
        """
        Build the data scope for an action on a resource type.

        Returns:
            DataScope; level "none" when nothing is permitted
        """
        pass


# ============================================================
# CONDITION TRANSLATOR
# ============================================================

class ConditionTranslator(ABC):
    """
    Translates one condition operator into a predicate.

    Register translators with ``@AuthRegistry.condition("Operator")``.
    """

    @property
    @abstractmethod
    def operator(self) -> str:
        """Operator name as written in policy documents."""
        pass

    @abstractmethod
    def translate(self, field: str, value: Any) -> Predicate | None:
        """
        Translate a condition with an already context-resolved value.

        Returns:
            Predicate, or None if the value cannot be interpreted
        """
        pass


# ============================================================
# FILTER BACKEND
# ============================================================

class FilterBackend(ABC):
    """
    Renders predicates for a storage backend.

    Implementations:
    - MemoryFilterBackend: callable over mapping records
    - DocumentFilterBackend: document-store query dict
    - SQLAlchemyFilterBackend: SQLAlchemy boolean clause
    """

    @abstractmethod
    def compile(self, predicate: Predicate) -> Any:
        """Render a predicate in the backend's native form."""
        pass

    def compile_scope(self, scope: DataScope) -> Any:
        """Render a scope's predicate."""
        return self.compile(scope.predicate)
