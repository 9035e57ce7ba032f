"""
Authorization service - Main facade for authorization.

This is the primary entry point for hosts. It answers both questions
over a principal's effective policy set (direct + team policies):

    service = AuthorizationService()

    # Point check
    decision = service.check_permission(user, "chat:Delete", "urn:chat:support:acme:/c1")

    # Data scope
    scope = service.build_scope_filter(user, "chat:View", "chat")
    query = service.render_scope(scope)          # backend-native filter
    stmt = service.scoped_query(select(Chat), Chat, user, "chat:View", "chat")

The evaluation context is rebuilt on every call from the principal and
the request context, so concurrent requests never share state.
"""

from typing import Any, Mapping, Sequence

import structlog

from ..core.config import Settings, get_settings
from .context import build_context
from .interfaces import DataScope, FilterBackend, PolicyDecision, PolicyEngine, ScopeProvider
from .models import Policy, Principal, load_policies
from .policy import PolicyEvaluator
from .registry import AuthRegistry
from .scope import PolicyFilterCompiler
from .urn import UrnConfiguration, UrnParser, default_urn_configuration

logger = structlog.get_logger()


class AuthorizationService:
    """
    Default authorization service implementation.

    Combines:
    - Policy engine: Allow/Deny for a single resource
    - Scope provider: filter predicate for list queries
    - Filter backend: renders predicates for a storage engine

    Args:
        urn_configuration: Service mapping table (built-in table if None)
        policy_engine: Overrides the default PolicyEvaluator
        scope_provider: Overrides the default PolicyFilterCompiler
        filter_backend: Registered backend name or instance
        reject_unknown_operators: Reject condition operators without a
            translator when loading policies
    """

    def __init__(
        self,
        urn_configuration: UrnConfiguration | None = None,
        policy_engine: PolicyEngine | None = None,
        scope_provider: ScopeProvider | None = None,
        filter_backend: str | FilterBackend = "document",
        reject_unknown_operators: bool = False,
    ):
        self.urn_configuration = urn_configuration or default_urn_configuration()
        self.urn_parser = UrnParser(self.urn_configuration)
        self.policy_engine = policy_engine or PolicyEvaluator()
        self.scope_provider = scope_provider or PolicyFilterCompiler(self.urn_parser)
        if isinstance(filter_backend, str):
            filter_backend = AuthRegistry.get_filter_backend(filter_backend)
        self.filter_backend = filter_backend
        self.reject_unknown_operators = reject_unknown_operators

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "AuthorizationService":
        """Build a service from IAM_* settings."""
        settings = settings or get_settings()
        iam = settings.iam

        configuration = None
        if iam.urn_mapping_file is not None:
            configuration = UrnConfiguration.from_file(iam.urn_mapping_file)
            logger.info("urn_mapping_loaded", path=str(iam.urn_mapping_file))

        return cls(
            urn_configuration=configuration,
            filter_backend=iam.filter_backend,
            reject_unknown_operators=iam.reject_unknown_operators,
        )

    # ============================================================
    # POLICY LOADING
    # ============================================================

    def load_policies(self, documents: list[Mapping[str, Any] | Policy]) -> list[Policy]:
        """
        Validate policy documents.

        Raises:
            PolicyValidationError: On structural errors or, when enabled,
                condition operators without a translator
        """
        known = AuthRegistry.list_conditions() if self.reject_unknown_operators else None
        return load_policies(documents, known)

    # ============================================================
    # CHECK PERMISSION
    # ============================================================

    def check_permission(
        self,
        principal: Principal,
        action: str,
        resource: str,
        request_context: Mapping[str, Any] | None = None,
    ) -> PolicyDecision:
        """
        Decide whether the principal may perform action on resource.

        Statement conditions are not evaluated here; use
        ``build_scope_filter`` for condition-narrowed access.

        Returns:
            PolicyDecision (does not raise)
        """
        context = self.build_context(principal, request_context)
        decision = self.policy_engine.evaluate(principal.effective_policies, action, resource, context)
        logger.info(
            "permission_checked",
            principal=principal.id,
            action=action,
            resource=resource,
            effect=decision.effect.value,
        )
        return decision

    def is_allowed(
        self,
        principal: Principal,
        action: str,
        resource: str,
        request_context: Mapping[str, Any] | None = None,
    ) -> bool:
        """
        Check if action is allowed (returns bool).

        Usage:
            if service.is_allowed(user, "chat:Delete", urn):
                # show delete button
        """
        return self.check_permission(principal, action, resource, request_context).allowed

    def filter_authorized(
        self,
        principal: Principal,
        action: str,
        resources: Sequence[str],
        request_context: Mapping[str, Any] | None = None,
    ) -> list[str]:
        """
        Filter a list of resource identifiers to those the principal may act on.
        """
        context = self.build_context(principal, request_context)
        policies = principal.effective_policies
        return [
            resource
            for resource in resources
            if self.policy_engine.evaluate(policies, action, resource, context).allowed
        ]

    # ============================================================
    # BUILD SCOPE FILTER
    # ============================================================

    def build_scope_filter(
        self,
        principal: Principal,
        action: str,
        resource_type: str | None = None,
        request_context: Mapping[str, Any] | None = None,
    ) -> DataScope:
        """
        Compile the principal's policies into a data scope.

        Returns:
            DataScope; ``level == "none"`` means NoAccess
        """
        context = self.build_context(principal, request_context)
        scope = self.scope_provider.get_scope(principal.effective_policies, action, resource_type, context)
        logger.info(
            "scope_built",
            principal=principal.id,
            action=action,
            resource_type=resource_type,
            level=scope.level,
        )
        return scope

    def render_scope(self, scope: DataScope, backend: FilterBackend | None = None) -> Any:
        """Render a scope with the configured (or given) filter backend."""
        return (backend or self.filter_backend).compile_scope(scope)

    def scoped_query(
        self,
        query: Any,
        model: type,
        principal: Principal,
        action: str,
        resource_type: str | None = None,
        field_map: Mapping[str, str] | None = None,
        request_context: Mapping[str, Any] | None = None,
    ) -> Any:
        """
        Apply the principal's data scope to a SQLAlchemy query.

        Args:
            query: SQLAlchemy Select statement
            model: Model class for column references
            resource_type: Service token; defaults to the model's table name
            field_map: Predicate field -> column attribute overrides

        Returns:
            Query with scope filters applied
        """
        resource_type = resource_type or getattr(model, "__tablename__", None)
        scope = self.build_scope_filter(principal, action, resource_type, request_context)
        backend = AuthRegistry.get_filter_backend("sql", model=model, field_map=field_map)
        return backend.apply_to_query(query, scope)

    # ============================================================
    # CONTEXT
    # ============================================================

    @staticmethod
    def build_context(
        principal: Principal,
        request_context: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Fresh evaluation context for one call.

        ``request_context`` may hold ``method``, ``path``, ``ip``,
        ``params`` and ``query``; any other keys are merged verbatim.
        """
        request_context = dict(request_context or {})
        return build_context(
            principal,
            method=request_context.pop("method", None),
            path=request_context.pop("path", None),
            ip=request_context.pop("ip", None),
            params=request_context.pop("params", None),
            query=request_context.pop("query", None),
            extra=request_context,
        )
