"""
Authorization module - Statement-based policies with data scoping.

Policies are sets of Allow/Deny statements over action and resource
patterns. The same policies answer point checks and compile into
database filters for list queries.

Usage Levels:
=============

Level 1: Point Checks
---------------------
    from iamscope.auth import AuthorizationService

    service = AuthorizationService()
    decision = service.check_permission(user, "chat:Delete", "urn:chat:support:acme:/c1")
    if not decision.allowed:
        ...

Level 2: Route Guards
---------------------
    from iamscope.auth import require_permission

    @router.delete("/chats/{chat_id}")
    async def delete_chat(chat_id: str, _=Depends(require_permission("chat:Delete", chat_urn))):
        ...

Level 3: Data Scoping
---------------------
    scope = service.build_scope_filter(user, "chat:View", "chat")
    documents = collection.find(service.render_scope(scope))

    stmt = service.scoped_query(select(Chat), Chat, user, "chat:View")

Level 4: Conditions
-------------------
    {"effect": "Allow", "actions": ["chat:View"], "resources": ["urn:chat:*"],
     "conditions": [{"operator": "BelongsTo", "field": "assignedTeam",
                     "value": "${context:user.teamIds}"}]}

Conditions narrow scope filters only; point checks ignore them.

Configuration:
==============

Environment variables (or in .env):
- IAM_URN_MAPPING_FILE: JSON service mapping table (built-in table if unset)
- IAM_FILTER_BACKEND: "document" (default), "sql", "memory"
- IAM_REJECT_UNKNOWN_OPERATORS: false (default), true

Extensibility:
=============

Add custom condition operators:
    @AuthRegistry.condition("IpAddress")
    class IpAddressCondition(ConditionTranslator):
        ...

Add URN path handlers usable from JSON mapping files:
    @AuthRegistry.path_handler("priority")
    def priority_handler(match, fragment):
        ...
"""

# Core interfaces (for type hints and custom implementations)
from .interfaces import (
    ConditionTranslator,
    DataScope,
    FilterBackend,
    PolicyDecision,
    PolicyEngine,
    ScopeProvider,
)

# Errors
from .errors import (
    ConfigurationError,
    ExpressionError,
    FilterCompilationError,
    IAMError,
    PolicyValidationError,
    SystemPolicyError,
)

# Policy model
from .models import (
    Condition,
    ConditionOperator,
    Effect,
    Policy,
    Principal,
    Statement,
    TeamMembership,
    load_policies,
    load_policy,
)

# Matching and context
from .matching import match_pattern
from .context import build_context, resolve, substitute

# Registry (for extending with custom implementations)
from .registry import AuthRegistry

# URNs
from .urn import UrnConfiguration, UrnParser, build_urn, default_urn_configuration

# Default implementations (auto-registered)
from .policy import PolicyEvaluator, system_policies
from .scope import (
    DocumentFilterBackend,
    MemoryFilterBackend,
    PolicyFilterCompiler,
    SQLAlchemyFilterBackend,
)

# Service (main facade)
from .service import AuthorizationService

# Dependencies (what you'll use in routes)
from .dependencies import (
    Authorize,
    CurrentPrincipal,
    get_authorization_service,
    get_current_principal,
    require_permission,
    require_scope,
)

__all__ = [
    # Interfaces
    "ConditionTranslator",
    "DataScope",
    "FilterBackend",
    "PolicyDecision",
    "PolicyEngine",
    "ScopeProvider",
    # Errors
    "ConfigurationError",
    "ExpressionError",
    "FilterCompilationError",
    "IAMError",
    "PolicyValidationError",
    "SystemPolicyError",
    # Policy model
    "Condition",
    "ConditionOperator",
    "Effect",
    "Policy",
    "Principal",
    "Statement",
    "TeamMembership",
    "load_policies",
    "load_policy",
    # Matching and context
    "match_pattern",
    "build_context",
    "resolve",
    "substitute",
    # Registry
    "AuthRegistry",
    # URNs
    "UrnConfiguration",
    "UrnParser",
    "build_urn",
    "default_urn_configuration",
    # Default implementations
    "PolicyEvaluator",
    "system_policies",
    "DocumentFilterBackend",
    "MemoryFilterBackend",
    "PolicyFilterCompiler",
    "SQLAlchemyFilterBackend",
    # Service
    "AuthorizationService",
    # Dependencies
    "Authorize",
    "CurrentPrincipal",
    "get_authorization_service",
    "get_current_principal",
    "require_permission",
    "require_scope",
]
