"""
FastAPI dependencies for authorization.

The host authenticates the request and attaches a ``Principal`` to
``request.state.principal``; these dependencies do the rest.

Usage:
    from iamscope.auth import CurrentPrincipal, require_permission, require_scope

    @router.delete("/chats/{chat_id}")
    async def delete_chat(
        chat_id: str,
        _: PolicyDecision = Depends(require_permission(
            "chat:Delete", lambda request: build_urn("chat", path=request.path_params["chat_id"]),
        )),
    ):
        ...

    @router.get("/chats")
    async def list_chats(scope: DataScope = Depends(require_scope("chat:List", "chat"))):
        query = service.render_scope(scope)
        ...
"""

from functools import lru_cache
from typing import Annotated, Any, Callable

from fastapi import Depends, HTTPException, Request, status

from .interfaces import DataScope, PolicyDecision
from .models import Principal
from .service import AuthorizationService

ResourceResolver = str | Callable[[Request], str]


# ============================================================
# SERVICE FACTORY
# ============================================================

@lru_cache
def get_authorization_service() -> AuthorizationService:
    """
    Get configured authorization service.

    Reads IAM_* environment variables (see ``iamscope.core.config``).
    """
    return AuthorizationService.from_settings()


# ============================================================
# PRINCIPAL DEPENDENCIES
# ============================================================

async def get_current_principal(request: Request) -> Principal:
    """
    Principal attached to the request by the host's authentication.

    Raises:
        HTTPException 401: If no principal is attached
    """
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def request_context(request: Request) -> dict[str, Any]:
    """Request attributes exposed as ``request.*`` context keys."""
    return {
        "method": request.method,
        "path": request.url.path,
        "ip": request.client.host if request.client else None,
        "params": dict(request.path_params),
        "query": dict(request.query_params),
    }


# ============================================================
# AUTHORIZATION DEPENDENCIES
# ============================================================

def require_permission(action: str, resource: ResourceResolver) -> Callable[..., Any]:
    """
    Dependency factory: 403 unless the principal may act on the resource.

    Args:
        action: Action identifier, e.g. "chat:Delete"
        resource: Resource URN, or a callable deriving it from the request
    """

    async def dependency(
        request: Request,
        principal: Principal = Depends(get_current_principal),
        service: AuthorizationService = Depends(get_authorization_service),
    ) -> PolicyDecision:
        target = resource(request) if callable(resource) else resource
        decision = service.check_permission(principal, action, target, request_context(request))

        if not decision.allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=decision.reason or "Permission denied",
            )
        return decision

    return dependency


def require_scope(action: str, resource_type: str | None = None) -> Callable[..., Any]:
    """
    Dependency factory: the principal's data scope, 403 on NoAccess.
    """

    async def dependency(
        request: Request,
        principal: Principal = Depends(get_current_principal),
        service: AuthorizationService = Depends(get_authorization_service),
    ) -> DataScope:
        scope = service.build_scope_filter(principal, action, resource_type, request_context(request))

        if not scope.has_access:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"No access to {resource_type or 'resources'} for {action}",
            )
        return scope

    return dependency


# ============================================================
# TYPE ALIASES FOR CLEAN SIGNATURES
# ============================================================

# Authenticated principal (required)
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]

# Authorization service
Authorize = Annotated[AuthorizationService, Depends(get_authorization_service)]
