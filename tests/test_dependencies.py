"""
Tests for the FastAPI authorization dependencies.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import Depends, FastAPI, Request
from httpx import ASGITransport, AsyncClient

from iamscope.auth import (
    AuthorizationService,
    CurrentPrincipal,
    DataScope,
    PolicyDecision,
    build_urn,
    get_authorization_service,
    require_permission,
    require_scope,
)


def chat_urn(request: Request) -> str:
    return build_urn("chat", "support", "*", request.path_params["chat_id"])


@pytest.fixture
def principals(principal_factory, policy_factory):
    agent = policy_factory.create(
        policy_factory.allow(["chat:View", "chat:List"], "urn:chat:*:*:*"),
        policy_factory.allow("chat:Close", "urn:chat:*:*:${context:request.params.chat_id}"),
        policy_factory.deny("chat:Delete", "*"),
    )
    return {
        "agent": principal_factory.create(agent, principal_id="agent-1"),
        "guest": principal_factory.create(principal_id="guest-1"),
    }


@pytest.fixture
def app(service: AuthorizationService, principals) -> FastAPI:
    app = FastAPI()

    @app.middleware("http")
    async def attach_principal(request: Request, call_next):
        name = request.headers.get("x-principal")
        if name:
            request.state.principal = principals[name]
        return await call_next(request)

    @app.get("/me")
    async def me(principal: CurrentPrincipal):
        return {"id": principal.id}

    @app.get("/chats/{chat_id}")
    async def get_chat(
        chat_id: str,
        decision: PolicyDecision = Depends(require_permission("chat:View", chat_urn)),
    ):
        return {"id": chat_id, "reason": decision.reason}

    @app.post("/chats/{chat_id}/close")
    async def close_chat(
        chat_id: str,
        decision: PolicyDecision = Depends(require_permission("chat:Close", chat_urn)),
    ):
        return {"closed": chat_id}

    @app.delete("/chats/{chat_id}")
    async def delete_chat(
        chat_id: str,
        decision: PolicyDecision = Depends(require_permission("chat:Delete", "urn:chat:*:*:*")),
    ):
        return {"deleted": chat_id}

    @app.get("/chats")
    async def list_chats(scope: DataScope = Depends(require_scope("chat:List", "chat"))):
        return {"level": scope.level, "filter": service.render_scope(scope)}

    app.dependency_overrides[get_authorization_service] = lambda: service
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.mark.asyncio
async def test_current_principal_requires_authentication(client: AsyncClient):
    response = await client.get("/me")

    assert response.status_code == 401
    assert response.json()["detail"] == "Not authenticated"


@pytest.mark.asyncio
async def test_current_principal(client: AsyncClient):
    response = await client.get("/me", headers={"x-principal": "agent"})

    assert response.status_code == 200
    assert response.json() == {"id": "agent-1"}


@pytest.mark.asyncio
async def test_require_permission_allows(client: AsyncClient):
    response = await client.get("/chats/c1", headers={"x-principal": "agent"})

    assert response.status_code == 200
    assert response.json()["id"] == "c1"


@pytest.mark.asyncio
async def test_require_permission_denies(client: AsyncClient):
    response = await client.delete("/chats/c1", headers={"x-principal": "agent"})

    assert response.status_code == 403
    assert "denied" in response.json()["detail"].lower()


@pytest.mark.asyncio
async def test_default_deny_for_principal_without_policies(client: AsyncClient):
    response = await client.get("/chats/c1", headers={"x-principal": "guest"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_request_path_params_reach_context(client: AsyncClient):
    response = await client.post("/chats/c7/close", headers={"x-principal": "agent"})
    assert response.status_code == 200
    assert response.json() == {"closed": "c7"}


@pytest.mark.asyncio
async def test_require_scope(client: AsyncClient):
    response = await client.get("/chats", headers={"x-principal": "agent"})

    assert response.status_code == 200
    assert response.json() == {"level": "global", "filter": {}}


@pytest.mark.asyncio
async def test_require_scope_no_access(client: AsyncClient):
    response = await client.get("/chats", headers={"x-principal": "guest"})

    assert response.status_code == 403
    assert "chat:List" in response.json()["detail"]
