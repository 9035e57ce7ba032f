"""
Pytest fixtures for testing.

Provides:
- URN configuration, parser, compiler and service wired to the built-in table
- Factory fixtures for policies and principals
- In-memory SQLite engine with a small chat table for the SQL backend
"""

from datetime import datetime
from typing import Any, Generator

import pytest
from sqlalchemy import DateTime, String, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column
from sqlalchemy.pool import StaticPool

from iamscope.auth import (
    AuthorizationService,
    Policy,
    PolicyEvaluator,
    PolicyFilterCompiler,
    Principal,
    UrnConfiguration,
    UrnParser,
    default_urn_configuration,
    load_policy,
)
from iamscope.auth.models import TeamMembership


# Test database URL (SQLite in-memory for speed)
TEST_DATABASE_URL = "sqlite:///:memory:"


# ============ Engine Fixtures ============


@pytest.fixture
def urn_configuration() -> UrnConfiguration:
    return default_urn_configuration()


@pytest.fixture
def urn_parser(urn_configuration: UrnConfiguration) -> UrnParser:
    return UrnParser(urn_configuration)


@pytest.fixture
def compiler(urn_parser: UrnParser) -> PolicyFilterCompiler:
    return PolicyFilterCompiler(urn_parser)


@pytest.fixture
def evaluator() -> PolicyEvaluator:
    return PolicyEvaluator()


@pytest.fixture
def service(urn_configuration: UrnConfiguration) -> AuthorizationService:
    return AuthorizationService(urn_configuration=urn_configuration)


# ============ Factory Fixtures ============


class PolicyFactory:
    """Factory for building validated policies."""

    def __init__(self) -> None:
        self._count = 0

    @staticmethod
    def allow(actions: Any, resources: Any, conditions: list[dict] | None = None) -> dict:
        return {"effect": "Allow", "actions": actions, "resources": resources, "conditions": conditions or []}

    @staticmethod
    def deny(actions: Any, resources: Any, conditions: list[dict] | None = None) -> dict:
        return {"effect": "Deny", "actions": actions, "resources": resources, "conditions": conditions or []}

    def create(self, *statements: dict, name: str | None = None, **fields: Any) -> Policy:
        """Validate a policy made of the given statements."""
        self._count += 1
        return load_policy({
            "name": name or f"TestPolicy{self._count}",
            "statements": list(statements),
            **fields,
        })


class PrincipalFactory:
    """Factory for creating test principals."""

    def create(
        self,
        *policies: Policy,
        principal_id: str = "user-1",
        teams: dict[str, list[Policy]] | None = None,
        **attributes: Any,
    ) -> Principal:
        memberships = [
            TeamMembership(team_id=team_id, policies=tuple(team_policies))
            for team_id, team_policies in (teams or {}).items()
        ]
        return Principal(
            id=principal_id,
            attributes=attributes,
            policies=policies,
            teams=memberships,
        )


@pytest.fixture
def policy_factory() -> PolicyFactory:
    """Policy factory fixture."""
    return PolicyFactory()


@pytest.fixture
def principal_factory() -> PrincipalFactory:
    """Principal factory fixture."""
    return PrincipalFactory()


# ============ Database Fixtures ============


class Base(DeclarativeBase):
    pass


class Chat(Base):
    __tablename__ = "chat"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    category: Mapped[str] = mapped_column(String)
    status: Mapped[str] = mapped_column(String)
    priority: Mapped[int] = mapped_column()
    assigned_team: Mapped[str | None] = mapped_column(String, nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


CHAT_ROWS = [
    {"id": "c1", "category": "support", "status": "open", "priority": 1, "assigned_team": "t1", "closed_at": None},
    {"id": "c2", "category": "support", "status": "closed", "priority": 3, "assigned_team": "t2",
     "closed_at": datetime(2024, 3, 1)},
    {"id": "c3", "category": "billing", "status": "open", "priority": 5, "assigned_team": None, "closed_at": None},
    {"id": "c4", "category": "sales", "status": "open", "priority": 2, "assigned_team": "t3", "closed_at": None},
]


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Session on a fresh in-memory database seeded with CHAT_ROWS."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        session.add_all(Chat(**row) for row in CHAT_ROWS)
        session.commit()
        yield session

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def chat_model() -> type[Chat]:
    return Chat
