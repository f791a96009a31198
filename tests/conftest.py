"""Pytest configuration and shared fixtures.

Every test gets its own in-memory SQLite database. API tests go through a
FastAPI TestClient whose database and language-model dependencies are
overridden; callers authenticate with real signed tokens.
"""

from collections.abc import Generator
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from skillcoach import models  # noqa: F401  (registers tables)
from skillcoach.db import Base, get_db
from skillcoach.identity import create_access_token
from skillcoach.llm_client import get_llm_client
from skillcoach.main import app


class FakeLLM:
    """Stands in for the language model; replays canned responses."""

    def __init__(self) -> None:
        self.responses: list[str] = []
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            return '{"drills": []}'
        return self.responses.pop(0)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine) -> Generator[Session, None, None]:
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    session = factory()
    yield session
    session.close()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def client(db: Session, fake_llm: FakeLLM) -> Generator[TestClient, None, None]:
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build Authorization headers for a caller."""

    def _make(user_id: str = "user_1", roles: Optional[dict[str, str]] = None, plan: Optional[str] = None) -> dict[str, str]:
        claims: dict[str, Any] = {"sub": user_id}
        if roles:
            claims["roles"] = roles
        if plan:
            claims["plan"] = plan
        return {"Authorization": f"Bearer {create_access_token(claims)}"}

    return _make


@pytest.fixture
def experience_id() -> str:
    return "exp_test"
