"""
Shared fixtures: an in-memory SQLite database, a PortfolioStore on top of it,
signed-in users, and a TestClient with auth / db / resume parser overridden.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["DEV_MODE"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from folio.api.deps import get_resume_parser
from folio.core.supabase_auth import get_current_user
from folio.db import models
from folio.db.database import Base, get_db
from folio.main import app
from folio.services.page_cache import public_pages
from folio.services.portfolio_store import PortfolioStore


class FakeResumeParser:
    """Stands in for ResumeParser: returns a canned answer and records each call."""

    def __init__(self, response: str = "", error: Exception = None):
        self.response = response
        self.error = error
        self.calls = []

    async def parse(self, content):
        self.calls.append(content)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return PortfolioStore(db)


def _make_user(db, supabase_id: str, name: str) -> models.User:
    user = models.User(supabase_id=supabase_id, email=f"{supabase_id}@example.com", name=name, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db):
    return _make_user(db, "sb-jane", "Jane Doe")


@pytest.fixture
def other_user(db):
    return _make_user(db, "sb-other", "Someone Else")


@pytest.fixture(autouse=True)
def clear_public_pages():
    public_pages.clear()
    yield
    public_pages.clear()


@pytest.fixture
def fake_parser():
    return FakeResumeParser()


@pytest.fixture
def client(db, user, fake_parser):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_resume_parser] = lambda: fake_parser
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(db):
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
