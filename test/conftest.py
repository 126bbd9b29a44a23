"""
Pytest configuration and fixtures.

Repository, store and API tests run against in-memory SQLite through
aiosqlite. ``StaticPool`` keeps one connection so every session sees the
same database; sessions must therefore not overlap.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from typing import Any
from uuid import UUID

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import feedback_engine.models  # noqa: F401
from feedback_engine.auth.api_keys import hash_api_key
from feedback_engine.auth.models import ApiKey
from feedback_engine.config import Settings, get_settings
from feedback_engine.organizations.models import Organization
from feedback_engine.questions.models import QuestionDefinition, ScaleConfig
from feedback_engine.questions.persistence_models import Question
from feedback_engine.shared.database import Base, get_db_session

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
WEBHOOK_SECRET = "whsec-test-123"
RAW_API_KEY = "fk_live_test_0123456789"


# ---------------------------------------------------------------------------
# Question definitions (no database)
# ---------------------------------------------------------------------------

def star_question(qid: str = "q1", required: bool = True, **kwargs: Any) -> QuestionDefinition:
    return QuestionDefinition(
        id=qid,
        type="star",
        text=kwargs.pop("text", "How would you rate us?"),
        required=required,
        scale=ScaleConfig(min=1, max=5),
        **kwargs,
    )


def choice_question(
    qid: str = "q2",
    options: tuple[str, ...] = ("A", "B"),
    question_type: str = "single-choice",
    **kwargs: Any,
) -> QuestionDefinition:
    return QuestionDefinition(
        id=qid,
        type=question_type,
        text=kwargs.pop("text", "Pick one"),
        options=options,
        **kwargs,
    )


def text_question(qid: str = "q3", **kwargs: Any) -> QuestionDefinition:
    return QuestionDefinition(id=qid, type="text", text=kwargs.pop("text", "Anything else?"), **kwargs)


@pytest.fixture
def scenario_catalog() -> list[QuestionDefinition]:
    """star(1-5, required), single-choice {A, B}, text."""
    return [
        star_question("q1", ordinal=0),
        choice_question("q2", ordinal=1),
        text_question("q3", ordinal=2),
    ]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        duplicate_window_seconds=0,
        max_turn_attempts=3,
    )


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with working SAVEPOINTs."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy, not the driver, emit BEGIN so nested transactions work
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


async def add_organization(session: AsyncSession, **kwargs: Any) -> Organization:
    organization = Organization(
        name=kwargs.pop("name", "Acme Coffee"),
        webhook_secret=kwargs.pop("webhook_secret", WEBHOOK_SECRET),
        thank_you_message=kwargs.pop("thank_you_message", None),
        opt_out_keyword=kwargs.pop("opt_out_keyword", None),
        **kwargs,
    )
    session.add(organization)
    await session.flush()
    return organization


async def add_question(
    session: AsyncSession,
    organization_id: UUID,
    qid: str,
    question_type: str,
    order_index: int,
    **kwargs: Any,
) -> Question:
    question = Question(
        id=qid,
        organization_id=organization_id,
        question_text=kwargs.pop("question_text", f"Question {qid}"),
        question_type=question_type,
        order_index=order_index,
        **kwargs,
    )
    session.add(question)
    await session.flush()
    return question


async def add_scenario_catalog(session: AsyncSession, organization_id: UUID) -> None:
    await add_question(
        session, organization_id, "q1", "star", 0,
        question_text="How would you rate us?", is_required=True,
        scale_min=1, scale_max=5, category="Service",
    )
    await add_question(
        session, organization_id, "q2", "single-choice", 1,
        question_text="Pick one", options=["A", "B"],
    )
    await add_question(session, organization_id, "q3", "text", 2, question_text="Anything else?")


async def add_api_key(session: AsyncSession, organization_id: UUID, raw_key: str = RAW_API_KEY, **kwargs: Any) -> ApiKey:
    key = ApiKey(
        organization_id=organization_id,
        key_name=kwargs.pop("key_name", "test key"),
        key_prefix=raw_key[:8],
        hashed_key=hash_api_key(raw_key),
        **kwargs,
    )
    session.add(key)
    await session.flush()
    return key


@pytest_asyncio.fixture
async def organization(session_factory: async_sessionmaker[AsyncSession]) -> Organization:
    """Committed organization with the scenario catalog and an API key."""
    async with session_factory() as session:
        organization = await add_organization(session)
        await add_scenario_catalog(session, organization.id)
        await add_api_key(session, organization.id)
        await session.commit()
    return organization


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest.fixture
def app(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> Generator[FastAPI, None, None]:
    """Fresh app whose DB and settings dependencies use the test fixtures."""
    from feedback_engine.main import create_app

    app = create_app()

    async def _override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _override_get_db_session
    app.dependency_overrides[get_settings] = lambda: settings
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {RAW_API_KEY}"}
