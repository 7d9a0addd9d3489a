"""Shared pytest fixtures for VoiceDesk tests."""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from src.config import Settings

# Module-level app/registry objects read settings from the environment.
os.environ.setdefault("GROQ_API_KEY", "test-groq-key")


def build_settings(**overrides) -> Settings:
    """Create a Settings object with safe test defaults."""
    base = {
        "groq_api_key": "test-groq-key",
        "sarvam_api_key": "test-sarvam-key",
        "elevenlabs_api_key": "test-elevenlabs-key",
        "google_sheets_access_token": "test-sheets-token",
        "database_url": "sqlite+aiosqlite:///:memory:",
        "greeting_delay_ms": 10,
        "vad_silence_window_ms": 50,
    }
    base.update(overrides)
    return Settings(**base)


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """Return a factory to build Settings with overrides."""
    return build_settings


@pytest.fixture
def settings(settings_factory: Callable[..., Settings]) -> Settings:
    """Default Settings fixture."""
    return settings_factory()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def async_engine():
    """Create an in-memory async SQLite engine for testing."""
    # Import models to register them with SQLModel metadata
    from src.db import models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        future=True,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def async_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create an async database session for testing."""
    async_session_maker = sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def app_db(tmp_path, monkeypatch):
    """Point `get_session_context()` at a fresh file-backed SQLite database.

    Used by services that open their own sessions (wallet, ledgers, agent config).
    """
    from src.db import models  # noqa: F401
    from src.db import session as db_session

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'voicedesk-test.db'}",
        echo=False,
        future=True,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    monkeypatch.setattr(db_session, "_engine", engine)

    yield engine

    await engine.dispose()


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================


@pytest.fixture
def test_client(settings_factory, monkeypatch, tmp_path):
    """FastAPI TestClient with patched settings and a throwaway database."""
    from fastapi.testclient import TestClient

    test_settings = settings_factory(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'api-test.db'}",
    )

    import src.main
    from src.api.routes import health
    from src.db import session as db_session

    monkeypatch.setattr(src.main, "get_settings", lambda: test_settings)
    monkeypatch.setattr(db_session, "get_settings", lambda: test_settings)
    monkeypatch.setattr(db_session, "_engine", None)

    app = src.main.create_app()
    app.dependency_overrides[health.get_settings] = lambda: test_settings

    with TestClient(app) as client:
        yield client


# =============================================================================
# Webhook Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def webhook_server():
    """Local aiohttp server standing in for tool webhooks.

    `/hook` answers 200, `/fail` answers 500, `/slow` answers after one second.
    Every request is recorded.
    """
    from types import SimpleNamespace

    from aiohttp import web
    from aiohttp.test_utils import TestServer

    received: list[dict] = []

    async def record(request: web.Request) -> None:
        received.append(
            {
                "path": request.path,
                "method": request.method,
                "headers": dict(request.headers),
                "body": await request.text(),
            }
        )

    async def ok(request: web.Request) -> web.Response:
        await record(request)
        return web.json_response({"ok": True})

    async def fail(request: web.Request) -> web.Response:
        await record(request)
        return web.json_response({"error": "boom"}, status=500)

    async def slow(request: web.Request) -> web.Response:
        await record(request)
        await asyncio.sleep(1.0)
        return web.json_response({"ok": True})

    app = web.Application()
    app.router.add_route("*", "/hook", ok)
    app.router.add_route("*", "/fail", fail)
    app.router.add_route("*", "/slow", slow)

    server = TestServer(app)
    await server.start_server()

    yield SimpleNamespace(
        url=str(server.make_url("/hook")),
        fail_url=str(server.make_url("/fail")),
        slow_url=str(server.make_url("/slow")),
        received=received,
    )

    await server.close()
