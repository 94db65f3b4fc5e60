"""Shared test fixtures for backend tests."""

from unittest.mock import patch

import aiosqlite
import httpx
import pytest_asyncio

from vocab_capture.api.main import app
from vocab_capture.db.sqlite_db import create_schema, get_connection


@pytest_asyncio.fixture
async def memory_db():
    """Create an in-memory SQLite database with full schema."""
    conn = await aiosqlite.connect(":memory:")
    await conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = aiosqlite.Row
    await create_schema(conn)
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def temp_db(tmp_path):
    """Point get_connection at a fresh on-disk database.

    A real file (not :memory:) so that every store call opens its own
    connection, like production, and concurrent writers really contend.
    """
    db_path = tmp_path / "vocabulary.db"
    with patch("vocab_capture.db.sqlite_db.DB_PATH", db_path):
        conn = await get_connection()
        try:
            await create_schema(conn)
        finally:
            await conn.close()
        yield db_path


@pytest_asyncio.fixture
async def client(temp_db):
    """HTTP client bound to the app in-process; lifespan does not run."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
