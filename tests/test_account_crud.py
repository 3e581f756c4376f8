"""Account CRUD against a throwaway SQLite database."""

from contextlib import asynccontextmanager
from datetime import date

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from studyai.app.db import models  # noqa: F401 - import to register models
from studyai.app.db.base import Base
from studyai.app.db.crud.account import (
    consume_daily_use,
    create_account,
    get_account,
    set_premium,
)
from studyai.app.db.models import Account

TODAY = date(2026, 3, 2)
YESTERDAY = date(2026, 3, 1)


@asynccontextmanager
async def account_db(url: str):
    engine = create_async_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


def test_db_models_create_tables():
    assert "accounts" in Base.metadata.tables
    columns = Base.metadata.tables["accounts"].columns.keys()
    assert {"user_id", "is_premium", "daily_uses", "last_usage_date"} <= set(columns)


@pytest.mark.asyncio
async def test_create_account_defaults(sqlite_url):
    async with account_db(sqlite_url) as maker:
        async with maker() as session:
            account = await create_account(session, "u1")
        assert account.is_premium is False
        assert account.daily_uses == 0
        assert account.last_usage_date is None

        async with maker() as session:
            assert (await get_account(session, "u1")) is not None
            assert (await get_account(session, "nobody")) is None


@pytest.mark.asyncio
async def test_create_account_twice_returns_existing(sqlite_url):
    async with account_db(sqlite_url) as maker:
        async with maker() as session:
            await create_account(session, "u1", is_premium=True)
        async with maker() as session:
            account = await create_account(session, "u1")
        assert account.is_premium is True


@pytest.mark.asyncio
async def test_consume_increments_until_limit(sqlite_url):
    async with account_db(sqlite_url) as maker:
        async with maker() as session:
            await create_account(session, "u1")

        for expected in (1, 2, 3):
            async with maker() as session:
                charged, uses = await consume_daily_use(session, "u1", TODAY, limit=3)
            assert charged is True
            assert uses == expected

        async with maker() as session:
            charged, uses = await consume_daily_use(session, "u1", TODAY, limit=3)
        assert charged is False
        assert uses == 3


@pytest.mark.asyncio
async def test_consume_rolls_over_on_new_day(sqlite_url):
    async with account_db(sqlite_url) as maker:
        async with maker() as session:
            session.add(Account(user_id="u1", daily_uses=15, last_usage_date=YESTERDAY))
            await session.commit()

        async with maker() as session:
            charged, uses = await consume_daily_use(session, "u1", TODAY, limit=15)
        assert (charged, uses) == (True, 1)

        async with maker() as session:
            account = await get_account(session, "u1")
        assert account.last_usage_date == TODAY


@pytest.mark.asyncio
async def test_consume_never_charges_premium(sqlite_url):
    async with account_db(sqlite_url) as maker:
        async with maker() as session:
            await create_account(session, "u1", is_premium=True)
        async with maker() as session:
            charged, uses = await consume_daily_use(session, "u1", TODAY, limit=15)
        assert charged is False
        assert uses == 0


@pytest.mark.asyncio
async def test_consume_missing_account(sqlite_url):
    async with account_db(sqlite_url) as maker:
        async with maker() as session:
            assert await consume_daily_use(session, "ghost", TODAY, limit=15) == (False, 0)


@pytest.mark.asyncio
async def test_set_premium(sqlite_url):
    async with account_db(sqlite_url) as maker:
        async with maker() as session:
            await create_account(session, "u1")
        async with maker() as session:
            assert await set_premium(session, "u1", True) is True
            assert await set_premium(session, "ghost", True) is False
        async with maker() as session:
            assert (await get_account(session, "u1")).is_premium is True
