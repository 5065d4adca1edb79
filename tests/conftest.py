"""测试夹具。

每个测试使用独立的内存 SQLite 数据库（aiosqlite），表结构在夹具中创建。
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator

from loguru import logger
import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from aurimyth.persistence_kit.core.config import RepositorySettings
from aurimyth.persistence_kit.domain.models import Base
from aurimyth.persistence_kit.domain.repository import BaseRepository
from tests.models import Customer, Employee, Invoice, Order

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def settings() -> RepositorySettings:
    return RepositorySettings(include_deleted_directive="deleted", default_actor=None, max_page_size=None)


@pytest.fixture
def customer_repo(session: AsyncSession, settings: RepositorySettings) -> BaseRepository[Customer]:
    return BaseRepository(session, Customer, settings=settings)


@pytest.fixture
def order_repo(session: AsyncSession, settings: RepositorySettings) -> BaseRepository[Order]:
    return BaseRepository(session, Order, settings=settings)


@pytest.fixture
def employee_repo(session: AsyncSession, settings: RepositorySettings) -> BaseRepository[Employee]:
    return BaseRepository(session, Employee, settings=settings)


@pytest.fixture
def invoice_repo(session: AsyncSession, settings: RepositorySettings) -> BaseRepository[Invoice]:
    return BaseRepository(session, Invoice, settings=settings)


@pytest.fixture
def log_messages() -> Iterator[list]:
    """收集日志消息（loguru Message 对象，record 可通过 .record 访问）。"""
    messages: list = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{message}")
    yield messages
    logger.remove(handler_id)


class FlushCounter:
    """包装 session.flush 以统计调用次数。"""

    def __init__(self, session: AsyncSession) -> None:
        self.calls = 0
        self._flush = session.flush

    async def __call__(self, *args, **kwargs):
        self.calls += 1
        return await self._flush(*args, **kwargs)


@pytest.fixture
def flush_counter(session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> FlushCounter:
    counter = FlushCounter(session)
    monkeypatch.setattr(session, "flush", counter)
    return counter
