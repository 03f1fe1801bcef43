"""Integration tests for SQLAlchemyLinkSettingsRepository against SQLite."""

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from domain.entities.link_settings import InvitationLinkSettings
from infrastructure.database.models import Base
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork

UowFactory = Callable[[], SQLAlchemyUnitOfWork]


def _link(**overrides: Any) -> InvitationLinkSettings:
    values: dict[str, Any] = {
        "workspace_id": uuid4(),
        "link_token": f"link-{uuid4().hex}",
        "type": "workspace",
        "target_id": uuid4(),
        "default_role": "member",
        "default_permission": "edit",
        "created_by_id": uuid4(),
    }
    values.update(overrides)
    return InvitationLinkSettings(**values)


async def _insert(uow_factory: UowFactory, link: InvitationLinkSettings) -> None:
    async with uow_factory() as uow:
        await uow.link_settings.create(link)
        await uow.commit()


class TestLinkSettingsRepository:
    @pytest.mark.asyncio
    async def test_round_trip_by_token(self, uow_factory: UowFactory) -> None:
        link = _link(allowed_domains=["acme.com"], max_uses=10)
        await _insert(uow_factory, link)

        async with uow_factory() as uow:
            found = await uow.link_settings.get_by_token(link.link_token)

        assert found is not None
        assert found.id == link.id
        assert found.allowed_domains == ["acme.com"]
        assert found.max_uses == 10
        assert found.use_count == 0

    @pytest.mark.asyncio
    async def test_list_for_target_newest_first(self, uow_factory: UowFactory) -> None:
        target_id = uuid4()
        older = _link(target_id=target_id, created_at=datetime.utcnow() - timedelta(days=1))
        newer = _link(target_id=target_id)
        await _insert(uow_factory, older)
        await _insert(uow_factory, newer)

        async with uow_factory() as uow:
            links = await uow.link_settings.list_for_target("workspace", target_id)

        assert [link.id for link in links] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_update_clears_limits(self, uow_factory: UowFactory) -> None:
        link = _link(max_uses=3, expires_at=datetime.utcnow() + timedelta(days=1))
        await _insert(uow_factory, link)

        link.max_uses = None
        link.expires_at = None
        link.blocked_domains = ["spam.io"]
        async with uow_factory() as uow:
            updated = await uow.link_settings.update(link)
            await uow.commit()

        assert updated.max_uses is None
        assert updated.expires_at is None
        assert updated.blocked_domains == ["spam.io"]

    @pytest.mark.asyncio
    async def test_consume_use_stops_at_ceiling(self, uow_factory: UowFactory) -> None:
        link = _link(max_uses=2)
        await _insert(uow_factory, link)
        now = datetime.utcnow()

        async with uow_factory() as uow:
            results = [await uow.link_settings.consume_use(link.id, now) for _ in range(3)]
            await uow.commit()
            stored = await uow.link_settings.get_by_id(link.id)

        assert results == [True, True, False]
        assert stored is not None
        assert stored.use_count == 2

    @pytest.mark.asyncio
    async def test_consume_use_refuses_inactive_and_expired(
        self, uow_factory: UowFactory
    ) -> None:
        inactive = _link(is_active=False)
        expired = _link(expires_at=datetime.utcnow() - timedelta(minutes=1))
        await _insert(uow_factory, inactive)
        await _insert(uow_factory, expired)

        async with uow_factory() as uow:
            assert not await uow.link_settings.consume_use(inactive.id, datetime.utcnow())
            assert not await uow.link_settings.consume_use(expired.id, datetime.utcnow())

    @pytest.mark.asyncio
    async def test_set_active_and_delete(self, uow_factory: UowFactory) -> None:
        link = _link()
        await _insert(uow_factory, link)

        async with uow_factory() as uow:
            assert await uow.link_settings.set_active(link.id, False)
            await uow.commit()
            stored = await uow.link_settings.get_by_id(link.id)
            assert stored is not None
            assert not stored.is_active

            assert await uow.link_settings.delete(link.id)
            assert not await uow.link_settings.delete(link.id)
            await uow.commit()

    @pytest.mark.asyncio
    async def test_unknown_link(self, uow_factory: UowFactory) -> None:
        async with uow_factory() as uow:
            assert not await uow.link_settings.set_active(uuid4(), True)
            assert await uow.link_settings.get_by_token("missing") is None


# --- Concurrency ---


@pytest.fixture
async def file_session_factory(tmp_path: Path):
    """Session factory on a file database so each session gets its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'links.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


class TestConcurrentConsume:
    @pytest.mark.asyncio
    async def test_last_use_goes_to_one_caller(
        self, file_session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        link = _link(max_uses=1)
        async with SQLAlchemyUnitOfWork(file_session_factory) as uow:
            await uow.link_settings.create(link)
            await uow.commit()

        async def consume() -> bool:
            async with SQLAlchemyUnitOfWork(file_session_factory) as uow:
                won = await uow.link_settings.consume_use(link.id, datetime.utcnow())
                await uow.commit()
                return won

        results = await asyncio.gather(consume(), consume())

        assert sorted(results) == [False, True]
        async with SQLAlchemyUnitOfWork(file_session_factory) as uow:
            stored = await uow.link_settings.get_by_id(link.id)
        assert stored is not None
        assert stored.use_count == 1
