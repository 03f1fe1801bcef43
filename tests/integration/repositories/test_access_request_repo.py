"""Integration tests for SQLAlchemyAccessRequestRepository against SQLite."""

from collections.abc import Callable
from uuid import uuid4

import pytest

from domain.entities.access_request import AccessRequest, AccessRequestStatus
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork

UowFactory = Callable[[], SQLAlchemyUnitOfWork]


def _request(**overrides: object) -> AccessRequest:
    values: dict[str, object] = {
        "workspace_id": uuid4(),
        "requester_id": uuid4(),
        "email": "requester@example.com",
        "type": "project",
        "target_id": uuid4(),
    }
    values.update(overrides)
    return AccessRequest(**values)  # type: ignore[arg-type]


class TestAccessRequestRepository:
    @pytest.mark.asyncio
    async def test_pending_lookup_for_requester(self, uow_factory: UowFactory) -> None:
        request = _request(message="please")
        async with uow_factory() as uow:
            await uow.access_requests.create(request)
            await uow.commit()

        async with uow_factory() as uow:
            found = await uow.access_requests.get_pending_for_requester(
                request.requester_id, "project", request.target_id
            )
            other_scope = await uow.access_requests.get_pending_for_requester(
                request.requester_id, "project", uuid4()
            )

        assert found is not None
        assert found.message == "please"
        assert other_scope is None

    @pytest.mark.asyncio
    async def test_update_status_only_from_pending(self, uow_factory: UowFactory) -> None:
        request = _request()
        approver = uuid4()
        async with uow_factory() as uow:
            await uow.access_requests.create(request)
            await uow.commit()

        async with uow_factory() as uow:
            assert await uow.access_requests.update_status(
                request.id, AccessRequestStatus.DENIED, processed_by=approver, denial_reason="no"
            )
            assert not await uow.access_requests.update_status(
                request.id, AccessRequestStatus.APPROVED, processed_by=approver
            )
            await uow.commit()
            stored = await uow.access_requests.get_by_id(request.id)

        assert stored is not None
        assert stored.status == AccessRequestStatus.DENIED
        assert stored.processed_by == approver
        assert stored.processed_at is not None
        assert stored.denial_reason == "no"

    @pytest.mark.asyncio
    async def test_list_for_target_filters_status(self, uow_factory: UowFactory) -> None:
        target_id = uuid4()
        pending = _request(target_id=target_id)
        approved = _request(target_id=target_id, status=AccessRequestStatus.APPROVED)
        async with uow_factory() as uow:
            await uow.access_requests.create(pending)
            await uow.access_requests.create(approved)
            await uow.commit()

        async with uow_factory() as uow:
            everything = await uow.access_requests.list_for_target("project", target_id)
            only_pending = await uow.access_requests.list_for_target(
                "project", target_id, status=AccessRequestStatus.PENDING
            )
            mine = await uow.access_requests.list_for_requester(pending.requester_id)

        assert {r.id for r in everything} == {pending.id, approved.id}
        assert [r.id for r in only_pending] == [pending.id]
        assert [r.id for r in mine] == [pending.id]
