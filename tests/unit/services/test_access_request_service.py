"""Unit tests for AccessRequestService."""

from dataclasses import replace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from core.exceptions import (
    AccessRequestAlreadyProcessedError,
    AccessRequestNotFoundError,
    DuplicateAccessRequestError,
    InsufficientPermissionsError,
    InvalidEmailError,
)
from domain.entities.access_request import AccessRequest, AccessRequestStatus
from domain.entities.activity import ActorContext
from domain.entities.notification import EventActions
from domain.services.access_request_service import AccessRequestService
from domain.services.notification_service import NotificationService
from tests.unit.conftest import FakeUnitOfWork, echo


def _request(**overrides: object) -> AccessRequest:
    request = AccessRequest(
        workspace_id=uuid4(),
        requester_id=uuid4(),
        email="requester@example.com",
        type="project",
        target_id=uuid4(),
    )
    return replace(request, **overrides)


@pytest.fixture
def notifications() -> AsyncMock:
    return AsyncMock(spec=NotificationService)


@pytest.fixture
def service(uow: FakeUnitOfWork, notifications: AsyncMock) -> AccessRequestService:
    return AccessRequestService(lambda: uow, notification_service=notifications)


class TestCreateAccessRequest:
    @pytest.mark.asyncio
    async def test_creates_pending_request(
        self,
        service: AccessRequestService,
        uow: FakeUnitOfWork,
        notifications: AsyncMock,
        actor: ActorContext,
    ) -> None:
        uow.access_requests.get_pending_for_requester.return_value = None
        uow.access_requests.create.side_effect = echo
        target_id = uuid4()

        request = await service.create_access_request(
            actor, " Me@Example.com ", uuid4(), "project", target_id, message="let me in"
        )

        assert request.status == AccessRequestStatus.PENDING
        assert request.requester_id == actor.actor_id
        assert request.email == "me@example.com"
        assert request.message == "let me in"
        uow.access_requests.get_pending_for_requester.assert_awaited_once_with(
            actor.actor_id, "project", target_id
        )
        assert uow.committed
        event = notifications.publish.await_args.args[0]
        assert event.action == EventActions.ACCESS_REQUESTED

    @pytest.mark.asyncio
    async def test_duplicate_pending_request_rejected(
        self, service: AccessRequestService, uow: FakeUnitOfWork, actor: ActorContext
    ) -> None:
        uow.access_requests.get_pending_for_requester.return_value = _request()
        target_id = uuid4()

        with pytest.raises(DuplicateAccessRequestError) as exc_info:
            await service.create_access_request(
                actor, "me@example.com", uuid4(), "project", target_id
            )

        assert exc_info.value.status_code == 409
        assert exc_info.value.details == {"target_id": str(target_id)}
        uow.access_requests.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_email_rejected(
        self, service: AccessRequestService, uow: FakeUnitOfWork, actor: ActorContext
    ) -> None:
        with pytest.raises(InvalidEmailError):
            await service.create_access_request(actor, "nope", uuid4(), "project", uuid4())
        uow.access_requests.get_pending_for_requester.assert_not_awaited()


class TestProcessAccessRequest:
    @pytest.mark.asyncio
    async def test_approve_records_processor(
        self,
        service: AccessRequestService,
        uow: FakeUnitOfWork,
        notifications: AsyncMock,
        actor: ActorContext,
    ) -> None:
        pending = _request()
        approved = replace(
            pending, status=AccessRequestStatus.APPROVED, processed_by=actor.actor_id
        )
        uow.access_requests.get_by_id.side_effect = [pending, approved]
        uow.access_requests.update_status.return_value = True

        result = await service.approve_access_request(actor, pending.id)

        assert result.status == AccessRequestStatus.APPROVED
        uow.access_requests.update_status.assert_awaited_once_with(
            pending.id,
            AccessRequestStatus.APPROVED,
            processed_by=actor.actor_id,
            denial_reason=None,
        )
        assert uow.committed
        event = notifications.publish.await_args.args[0]
        assert event.action == EventActions.ACCESS_APPROVED

    @pytest.mark.asyncio
    async def test_deny_stores_reason(
        self,
        service: AccessRequestService,
        uow: FakeUnitOfWork,
        notifications: AsyncMock,
        actor: ActorContext,
    ) -> None:
        pending = _request()
        uow.access_requests.get_by_id.side_effect = [
            pending,
            replace(pending, status=AccessRequestStatus.DENIED, denial_reason="not now"),
        ]
        uow.access_requests.update_status.return_value = True

        result = await service.deny_access_request(actor, pending.id, reason="not now")

        assert result.denial_reason == "not now"
        assert uow.access_requests.update_status.await_args.kwargs["denial_reason"] == "not now"
        event = notifications.publish.await_args.args[0]
        assert event.action == EventActions.ACCESS_DENIED

    @pytest.mark.asyncio
    async def test_unknown_request(
        self, service: AccessRequestService, uow: FakeUnitOfWork, actor: ActorContext
    ) -> None:
        uow.access_requests.get_by_id.return_value = None
        request_id = uuid4()

        with pytest.raises(AccessRequestNotFoundError) as exc_info:
            await service.approve_access_request(actor, request_id)

        assert exc_info.value.details == {"access_request_id": str(request_id)}

    @pytest.mark.asyncio
    async def test_already_processed(
        self, service: AccessRequestService, uow: FakeUnitOfWork, actor: ActorContext
    ) -> None:
        uow.access_requests.get_by_id.return_value = _request(
            status=AccessRequestStatus.DENIED
        )

        with pytest.raises(AccessRequestAlreadyProcessedError) as exc_info:
            await service.approve_access_request(actor, uuid4())

        assert exc_info.value.details["status"] == "denied"
        uow.access_requests.update_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lost_race_raises_already_processed(
        self,
        service: AccessRequestService,
        uow: FakeUnitOfWork,
        notifications: AsyncMock,
        actor: ActorContext,
    ) -> None:
        uow.access_requests.get_by_id.return_value = _request()
        uow.access_requests.update_status.return_value = False

        with pytest.raises(AccessRequestAlreadyProcessedError):
            await service.approve_access_request(actor, uuid4())

        assert not uow.committed
        notifications.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_requester_cannot_review_own_request(
        self,
        service: AccessRequestService,
        uow: FakeUnitOfWork,
        notifications: AsyncMock,
        actor: ActorContext,
    ) -> None:
        uow.access_requests.get_by_id.return_value = _request(requester_id=actor.actor_id)

        with pytest.raises(InsufficientPermissionsError):
            await service.approve_access_request(actor, uuid4())
        with pytest.raises(InsufficientPermissionsError):
            await service.deny_access_request(actor, uuid4(), reason="no")

        uow.access_requests.update_status.assert_not_awaited()
        notifications.publish.assert_not_awaited()


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_for_target_passes_status(
        self, service: AccessRequestService, uow: FakeUnitOfWork
    ) -> None:
        uow.access_requests.list_for_target.return_value = []
        target_id = uuid4()

        await service.list_for_target("project", target_id, status=AccessRequestStatus.PENDING)

        uow.access_requests.list_for_target.assert_awaited_once_with(
            "project", target_id, status=AccessRequestStatus.PENDING
        )

    @pytest.mark.asyncio
    async def test_get_missing_request(
        self, service: AccessRequestService, uow: FakeUnitOfWork
    ) -> None:
        uow.access_requests.get_by_id.return_value = None

        with pytest.raises(AccessRequestNotFoundError):
            await service.get_access_request(uuid4())
