"""SQLAlchemy implementation of the access request repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.access_request import AccessRequest, AccessRequestStatus
from infrastructure.database.models import AccessRequestModel


class SQLAlchemyAccessRequestRepository:
    """SQLAlchemy implementation of IAccessRequestRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, request: AccessRequest) -> AccessRequest:
        """Create an access request."""
        model = AccessRequestModel(
            id=request.id,
            workspace_id=request.workspace_id,
            requester_id=request.requester_id,
            email=request.email,
            type=str(request.type),
            target_id=request.target_id,
            message=request.message,
            status=request.status.value,
            processed_by=request.processed_by,
            processed_at=request.processed_at,
            denial_reason=request.denial_reason,
            created_at=request.created_at,
            updated_at=request.updated_at,
        )
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def get_by_id(self, id: UUID) -> AccessRequest | None:
        """Get an access request by primary key."""
        stmt = (
            select(AccessRequestModel)
            .where(AccessRequestModel.id == id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_pending_for_requester(
        self, requester_id: UUID, type: str, target_id: UUID
    ) -> AccessRequest | None:
        """Get a requester's pending request on a scope."""
        stmt = (
            select(AccessRequestModel)
            .where(
                AccessRequestModel.requester_id == requester_id,
                AccessRequestModel.type == type,
                AccessRequestModel.target_id == target_id,
                AccessRequestModel.status == AccessRequestStatus.PENDING.value,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_for_target(
        self,
        type: str,
        target_id: UUID,
        status: AccessRequestStatus | None = None,
    ) -> list[AccessRequest]:
        """List requests on a scope, newest first."""
        stmt = select(AccessRequestModel).where(
            AccessRequestModel.type == type,
            AccessRequestModel.target_id == target_id,
        )
        if status is not None:
            stmt = stmt.where(AccessRequestModel.status == status.value)
        stmt = stmt.order_by(AccessRequestModel.created_at.desc())

        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars()]

    async def list_for_requester(self, requester_id: UUID) -> list[AccessRequest]:
        """List a requester's requests, newest first."""
        stmt = (
            select(AccessRequestModel)
            .where(AccessRequestModel.requester_id == requester_id)
            .order_by(AccessRequestModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars()]

    async def update_status(
        self,
        id: UUID,
        status: AccessRequestStatus,
        processed_by: UUID,
        denial_reason: str | None = None,
    ) -> bool:
        """Resolve a pending request. Returns False if it was no longer pending."""
        now = datetime.utcnow()
        stmt = (
            update(AccessRequestModel)
            .where(
                AccessRequestModel.id == id,
                AccessRequestModel.status == AccessRequestStatus.PENDING.value,
            )
            .values(
                status=status.value,
                processed_by=processed_by,
                processed_at=now,
                denial_reason=denial_reason,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount == 1  # type: ignore[attr-defined, no-any-return]

    @staticmethod
    def _to_entity(model: AccessRequestModel) -> AccessRequest:
        """Convert ORM model to domain entity."""
        return AccessRequest(
            id=model.id,
            workspace_id=model.workspace_id,
            requester_id=model.requester_id,
            email=model.email,
            type=model.type,
            target_id=model.target_id,
            message=model.message,
            status=AccessRequestStatus(model.status),
            processed_by=model.processed_by,
            processed_at=model.processed_at,
            denial_reason=model.denial_reason,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
