"""SQLAlchemy implementation of the bulk invitation result repository."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.bulk_result import BulkInvitationResult, BulkStatus
from infrastructure.database.models import BulkInvitationResultModel


class SQLAlchemyBulkResultRepository:
    """SQLAlchemy implementation of IBulkResultRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, result: BulkInvitationResult) -> BulkInvitationResult:
        """Record the start of a bulk run."""
        model = BulkInvitationResultModel(
            id=result.id,
            workspace_id=result.workspace_id,
            invited_by_id=result.invited_by_id,
            type=str(result.type),
            target_id=result.target_id,
            role=str(result.role),
            total_count=result.total_count,
            success_count=result.success_count,
            failed_count=result.failed_count,
            skipped_count=result.skipped_count,
            status=result.status.value,
            failed_emails=list(result.failed_emails),
            created_at=result.created_at,
            completed_at=result.completed_at,
        )
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def get_by_id(self, id: UUID) -> BulkInvitationResult | None:
        """Get a bulk result by primary key."""
        stmt = select(BulkInvitationResultModel).where(BulkInvitationResultModel.id == id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def update(self, result: BulkInvitationResult) -> BulkInvitationResult:
        """Persist final counts and status."""
        stmt = select(BulkInvitationResultModel).where(BulkInvitationResultModel.id == result.id)
        model = (await self._session.execute(stmt)).scalar_one_or_none()

        if not model:
            raise ValueError(f"Bulk result {result.id} not found")

        model.success_count = result.success_count
        model.failed_count = result.failed_count
        model.skipped_count = result.skipped_count
        model.status = result.status.value
        model.failed_emails = list(result.failed_emails)
        model.completed_at = result.completed_at

        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: BulkInvitationResultModel) -> BulkInvitationResult:
        """Convert ORM model to domain entity."""
        return BulkInvitationResult(
            id=model.id,
            workspace_id=model.workspace_id,
            invited_by_id=model.invited_by_id,
            type=model.type,
            target_id=model.target_id,
            role=model.role,
            total_count=model.total_count,
            success_count=model.success_count,
            failed_count=model.failed_count,
            skipped_count=model.skipped_count,
            status=BulkStatus(model.status),
            failed_emails=list(model.failed_emails or []),
            created_at=model.created_at,
            completed_at=model.completed_at,
        )
