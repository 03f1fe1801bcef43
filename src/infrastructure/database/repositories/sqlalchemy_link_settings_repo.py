"""SQLAlchemy implementation of the invitation link settings repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.link_settings import InvitationLinkSettings
from infrastructure.database.models import InvitationLinkSettingsModel


class SQLAlchemyLinkSettingsRepository:
    """SQLAlchemy implementation of ILinkSettingsRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, settings: InvitationLinkSettings) -> InvitationLinkSettings:
        """Create link settings."""
        model = InvitationLinkSettingsModel(
            id=settings.id,
            workspace_id=settings.workspace_id,
            link_token=settings.link_token,
            type=str(settings.type),
            target_id=settings.target_id,
            default_role=str(settings.default_role),
            default_permission=str(settings.default_permission),
            is_active=settings.is_active,
            requires_approval=settings.requires_approval,
            allowed_domains=list(settings.allowed_domains),
            blocked_domains=list(settings.blocked_domains),
            max_uses=settings.max_uses,
            use_count=settings.use_count,
            expires_at=settings.expires_at,
            created_by_id=settings.created_by_id,
            created_at=settings.created_at,
            updated_at=settings.updated_at,
        )
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def get_by_id(self, id: UUID) -> InvitationLinkSettings | None:
        """Get link settings by primary key."""
        stmt = (
            select(InvitationLinkSettingsModel)
            .where(InvitationLinkSettingsModel.id == id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_token(self, link_token: str) -> InvitationLinkSettings | None:
        """Get link settings by their public token."""
        stmt = (
            select(InvitationLinkSettingsModel)
            .where(InvitationLinkSettingsModel.link_token == link_token)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_for_target(self, type: str, target_id: UUID) -> list[InvitationLinkSettings]:
        """List link settings for a scope, newest first."""
        stmt = (
            select(InvitationLinkSettingsModel)
            .where(
                InvitationLinkSettingsModel.type == type,
                InvitationLinkSettingsModel.target_id == target_id,
            )
            .order_by(InvitationLinkSettingsModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars()]

    async def update(self, settings: InvitationLinkSettings) -> InvitationLinkSettings:
        """Persist changes to the mutable policy fields."""
        stmt = select(InvitationLinkSettingsModel).where(
            InvitationLinkSettingsModel.id == settings.id
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if not model:
            raise ValueError(f"Link settings {settings.id} not found")

        model.default_role = str(settings.default_role)
        model.default_permission = str(settings.default_permission)
        model.requires_approval = settings.requires_approval
        model.allowed_domains = list(settings.allowed_domains)
        model.blocked_domains = list(settings.blocked_domains)
        model.max_uses = settings.max_uses
        model.expires_at = settings.expires_at
        model.updated_at = datetime.utcnow()

        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def set_active(self, id: UUID, is_active: bool) -> bool:
        """Activate or deactivate a link."""
        stmt = (
            update(InvitationLinkSettingsModel)
            .where(InvitationLinkSettingsModel.id == id)
            .values(is_active=is_active, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount == 1  # type: ignore[attr-defined, no-any-return]

    async def consume_use(self, id: UUID, now: datetime) -> bool:
        """Atomically count one use if the link is still usable at ``now``.

        The usability checks live in the UPDATE's WHERE clause, so two racing
        joins against the last remaining use cannot both succeed.
        """
        model = InvitationLinkSettingsModel
        stmt = (
            update(model)
            .where(
                model.id == id,
                model.is_active.is_(True),
                or_(model.max_uses.is_(None), model.use_count < model.max_uses),
                or_(model.expires_at.is_(None), model.expires_at > now),
            )
            .values(use_count=model.use_count + 1, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount == 1  # type: ignore[attr-defined, no-any-return]

    async def delete(self, id: UUID) -> bool:
        """Delete link settings."""
        stmt = (
            delete(InvitationLinkSettingsModel)
            .where(InvitationLinkSettingsModel.id == id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount == 1  # type: ignore[attr-defined, no-any-return]

    @staticmethod
    def _to_entity(model: InvitationLinkSettingsModel) -> InvitationLinkSettings:
        """Convert ORM model to domain entity."""
        return InvitationLinkSettings(
            id=model.id,
            workspace_id=model.workspace_id,
            link_token=model.link_token,
            type=model.type,
            target_id=model.target_id,
            default_role=model.default_role,
            default_permission=model.default_permission,
            is_active=model.is_active,
            requires_approval=model.requires_approval,
            allowed_domains=list(model.allowed_domains or []),
            blocked_domains=list(model.blocked_domains or []),
            max_uses=model.max_uses,
            use_count=model.use_count,
            expires_at=model.expires_at,
            created_by_id=model.created_by_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
