"""Acceptance statistics over invitation populations."""

from collections.abc import Callable, Iterable
from uuid import UUID

from domain.entities.invitation import (
    Invitation,
    InvitationStats,
    InvitationStatus,
    InvitationTally,
)
from domain.repositories.unit_of_work import IUnitOfWork

_SECONDS_PER_HOUR = 3600.0

_COUNTERS = {
    InvitationStatus.PENDING: "pending_count",
    InvitationStatus.ACCEPTED: "accepted_count",
    InvitationStatus.DECLINED: "declined_count",
    InvitationStatus.EXPIRED: "expired_count",
    InvitationStatus.CANCELLED: "cancelled_count",
    InvitationStatus.REVOKED: "revoked_count",
}


def stats_from_tally(tally: InvitationTally) -> InvitationStats:
    """Turn per-status counts into stats.

    The acceptance rate is accepted / (accepted + declined) as a percentage
    and is 0 when neither has happened. Mean time-to-accept is 0 when no
    accepted invitation carries an acceptance time.
    """
    stats = InvitationStats()
    for status, count in tally.counts.items():
        attr = _COUNTERS[InvitationStatus(status)]
        setattr(stats, attr, count)
        stats.total_invitations += count

    resolved = stats.accepted_count + stats.declined_count
    if resolved > 0:
        stats.acceptance_rate = stats.accepted_count / resolved * 100
    if tally.avg_time_to_accept_hrs is not None:
        stats.avg_time_to_accept_hrs = tally.avg_time_to_accept_hrs
    return stats


def compute_invitation_stats(invitations: Iterable[Invitation]) -> InvitationStats:
    """Derive counts, acceptance rate and mean time-to-accept in memory."""
    tally = InvitationTally()
    accept_hours: list[float] = []

    for invitation in invitations:
        status = InvitationStatus(invitation.status).value
        tally.counts[status] = tally.counts.get(status, 0) + 1
        if invitation.status == InvitationStatus.ACCEPTED and invitation.accepted_at:
            elapsed = invitation.accepted_at - invitation.created_at
            accept_hours.append(elapsed.total_seconds() / _SECONDS_PER_HOUR)

    if accept_hours:
        tally.avg_time_to_accept_hrs = sum(accept_hours) / len(accept_hours)
    return stats_from_tally(tally)


class InvitationStatsService:
    """Aggregates invitation stats in storage, one grouped query per call."""

    def __init__(self, uow_factory: Callable[[], IUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    async def get_workspace_stats(self, workspace_id: UUID) -> InvitationStats:
        async with self._uow_factory() as uow:
            tally = await uow.invitations.tally_by_status(workspace_id=workspace_id)
        return stats_from_tally(tally)

    async def get_target_stats(self, type: str, target_id: UUID) -> InvitationStats:
        async with self._uow_factory() as uow:
            tally = await uow.invitations.tally_by_status(type=type, target_id=target_id)
        return stats_from_tally(tally)
