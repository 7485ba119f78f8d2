"""
SLA Infrastructure Repositories
=================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
entities from the database.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.config import SLAState
from helpdesk.core import RepositoryException
from helpdesk.sla.application.services import ISLAStatusRepository
from helpdesk.sla.domain import SLAStatus
from helpdesk.sla.infrastructure.models import SLAStatusModel


def _to_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _to_domain(model: SLAStatusModel) -> SLAStatus:
    return SLAStatus(
        id=str(model.id),
        ticket_id=str(model.ticket_id),
        organization_id=str(model.organization_id),
        started_at=model.started_at,
        first_response_due=model.first_response_due,
        first_response_at=model.first_response_at,
        first_response_breached=model.first_response_breached,
        resolution_due=model.resolution_due,
        resolved_at=model.resolved_at,
        resolution_breached=model.resolution_breached,
        current_status=SLAState(model.current_status),
    )


class SQLAlchemySLAStatusRepository(ISLAStatusRepository):
    """
    SQLAlchemy implementation of the SLA status repository.

    Writes are flushed, not committed; the unit of work owns the commit.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(
        self,
        organization_id: str,
        ticket_id: str,
        for_update: bool = False
    ) -> Optional[SLAStatusModel]:
        org_uuid = _to_uuid(organization_id)
        ticket_uuid = _to_uuid(ticket_id)
        if org_uuid is None or ticket_uuid is None:
            return None

        stmt = select(SLAStatusModel).where(
            SLAStatusModel.ticket_id == ticket_uuid,
            SLAStatusModel.organization_id == org_uuid,
        )
        if for_update:
            # Refresh an identity-mapped row with what the lock read
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_ticket(
        self,
        organization_id: str,
        ticket_id: str,
        for_update: bool = False
    ) -> Optional[SLAStatus]:
        model = await self._get_model(organization_id, ticket_id, for_update)
        return _to_domain(model) if model else None

    async def add(self, status: SLAStatus) -> SLAStatus:
        model = SLAStatusModel(
            ticket_id=UUID(status.ticket_id),
            organization_id=UUID(status.organization_id),
            started_at=status.started_at,
            first_response_due=status.first_response_due,
            first_response_at=status.first_response_at,
            first_response_breached=status.first_response_breached,
            resolution_due=status.resolution_due,
            resolved_at=status.resolved_at,
            resolution_breached=status.resolution_breached,
            current_status=status.current_status.value,
            created_at=status.started_at,
            updated_at=status.started_at,
        )

        self._session.add(model)
        await self._session.flush()

        status.id = str(model.id)
        return status

    async def save(self, status: SLAStatus) -> SLAStatus:
        model = await self._get_model(status.organization_id, status.ticket_id)
        if not model:
            raise RepositoryException(f"SLA status for ticket {status.ticket_id} not found")

        # Stamps are set once
        if model.first_response_at is None:
            model.first_response_at = status.first_response_at
        if model.resolved_at is None:
            model.resolved_at = status.resolved_at
        model.first_response_breached = status.first_response_breached
        model.resolution_breached = status.resolution_breached
        model.current_status = status.current_status.value
        model.updated_at = datetime.now(timezone.utc)

        await self._session.flush()
        return status

    async def save_projection(self, status: SLAStatus) -> SLAStatus:
        org_uuid = _to_uuid(status.organization_id)
        ticket_uuid = _to_uuid(status.ticket_id)
        if org_uuid is None or ticket_uuid is None:
            raise RepositoryException(f"SLA status for ticket {status.ticket_id} not found")

        stmt = (
            update(SLAStatusModel)
            .where(
                SLAStatusModel.ticket_id == ticket_uuid,
                SLAStatusModel.organization_id == org_uuid,
            )
            .values(
                current_status=status.current_status.value,
                first_response_breached=status.first_response_breached,
                resolution_breached=status.resolution_breached,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise RepositoryException(f"SLA status for ticket {status.ticket_id} not found")
        return status

    async def list_for_organization(self, organization_id: str) -> List[SLAStatus]:
        org_uuid = _to_uuid(organization_id)
        if org_uuid is None:
            return []

        stmt = (
            select(SLAStatusModel)
            .where(SLAStatusModel.organization_id == org_uuid)
            .order_by(SLAStatusModel.started_at.desc())
        )
        result = await self._session.execute(stmt)
        return [_to_domain(m) for m in result.scalars().all()]

    async def list_open(self, limit: int = 1000, offset: int = 0) -> List[SLAStatus]:
        stmt = (
            select(SLAStatusModel)
            .where(or_(
                SLAStatusModel.first_response_at.is_(None),
                SLAStatusModel.resolved_at.is_(None),
            ))
            .order_by(SLAStatusModel.id)
            .limit(limit)
            .offset(offset)
        )
        result = await self._session.execute(stmt)
        return [_to_domain(m) for m in result.scalars().all()]
