"""
Ticket Infrastructure Repositories
===================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
entities from the database. Writes are flushed, not committed; the unit
of work owns the transaction.
"""

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.config import Priority, TicketCategory, TicketStatus
from helpdesk.core import ConflictException, IUnitOfWork, RepositoryException
from helpdesk.tickets.application.dto import TicketFilterDTO
from helpdesk.tickets.application.services import (
    IAttachmentRepository,
    ICommentRepository,
    ITicketNumberAllocator,
    ITicketRepository,
    IUserDirectory,
    UserContact,
)
from helpdesk.tickets.domain import Ticket, TicketAttachment, TicketComment
from helpdesk.tickets.infrastructure.models import (
    TicketAttachmentModel,
    TicketCommentModel,
    TicketModel,
    TicketNumberCounterModel,
    TicketTagModel,
    UserModel,
)


def _to_uuid(value: Optional[str]) -> Optional[UUID]:
    if value is None:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _str(value: Optional[UUID]) -> Optional[str]:
    return str(value) if value is not None else None


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _ticket_to_domain(model: TicketModel) -> Ticket:
    return Ticket.from_persistence(
        id=str(model.id),
        organization_id=str(model.organization_id),
        ticket_number=model.ticket_number,
        subject=model.subject,
        description=model.description,
        status=TicketStatus(model.status),
        priority=Priority(model.priority),
        category=TicketCategory(model.category) if model.category else None,
        assigned_to=_str(model.assigned_to),
        created_by=str(model.created_by),
        requester_name=model.requester_name,
        requester_email=model.requester_email,
        created_at=model.created_at,
        updated_at=model.updated_at,
        resolved_at=model.resolved_at,
        closed_at=model.closed_at,
    )


def _comment_to_domain(model: TicketCommentModel) -> TicketComment:
    return TicketComment.from_persistence(
        id=str(model.id),
        ticket_id=str(model.ticket_id),
        organization_id=str(model.organization_id),
        user_id=str(model.user_id),
        content=model.content,
        is_internal=model.is_internal,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _attachment_to_domain(model: TicketAttachmentModel) -> TicketAttachment:
    return TicketAttachment(
        id=str(model.id),
        ticket_id=str(model.ticket_id),
        comment_id=_str(model.comment_id),
        file_name=model.file_name,
        file_key=model.file_key,
        file_size=model.file_size,
        mime_type=model.mime_type,
        uploaded_by=str(model.uploaded_by),
        created_at=model.created_at,
    )


class SQLAlchemyTicketRepository(ITicketRepository):
    """SQLAlchemy implementation of ticket repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(
        self,
        organization_id: str,
        ticket_id: str,
        for_update: bool = False
    ) -> Optional[TicketModel]:
        org_uuid = _to_uuid(organization_id)
        ticket_uuid = _to_uuid(ticket_id)
        if org_uuid is None or ticket_uuid is None:
            return None

        stmt = select(TicketModel).where(
            TicketModel.id == ticket_uuid,
            TicketModel.organization_id == org_uuid,
        )
        if for_update:
            stmt = stmt.with_for_update()

        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(
        self,
        organization_id: str,
        ticket_id: str,
        for_update: bool = False
    ) -> Optional[Ticket]:
        model = await self._get_model(organization_id, ticket_id, for_update)
        return _ticket_to_domain(model) if model else None

    async def add(self, ticket: Ticket) -> Ticket:
        model = TicketModel(
            organization_id=UUID(ticket.organization_id),
            ticket_number=ticket.ticket_number,
            subject=ticket.subject,
            description=ticket.description,
            status=ticket.status.value,
            priority=ticket.priority.value,
            category=ticket.category.value if ticket.category else None,
            assigned_to=_to_uuid(ticket.assigned_to),
            created_by=UUID(ticket.created_by),
            requester_name=ticket.requester_name,
            requester_email=ticket.requester_email,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
        )

        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConflictException(
                f"Ticket number {ticket.ticket_number} already exists",
                {"organization_id": ticket.organization_id}
            ) from e

        ticket.id = str(model.id)
        return ticket

    async def save(self, ticket: Ticket) -> Ticket:
        model = await self._get_model(ticket.organization_id, ticket.id)
        if not model:
            raise RepositoryException(f"Ticket {ticket.id} not found")

        # ticket_number and organization_id are immutable
        model.subject = ticket.subject
        model.description = ticket.description
        model.status = ticket.status.value
        model.priority = ticket.priority.value
        model.category = ticket.category.value if ticket.category else None
        model.assigned_to = _to_uuid(ticket.assigned_to)
        model.updated_at = ticket.updated_at
        model.resolved_at = ticket.resolved_at
        model.closed_at = ticket.closed_at

        await self._session.flush()
        return ticket

    async def list(
        self,
        organization_id: str,
        filters: TicketFilterDTO
    ) -> Tuple[List[Ticket], int]:
        org_uuid = _to_uuid(organization_id)
        if org_uuid is None:
            return [], 0

        conditions = [TicketModel.organization_id == org_uuid]
        if filters.status:
            conditions.append(TicketModel.status == filters.status)
        if filters.priority:
            conditions.append(TicketModel.priority == filters.priority)
        if filters.category:
            conditions.append(TicketModel.category == filters.category)
        if filters.assigned_to:
            conditions.append(TicketModel.assigned_to == filters.assigned_to)
        if filters.search:
            conditions.append(
                TicketModel.subject.ilike(f"%{_escape_like(filters.search)}%", escape="\\")
            )

        stmt = (
            select(TicketModel)
            .where(*conditions)
            .order_by(TicketModel.created_at.desc(), TicketModel.id.desc())
            .limit(filters.limit)
            .offset(filters.offset)
        )
        result = await self._session.execute(stmt)
        tickets = [_ticket_to_domain(m) for m in result.scalars().all()]

        count_stmt = select(func.count()).select_from(TicketModel).where(*conditions)
        total = (await self._session.execute(count_stmt)).scalar_one()

        return tickets, total

    async def list_tags(self, ticket_id: str) -> List[str]:
        ticket_uuid = _to_uuid(ticket_id)
        if ticket_uuid is None:
            return []

        stmt = (
            select(TicketTagModel.tag)
            .where(TicketTagModel.ticket_id == ticket_uuid)
            .order_by(TicketTagModel.position)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def replace_tags(self, ticket_id: str, tags: List[str]) -> None:
        ticket_uuid = UUID(ticket_id)
        await self._session.execute(
            delete(TicketTagModel).where(TicketTagModel.ticket_id == ticket_uuid)
        )
        self._session.add_all([
            TicketTagModel(ticket_id=ticket_uuid, tag=tag, position=i)
            for i, tag in enumerate(tags)
        ])
        await self._session.flush()


class SQLAlchemyTicketNumberAllocator(ITicketNumberAllocator):
    """
    Per-organization counter row, locked for the rest of the transaction.

    A missing counter starts from the organization's current ticket count,
    so numbering continues from existing data.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def next_number(self, organization_id: str) -> int:
        org_uuid = UUID(organization_id)

        stmt = (
            select(TicketNumberCounterModel)
            .where(TicketNumberCounterModel.organization_id == org_uuid)
            .with_for_update()
        )
        counter = (await self._session.execute(stmt)).scalar_one_or_none()

        if counter is None:
            count_stmt = (
                select(func.count())
                .select_from(TicketModel)
                .where(TicketModel.organization_id == org_uuid)
            )
            existing = (await self._session.execute(count_stmt)).scalar_one()
            counter = TicketNumberCounterModel(organization_id=org_uuid, last_value=existing)
            self._session.add(counter)

        counter.last_value += 1
        try:
            await self._session.flush()
        except IntegrityError as e:
            # Another request seeded the counter first
            raise ConflictException(
                "Concurrent ticket creation, retry the request",
                {"organization_id": organization_id}
            ) from e

        return counter.last_value


class SQLAlchemyCommentRepository(ICommentRepository):
    """SQLAlchemy implementation of comment repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(self, comment: TicketComment) -> TicketComment:
        model = TicketCommentModel(
            ticket_id=UUID(comment.ticket_id),
            organization_id=UUID(comment.organization_id),
            user_id=UUID(comment.user_id),
            content=comment.content,
            is_internal=comment.is_internal,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )
        self._session.add(model)
        await self._session.flush()

        comment.id = str(model.id)
        return comment

    async def list_for_ticket(self, organization_id: str, ticket_id: str) -> List[TicketComment]:
        org_uuid = _to_uuid(organization_id)
        ticket_uuid = _to_uuid(ticket_id)
        if org_uuid is None or ticket_uuid is None:
            return []

        stmt = (
            select(TicketCommentModel)
            .where(
                TicketCommentModel.ticket_id == ticket_uuid,
                TicketCommentModel.organization_id == org_uuid,
            )
            .order_by(TicketCommentModel.created_at, TicketCommentModel.id)
        )
        result = await self._session.execute(stmt)
        return [_comment_to_domain(m) for m in result.scalars().all()]


class SQLAlchemyAttachmentRepository(IAttachmentRepository):
    """
    Attachment metadata, scoped through the owning ticket.

    Uploads are recorded by the storage service; this side only reads.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_for_ticket(self, organization_id: str, ticket_id: str) -> List[TicketAttachment]:
        org_uuid = _to_uuid(organization_id)
        ticket_uuid = _to_uuid(ticket_id)
        if org_uuid is None or ticket_uuid is None:
            return []

        stmt = (
            select(TicketAttachmentModel)
            .join(TicketModel, TicketModel.id == TicketAttachmentModel.ticket_id)
            .where(
                TicketAttachmentModel.ticket_id == ticket_uuid,
                TicketModel.organization_id == org_uuid,
            )
            .order_by(TicketAttachmentModel.created_at)
        )
        result = await self._session.execute(stmt)
        return [_attachment_to_domain(m) for m in result.scalars().all()]


class SQLAlchemyUserDirectory(IUserDirectory):
    """User contact lookup against the shared users table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_contact(self, user_id: str) -> Optional[UserContact]:
        user_uuid = _to_uuid(user_id)
        if user_uuid is None:
            return None

        model = await self._session.get(UserModel, user_uuid)
        if model is None:
            return None
        return UserContact(user_id=str(model.id), email=model.email, name=model.name)


class SQLAlchemyUnitOfWork(IUnitOfWork):
    """Transaction boundary over one AsyncSession."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()
