"""
Ticket Application Services
============================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: TicketLifecycleService owns ticket state transitions
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from helpdesk.config import Priority, TicketCategory, TicketStatus
from helpdesk.core import (
    InvariantViolationException,
    IUnitOfWork,
    OrganizationContext,
    ResourceNotFoundException,
)
from helpdesk.shared.clock import Clock, utc_now
from helpdesk.shared.infrastructure.cache import ICache
from helpdesk.shared.infrastructure.logging import get_logger, log_latency
from helpdesk.sla.application.services import ISLAPolicyProvider, ISLAStatusRepository
from helpdesk.sla.domain import SLAStatus
from helpdesk.tickets.application.dto import (
    CommentCreateDTO,
    TicketCreateDTO,
    TicketFilterDTO,
    TicketUpdateDTO,
)
from helpdesk.tickets.application.notifications import TicketNotifier
from helpdesk.tickets.domain import (
    Ticket,
    TicketAttachment,
    TicketComment,
    TicketDetail,
    generate_ticket_number,
    validate_description,
    validate_subject,
    validate_tags,
)

logger = get_logger(__name__)


def ticket_cache_key(organization_id: str, ticket_id: str) -> str:
    return f"ticket:{organization_id}:{ticket_id}"


def ticket_list_cache_key(organization_id: str) -> str:
    return f"tickets:list:{organization_id}"


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Interface for ticket data access. Every lookup is organization-scoped."""

    @abstractmethod
    async def get(
        self,
        organization_id: str,
        ticket_id: str,
        for_update: bool = False
    ) -> Optional[Ticket]:
        """Get a ticket of the organization, None if absent or foreign."""

    @abstractmethod
    async def add(self, ticket: Ticket) -> Ticket:
        """Stage a new ticket and assign its id."""

    @abstractmethod
    async def save(self, ticket: Ticket) -> Ticket:
        """Stage changes to an existing ticket."""

    @abstractmethod
    async def list(
        self,
        organization_id: str,
        filters: TicketFilterDTO
    ) -> Tuple[List[Ticket], int]:
        """Page of matching tickets, newest first, and the total match count."""

    @abstractmethod
    async def list_tags(self, ticket_id: str) -> List[str]:
        """Tags of a ticket."""

    @abstractmethod
    async def replace_tags(self, ticket_id: str, tags: List[str]) -> None:
        """Replace every tag of a ticket."""


class ITicketNumberAllocator(ABC):
    """Source of per-organization ticket sequence numbers."""

    @abstractmethod
    async def next_number(self, organization_id: str) -> int:
        """Reserve the next sequence number inside the current transaction."""


class ICommentRepository(ABC):
    """Interface for ticket comment data access."""

    @abstractmethod
    async def add(self, comment: TicketComment) -> TicketComment:
        """Stage a new comment and assign its id."""

    @abstractmethod
    async def list_for_ticket(self, organization_id: str, ticket_id: str) -> List[TicketComment]:
        """Comments of a ticket, oldest first."""


class IAttachmentRepository(ABC):
    """Interface for attachment metadata access."""

    @abstractmethod
    async def list_for_ticket(self, organization_id: str, ticket_id: str) -> List[TicketAttachment]:
        """Attachments of a ticket."""


@dataclass(frozen=True)
class UserContact:
    """Contact details of a user, used for assignment emails."""
    user_id: str
    email: Optional[str]
    name: Optional[str] = None


class IUserDirectory(ABC):
    """Read-only lookup into the user store."""

    @abstractmethod
    async def get_contact(self, user_id: str) -> Optional[UserContact]:
        """Contact details of a user, None if unknown."""


# ========== Application Services ==========

class TicketLifecycleService:
    """
    Orchestrates ticket state transitions together with the SLA record.

    Each mutation commits ticket and SLA changes in one unit of work, then
    invalidates the affected cache keys and sends notifications. Nothing
    after the commit can fail the operation.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        comment_repository: ICommentRepository,
        attachment_repository: IAttachmentRepository,
        sla_repository: ISLAStatusRepository,
        number_allocator: ITicketNumberAllocator,
        unit_of_work: IUnitOfWork,
        user_directory: IUserDirectory,
        notifier: TicketNotifier,
        cache: ICache,
        policy_provider: ISLAPolicyProvider,
        clock: Clock = utc_now,
        cache_ttl_seconds: int = 1800
    ):
        self._tickets = ticket_repository
        self._comments = comment_repository
        self._attachments = attachment_repository
        self._sla = sla_repository
        self._numbers = number_allocator
        self._uow = unit_of_work
        self._users = user_directory
        self._notifier = notifier
        self._cache = cache
        self._policy_provider = policy_provider
        self._clock = clock
        self._cache_ttl = cache_ttl_seconds

    # ---------- Mutations ----------

    async def create_ticket(self, context: OrganizationContext, data: TicketCreateDTO) -> Ticket:
        """
        Create a ticket and its SLA record.

        Raises:
            ValidationException: If subject or description is invalid
        """
        subject = validate_subject(data.subject)
        description = validate_description(data.description)
        now = self._clock()
        org_id = context.organization_id

        try:
            sequence = await self._numbers.next_number(org_id)
            ticket = Ticket(
                organization_id=org_id,
                ticket_number=generate_ticket_number(org_id, sequence),
                subject=subject,
                description=description,
                status=TicketStatus.OPEN,
                priority=Priority(data.priority),
                category=TicketCategory(data.category) if data.category else None,
                assigned_to=str(data.assigned_to) if data.assigned_to else None,
                created_by=context.user_id,
                requester_name=data.requester_name.strip() if data.requester_name else None,
                requester_email=str(data.requester_email) if data.requester_email else None,
                created_at=now,
                updated_at=now,
            )
            ticket = await self._tickets.add(ticket)

            policy = self._policy_provider.get_policy()
            sla = SLAStatus.open(
                ticket_id=ticket.id,
                organization_id=org_id,
                started_at=now,
                due_dates=policy.due_dates_for(now, ticket.priority),
            )
            await self._sla.add(sla)

            await self._uow.commit()
        except Exception:
            await self._uow.rollback()
            raise

        logger.info(
            "Ticket created",
            extra={
                "ticket_id": ticket.id,
                "ticket_number": ticket.ticket_number,
                "organization_id": org_id,
                "priority": ticket.priority.value
            }
        )

        await self._cache.invalidate(ticket_list_cache_key(org_id))
        await self._notifier.ticket_created(ticket)
        return ticket

    async def update_ticket(
        self,
        context: OrganizationContext,
        ticket_id: str,
        data: TicketUpdateDTO
    ) -> Ticket:
        """
        Apply a partial update, including an optional status change.

        Entering resolved stamps the ticket and SLA resolution times the
        first time only. The resolved email goes out on every entry into
        resolved; the updated email on every status change.

        Raises:
            ResourceNotFoundException: If the ticket is not in the organization
            ValidationException: If a field is invalid
        """
        tags = validate_tags(data.tags) if data.tags is not None else None
        now = self._clock()
        org_id = context.organization_id

        try:
            ticket = await self._require_ticket(context, ticket_id, for_update=True)
            ticket.apply_changes(data.field_changes())

            transition = None
            if data.status is not None:
                transition = ticket.apply_status(TicketStatus(data.status), now)
                if transition.entered_resolved:
                    await self._stamp_sla(ticket, now, resolved=True)

            if tags is not None:
                await self._tickets.replace_tags(ticket.id, tags)

            ticket.touch(now)
            await self._tickets.save(ticket)
            await self._uow.commit()
        except Exception:
            await self._uow.rollback()
            raise

        logger.info(
            "Ticket updated",
            extra={
                "ticket_id": ticket.id,
                "organization_id": org_id,
                "status_from": transition.previous.value if transition else None,
                "status_to": transition.current.value if transition else None
            }
        )

        await self._invalidate(org_id, ticket.id)

        if transition is not None:
            if transition.entered_resolved:
                await self._notifier.ticket_resolved(ticket)
            if transition.changed:
                await self._notifier.ticket_updated(ticket)

        return ticket

    async def assign_ticket(
        self,
        context: OrganizationContext,
        ticket_id: str,
        assignee_id: Optional[str]
    ) -> Ticket:
        """
        Set or clear the assignee.

        Raises:
            ResourceNotFoundException: If the ticket is not in the organization
        """
        now = self._clock()
        org_id = context.organization_id

        try:
            ticket = await self._require_ticket(context, ticket_id, for_update=True)
            ticket.apply_changes({"assigned_to": assignee_id})
            ticket.touch(now)
            await self._tickets.save(ticket)
            await self._uow.commit()
        except Exception:
            await self._uow.rollback()
            raise

        logger.info(
            "Ticket assigned",
            extra={"ticket_id": ticket.id, "organization_id": org_id, "assigned_to": assignee_id}
        )

        await self._invalidate(org_id, ticket.id)

        if assignee_id:
            await self._notify_assignee(ticket, assignee_id)

        return ticket

    async def add_comment(
        self,
        context: OrganizationContext,
        ticket_id: str,
        data: CommentCreateDTO
    ) -> TicketComment:
        """
        Add a comment. The first customer-visible comment stops the first
        response clock; later comments and internal notes never touch it.

        Raises:
            ResourceNotFoundException: If the ticket is not in the organization
            ValidationException: If the content is empty or too long
        """
        now = self._clock()
        org_id = context.organization_id

        try:
            ticket = await self._require_ticket(context, ticket_id, for_update=True)
            comment = TicketComment(
                ticket_id=ticket.id,
                organization_id=org_id,
                user_id=context.user_id,
                content=data.content,
                is_internal=data.is_internal,
                created_at=now,
                updated_at=now,
            )
            comment = await self._comments.add(comment)

            ticket.touch(now)
            await self._tickets.save(ticket)

            if comment.counts_as_response:
                await self._stamp_sla(ticket, now, first_response=True)

            await self._uow.commit()
        except Exception:
            await self._uow.rollback()
            raise

        logger.info(
            "Comment added",
            extra={
                "ticket_id": ticket.id,
                "comment_id": comment.id,
                "organization_id": org_id,
                "is_internal": comment.is_internal
            }
        )

        await self._invalidate(org_id, ticket.id)
        return comment

    # ---------- Queries ----------

    async def list_comments(self, context: OrganizationContext, ticket_id: str) -> List[TicketComment]:
        """Comments of a ticket, oldest first."""
        ticket = await self._require_ticket(context, ticket_id)
        return await self._comments.list_for_ticket(context.organization_id, ticket.id)

    async def get_ticket(self, context: OrganizationContext, ticket_id: str) -> TicketDetail:
        """
        Ticket with comments, attachments, tags and SLA record.

        The persisted detail may come from the cache; the SLA status is
        evaluated against the current time after the cache on every call.

        Raises:
            ResourceNotFoundException: If the ticket is not in the organization
            InvariantViolationException: If the ticket has no SLA record
        """
        org_id = context.organization_id

        with log_latency(logger, "get_ticket", ticket_id=ticket_id, organization_id=org_id):
            detail = await self._cache.get_or_populate(
                ticket_cache_key(org_id, ticket_id),
                lambda: self._load_detail(context, ticket_id),
                self._cache_ttl
            )

        return detail.with_sla_evaluated(self._clock(), self._policy_provider.get_policy())

    async def list_tickets(
        self,
        context: OrganizationContext,
        filters: TicketFilterDTO
    ) -> Tuple[List[Ticket], int]:
        """Page of the organization's tickets, newest first, and the total."""
        org_id = context.organization_id
        key = f"{ticket_list_cache_key(org_id)}:{filters.cache_key()}"

        return await self._cache.get_or_populate(
            key,
            lambda: self._tickets.list(org_id, filters),
            self._cache_ttl
        )

    # ---------- Internals ----------

    async def _require_ticket(
        self,
        context: OrganizationContext,
        ticket_id: str,
        for_update: bool = False
    ) -> Ticket:
        ticket = await self._tickets.get(context.organization_id, ticket_id, for_update=for_update)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return ticket

    async def _require_sla(self, ticket: Ticket, for_update: bool = False) -> SLAStatus:
        sla = await self._sla.get_for_ticket(ticket.organization_id, ticket.id, for_update=for_update)
        if sla is None:
            raise InvariantViolationException(
                "SLA status missing for ticket",
                {"ticket_id": ticket.id, "organization_id": ticket.organization_id}
            )
        return sla

    async def _stamp_sla(
        self,
        ticket: Ticket,
        now: datetime,
        first_response: bool = False,
        resolved: bool = False
    ) -> None:
        """Stamp SLA completion times that are still unset and re-derive status."""
        sla = await self._require_sla(ticket, for_update=True)

        stamped = False
        if first_response:
            stamped = sla.mark_first_response(now) or stamped
        if resolved:
            stamped = sla.mark_resolved(now) or stamped

        if stamped:
            await self._sla.save(sla.evaluated(now, self._policy_provider.get_policy()))

    async def _load_detail(self, context: OrganizationContext, ticket_id: str) -> TicketDetail:
        ticket = await self._require_ticket(context, ticket_id)
        org_id = context.organization_id

        return TicketDetail(
            ticket=ticket,
            comments=await self._comments.list_for_ticket(org_id, ticket.id),
            attachments=await self._attachments.list_for_ticket(org_id, ticket.id),
            tags=await self._tickets.list_tags(ticket.id),
            sla=await self._require_sla(ticket),
        )

    async def _invalidate(self, organization_id: str, ticket_id: str) -> None:
        await self._cache.invalidate(ticket_cache_key(organization_id, ticket_id))
        await self._cache.invalidate(ticket_list_cache_key(organization_id))

    async def _notify_assignee(self, ticket: Ticket, assignee_id: str) -> None:
        try:
            contact = await self._users.get_contact(assignee_id)
        except Exception as e:
            logger.error(
                "Failed to look up assignee for notification",
                extra={"ticket_id": ticket.id, "assigned_to": assignee_id, "error": str(e)}
            )
            return

        if contact is None or not contact.email:
            logger.warning(
                "Assignee has no email, skipping notification",
                extra={"ticket_id": ticket.id, "assigned_to": assignee_id}
            )
            return

        await self._notifier.ticket_assigned(ticket, contact.email, contact.name)
