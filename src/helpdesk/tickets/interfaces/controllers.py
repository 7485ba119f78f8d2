"""
Ticket Controllers (API Routes)
================================

FastAPI routes for ticket lifecycle endpoints.

Controllers are thin - they delegate to the TicketLifecycleService.
Organization and user come from headers set by the upstream auth gateway.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.config import settings
from helpdesk.core import OrganizationContext
from helpdesk.infrastructure.database import get_session
from helpdesk.shared.api.dependencies import (
    get_cache,
    get_clock,
    get_email_sender,
    get_organization_context,
    get_policy_provider,
)
from helpdesk.shared.clock import Clock
from helpdesk.shared.infrastructure.cache import ICache
from helpdesk.shared.infrastructure.email import IEmailSender
from helpdesk.sla.application import ISLAPolicyProvider
from helpdesk.sla.infrastructure.repositories import SQLAlchemySLAStatusRepository
from helpdesk.tickets.application import (
    AssignTicketDTO,
    CommentCreateDTO,
    CommentResponse,
    TicketCreateDTO,
    TicketDetailResponse,
    TicketEmailTemplates,
    TicketFilterDTO,
    TicketLifecycleService,
    TicketListResponse,
    TicketNotifier,
    TicketResponse,
    TicketUpdateDTO,
)
from helpdesk.tickets.infrastructure.repositories import (
    SQLAlchemyAttachmentRepository,
    SQLAlchemyCommentRepository,
    SQLAlchemyTicketNumberAllocator,
    SQLAlchemyTicketRepository,
    SQLAlchemyUnitOfWork,
    SQLAlchemyUserDirectory,
)

router = APIRouter(prefix="/tickets", tags=["Tickets"])


# ========== Example payloads for Swagger ==========

TICKET_CREATE_EXAMPLE = {
    "subject": "Cannot log in after password reset",
    "description": "The reset email arrived but the new password is rejected.",
    "priority": "urgent",
    "category": "account",
    "requester_name": "Ada Lovelace",
    "requester_email": "ada@example.com"
}

TICKET_DETAIL_EXAMPLE = {
    "id": "9b2f7d0e-1c1b-4c5e-9a53-2f0d3c1d8a11",
    "organization_id": "a3c1e6b2-0f7e-4b5c-8a7d-1e2f3a4b5c6d",
    "ticket_number": "TKT-A3C-000042",
    "subject": "Cannot log in after password reset",
    "description": "The reset email arrived but the new password is rejected.",
    "status": "open",
    "priority": "urgent",
    "category": "account",
    "assigned_to": None,
    "created_by": "5d1e0b7c-3a2f-4e6d-9c8b-7a6f5e4d3c2b",
    "requester_name": "Ada Lovelace",
    "requester_email": "ada@example.com",
    "created_at": "2024-01-15T10:00:00Z",
    "updated_at": "2024-01-15T10:00:00Z",
    "resolved_at": None,
    "closed_at": None,
    "comments": [],
    "attachments": [],
    "tags": ["login"],
    "sla_status": {
        "first_response_due": "2024-01-15T10:15:00Z",
        "first_response_at": None,
        "first_response_breached": False,
        "resolution_due": "2024-01-15T12:00:00Z",
        "resolved_at": None,
        "resolution_breached": False,
        "current_status": "on_track"
    }
}


# ========== Dependencies ==========

async def get_ticket_service(
    request: Request,
    session: AsyncSession = Depends(get_session),
    cache: ICache = Depends(get_cache),
    email_sender: IEmailSender = Depends(get_email_sender),
    policy_provider: ISLAPolicyProvider = Depends(get_policy_provider),
    clock: Clock = Depends(get_clock),
) -> TicketLifecycleService:
    """Get ticket lifecycle service bound to the request session."""
    app_settings = getattr(request.app.state, "settings", settings)

    notifier = TicketNotifier(
        email_sender,
        TicketEmailTemplates(app_settings.public_site_url),
        timeout_seconds=app_settings.notification_timeout_seconds
    )

    return TicketLifecycleService(
        ticket_repository=SQLAlchemyTicketRepository(session),
        comment_repository=SQLAlchemyCommentRepository(session),
        attachment_repository=SQLAlchemyAttachmentRepository(session),
        sla_repository=SQLAlchemySLAStatusRepository(session),
        number_allocator=SQLAlchemyTicketNumberAllocator(session),
        unit_of_work=SQLAlchemyUnitOfWork(session),
        user_directory=SQLAlchemyUserDirectory(session),
        notifier=notifier,
        cache=cache,
        policy_provider=policy_provider,
        clock=clock,
        cache_ttl_seconds=app_settings.ticket_cache_ttl_seconds,
    )


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a ticket",
    description="""
    Create a ticket and start its SLA clocks.

    **Priority Levels**: `urgent`, `high`, `medium` (default), `low`

    **SLA deadlines** (base target x priority multiplier, minutes):
    - urgent: 15 first response / 120 resolution
    - high: 45 / 360
    - medium: 240 / 1440
    - low: 720 / 4320

    A requester email receives a confirmation.
    """,
    responses={
        201: {"description": "Ticket created"},
        422: {"description": "Invalid subject, description or enum value"}
    },
    openapi_extra={
        "requestBody": {"content": {"application/json": {"example": TICKET_CREATE_EXAMPLE}}}
    }
)
async def create_ticket(
    data: TicketCreateDTO,
    context: OrganizationContext = Depends(get_organization_context),
    service: TicketLifecycleService = Depends(get_ticket_service),
):
    ticket = await service.create_ticket(context, data)
    return TicketResponse.from_domain(ticket)


@router.get(
    "",
    response_model=TicketListResponse,
    summary="List tickets",
    description="""
    Tickets of the caller's organization, newest first.

    **Query Parameters:**
    - `status`, `priority`, `category`, `assigned_to`: exact filters
    - `search`: case-insensitive subject match
    - `limit`: page size (1-100, default 100)
    - `offset`: page offset
    """
)
async def list_tickets(
    filters: TicketFilterDTO = Depends(),
    context: OrganizationContext = Depends(get_organization_context),
    service: TicketLifecycleService = Depends(get_ticket_service),
):
    tickets, total = await service.list_tickets(context, filters)
    return TicketListResponse(
        tickets=[TicketResponse.from_domain(t) for t in tickets],
        total=total
    )


@router.get(
    "/{ticket_id}",
    response_model=TicketDetailResponse,
    summary="Get ticket by ID",
    description="""
    Ticket with comments, attachments, tags and SLA status.

    The SLA status is evaluated at request time.
    """,
    responses={
        200: {
            "description": "Ticket detail",
            "content": {"application/json": {"example": TICKET_DETAIL_EXAMPLE}}
        },
        404: {"description": "Ticket not found"}
    }
)
async def get_ticket(
    ticket_id: UUID,
    context: OrganizationContext = Depends(get_organization_context),
    service: TicketLifecycleService = Depends(get_ticket_service),
):
    detail = await service.get_ticket(context, str(ticket_id))
    return TicketDetailResponse.from_detail(detail)


@router.patch(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Update a ticket",
    description="""
    Partial update. Only fields present in the body change.

    Moving to `resolved` the first time stamps `resolved_at` and stops the
    resolution clock; moving to `closed` the first time stamps `closed_at`.
    `tags` replaces the full tag list (max 10, 50 characters each).
    """,
    responses={404: {"description": "Ticket not found"}}
)
async def update_ticket(
    ticket_id: UUID,
    data: TicketUpdateDTO,
    context: OrganizationContext = Depends(get_organization_context),
    service: TicketLifecycleService = Depends(get_ticket_service),
):
    ticket = await service.update_ticket(context, str(ticket_id), data)
    return TicketResponse.from_domain(ticket)


@router.post(
    "/{ticket_id}/assign",
    response_model=TicketResponse,
    summary="Assign ticket to agent",
    responses={404: {"description": "Ticket not found"}}
)
async def assign_ticket(
    ticket_id: UUID,
    data: AssignTicketDTO,
    context: OrganizationContext = Depends(get_organization_context),
    service: TicketLifecycleService = Depends(get_ticket_service),
):
    assignee = str(data.assigned_to) if data.assigned_to else None
    ticket = await service.assign_ticket(context, str(ticket_id), assignee)
    return TicketResponse.from_domain(ticket)


@router.post(
    "/{ticket_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add comment to ticket",
    description="""
    Add a reply or an internal note.

    The first non-internal comment stops the first response clock.
    """,
    responses={404: {"description": "Ticket not found"}}
)
async def add_comment(
    ticket_id: UUID,
    data: CommentCreateDTO,
    context: OrganizationContext = Depends(get_organization_context),
    service: TicketLifecycleService = Depends(get_ticket_service),
):
    comment = await service.add_comment(context, str(ticket_id), data)
    return CommentResponse.from_domain(comment)


@router.get(
    "/{ticket_id}/comments",
    response_model=List[CommentResponse],
    summary="Get ticket comments",
    responses={404: {"description": "Ticket not found"}}
)
async def list_comments(
    ticket_id: UUID,
    context: OrganizationContext = Depends(get_organization_context),
    service: TicketLifecycleService = Depends(get_ticket_service),
):
    comments = await service.list_comments(context, str(ticket_id))
    return [CommentResponse.from_domain(c) for c in comments]
