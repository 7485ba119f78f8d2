"""
Tickets Application Layer
==========================

Application layer for the tickets module.

Contains:
- Services: TicketLifecycleService and repository interfaces
- Notifications: email templates and best-effort dispatch
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from helpdesk.tickets.application.dto import (
    AssignTicketDTO,
    AttachmentResponse,
    CommentCreateDTO,
    CommentResponse,
    TicketCreateDTO,
    TicketDetailResponse,
    TicketFilterDTO,
    TicketListResponse,
    TicketResponse,
    TicketUpdateDTO,
)
from helpdesk.tickets.application.notifications import TicketEmailTemplates, TicketNotifier
from helpdesk.tickets.application.services import (
    IAttachmentRepository,
    ICommentRepository,
    ITicketNumberAllocator,
    ITicketRepository,
    IUserDirectory,
    TicketLifecycleService,
    UserContact,
    ticket_cache_key,
    ticket_list_cache_key,
)

__all__ = [
    # DTOs
    "AssignTicketDTO",
    "AttachmentResponse",
    "CommentCreateDTO",
    "CommentResponse",
    "TicketCreateDTO",
    "TicketDetailResponse",
    "TicketFilterDTO",
    "TicketListResponse",
    "TicketResponse",
    "TicketUpdateDTO",
    # Notifications
    "TicketEmailTemplates",
    "TicketNotifier",
    # Services
    "TicketLifecycleService",
    "UserContact",
    "ticket_cache_key",
    "ticket_list_cache_key",
    # Repository Interfaces
    "IAttachmentRepository",
    "ICommentRepository",
    "ITicketNumberAllocator",
    "ITicketRepository",
    "IUserDirectory",
]
