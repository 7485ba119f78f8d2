"""
Tickets Infrastructure Layer
=============================

Infrastructure implementations for the tickets module:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer, number allocator, unit of work
"""

from helpdesk.tickets.infrastructure.models import (
    TicketAttachmentModel,
    TicketCommentModel,
    TicketModel,
    TicketNumberCounterModel,
    TicketTagModel,
    UserModel,
)
from helpdesk.tickets.infrastructure.repositories import (
    SQLAlchemyAttachmentRepository,
    SQLAlchemyCommentRepository,
    SQLAlchemyTicketNumberAllocator,
    SQLAlchemyTicketRepository,
    SQLAlchemyUnitOfWork,
    SQLAlchemyUserDirectory,
)

__all__ = [
    # Models
    "TicketAttachmentModel",
    "TicketCommentModel",
    "TicketModel",
    "TicketNumberCounterModel",
    "TicketTagModel",
    "UserModel",
    # Repositories
    "SQLAlchemyAttachmentRepository",
    "SQLAlchemyCommentRepository",
    "SQLAlchemyTicketNumberAllocator",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyUnitOfWork",
    "SQLAlchemyUserDirectory",
]
