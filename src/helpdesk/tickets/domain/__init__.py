"""
Tickets Domain Layer
=====================

Domain layer for the tickets module.

Contains:
- Entities: Ticket, TicketComment, TicketAttachment
- Read models: TicketDetail
- Rules: field validation, status latches, ticket numbering

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from helpdesk.tickets.domain.entities import (
    EDITABLE_FIELDS,
    StatusTransition,
    Ticket,
    TicketAttachment,
    TicketComment,
    TicketDetail,
    generate_ticket_number,
    validate_description,
    validate_subject,
    validate_tags,
)

__all__ = [
    "EDITABLE_FIELDS",
    "StatusTransition",
    "Ticket",
    "TicketAttachment",
    "TicketComment",
    "TicketDetail",
    "generate_ticket_number",
    "validate_description",
    "validate_subject",
    "validate_tags",
]
