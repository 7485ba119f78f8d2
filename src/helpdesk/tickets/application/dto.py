"""
Ticket Application DTOs
========================

Data Transfer Objects for the tickets API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from helpdesk.config import (
    COMMENT_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    MAX_TAGS,
    NAME_MAX_LENGTH,
    SUBJECT_MAX_LENGTH,
    TAG_MAX_LENGTH,
)
from helpdesk.sla.application.dto import PriorityStr, SLAStatusResponse
from helpdesk.tickets.domain import Ticket, TicketAttachment, TicketComment, TicketDetail


# ========== Type Aliases for Literals ==========
TicketStatusStr = Literal["open", "in_progress", "waiting", "resolved", "closed"]
TicketCategoryStr = Literal[
    "billing", "technical", "account", "feature_request", "how_to", "general"
]
TagStr = Annotated[str, Field(max_length=TAG_MAX_LENGTH)]


# ========== Request DTOs ==========

class TicketCreateDTO(BaseModel):
    """DTO for creating a ticket."""
    subject: str = Field(..., min_length=1, max_length=SUBJECT_MAX_LENGTH, description="Ticket subject")
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH, description="Problem description")
    priority: PriorityStr = Field(default="medium", description="Ticket priority")
    category: Optional[TicketCategoryStr] = Field(None, description="Ticket category")
    requester_name: Optional[str] = Field(None, max_length=NAME_MAX_LENGTH)
    requester_email: Optional[EmailStr] = Field(None, description="Receives ticket notifications")
    assigned_to: Optional[UUID] = Field(None, description="Agent user ID")


class TicketUpdateDTO(BaseModel):
    """
    DTO for a partial ticket update.

    Only fields present in the request are applied; an explicit
    ``assigned_to: null`` unassigns the ticket.
    """
    subject: Optional[str] = Field(None, min_length=1, max_length=SUBJECT_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    status: Optional[TicketStatusStr] = None
    priority: Optional[PriorityStr] = None
    category: Optional[TicketCategoryStr] = None
    assigned_to: Optional[UUID] = None
    tags: Optional[List[TagStr]] = Field(None, max_length=MAX_TAGS, description="Replaces the ticket's tags")

    def field_changes(self) -> Dict[str, Any]:
        """Editable ticket fields present in the request."""
        changes: Dict[str, Any] = {}
        for name in ("subject", "description", "priority", "category"):
            value = getattr(self, name)
            if name in self.model_fields_set and value is not None:
                changes[name] = value
        if "assigned_to" in self.model_fields_set:
            changes["assigned_to"] = str(self.assigned_to) if self.assigned_to else None
        return changes


class AssignTicketDTO(BaseModel):
    """DTO for assigning a ticket; null unassigns."""
    assigned_to: Optional[UUID] = Field(..., description="Agent user ID or null")


class CommentCreateDTO(BaseModel):
    """DTO for adding a comment."""
    content: str = Field(..., min_length=1, max_length=COMMENT_MAX_LENGTH)
    is_internal: bool = Field(default=False, description="Internal notes are hidden from the requester")


class TicketFilterDTO(BaseModel):
    """Query parameters for listing tickets."""
    status: Optional[TicketStatusStr] = None
    priority: Optional[PriorityStr] = None
    category: Optional[TicketCategoryStr] = None
    assigned_to: Optional[UUID] = None
    search: Optional[str] = Field(None, max_length=SUBJECT_MAX_LENGTH, description="Subject contains")
    limit: int = Field(default=100, ge=1, le=100)
    offset: int = Field(default=0, ge=0)

    def cache_key(self) -> str:
        """Stable key suffix for this filter combination."""
        data = self.model_dump(mode="json")
        return "|".join(f"{k}={data[k]}" for k in sorted(data) if data[k] is not None)


# ========== Response DTOs ==========

class TicketResponse(BaseModel):
    """Ticket as returned by the API."""
    id: str
    organization_id: str
    ticket_number: str
    subject: str
    description: Optional[str] = None
    status: TicketStatusStr
    priority: PriorityStr
    category: Optional[TicketCategoryStr] = None
    assigned_to: Optional[str] = None
    created_by: str
    requester_name: Optional[str] = None
    requester_email: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, ticket: Ticket) -> "TicketResponse":
        return cls(
            id=ticket.id,
            organization_id=ticket.organization_id,
            ticket_number=ticket.ticket_number,
            subject=ticket.subject,
            description=ticket.description,
            status=ticket.status.value,
            priority=ticket.priority.value,
            category=ticket.category.value if ticket.category else None,
            assigned_to=ticket.assigned_to,
            created_by=ticket.created_by,
            requester_name=ticket.requester_name,
            requester_email=ticket.requester_email,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
            resolved_at=ticket.resolved_at,
            closed_at=ticket.closed_at,
        )


class CommentResponse(BaseModel):
    id: str
    ticket_id: str
    user_id: str
    content: str
    is_internal: bool
    created_at: datetime

    @classmethod
    def from_domain(cls, comment: TicketComment) -> "CommentResponse":
        return cls(
            id=comment.id,
            ticket_id=comment.ticket_id,
            user_id=comment.user_id,
            content=comment.content,
            is_internal=comment.is_internal,
            created_at=comment.created_at,
        )


class AttachmentResponse(BaseModel):
    id: str
    ticket_id: str
    comment_id: Optional[str] = None
    file_name: str
    file_key: str
    file_size: Optional[str] = None
    mime_type: Optional[str] = None
    uploaded_by: str
    created_at: datetime

    @classmethod
    def from_domain(cls, attachment: TicketAttachment) -> "AttachmentResponse":
        return cls(
            id=attachment.id,
            ticket_id=attachment.ticket_id,
            comment_id=attachment.comment_id,
            file_name=attachment.file_name,
            file_key=attachment.file_key,
            file_size=attachment.file_size,
            mime_type=attachment.mime_type,
            uploaded_by=attachment.uploaded_by,
            created_at=attachment.created_at,
        )


class TicketDetailResponse(TicketResponse):
    """Ticket with comments, attachments, tags and evaluated SLA status."""
    comments: List[CommentResponse] = Field(default_factory=list)
    attachments: List[AttachmentResponse] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    sla_status: Optional[SLAStatusResponse] = None

    @classmethod
    def from_detail(cls, detail: TicketDetail) -> "TicketDetailResponse":
        base = TicketResponse.from_domain(detail.ticket).model_dump()
        return cls(
            **base,
            comments=[CommentResponse.from_domain(c) for c in detail.comments],
            attachments=[AttachmentResponse.from_domain(a) for a in detail.attachments],
            tags=list(detail.tags),
            sla_status=SLAStatusResponse.from_domain(detail.sla) if detail.sla else None,
        )


class TicketListResponse(BaseModel):
    """Page of tickets plus the total matching the filter."""
    tickets: List[TicketResponse]
    total: int
