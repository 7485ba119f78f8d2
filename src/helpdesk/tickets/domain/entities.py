"""
Ticket Domain Entities
=======================

Pure Python domain entities for ticket management.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from helpdesk.config import (
    COMMENT_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    MAX_TAGS,
    SUBJECT_MAX_LENGTH,
    TAG_MAX_LENGTH,
    Priority,
    TicketCategory,
    TicketStatus,
)
from helpdesk.core import ValidationException
from helpdesk.sla.domain import SLAPolicy, SLAStatus

# Fields a partial update may touch
EDITABLE_FIELDS = ("subject", "description", "priority", "category", "assigned_to")


def generate_ticket_number(organization_id: str, sequence: int) -> str:
    """
    Human-readable ticket number.

    Format: TKT-<first 3 chars of org id, uppercased>-<sequence padded to 6>
    """
    prefix = organization_id[:3].upper()
    return f"TKT-{prefix}-{sequence:06d}"


def _restore(cls, values: Dict[str, Any]):
    """Build an entity from stored values without running its input checks."""
    entity = cls.__new__(cls)
    for f in fields(cls):
        setattr(entity, f.name, values[f.name] if f.name in values else f.default)
    return entity


def validate_subject(subject: str) -> str:
    subject = (subject or "").strip()
    if not subject:
        raise ValidationException.for_field("subject", "Subject is required")
    if len(subject) > SUBJECT_MAX_LENGTH:
        raise ValidationException.for_field(
            "subject", f"Subject must be less than {SUBJECT_MAX_LENGTH} characters"
        )
    return subject


def validate_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    description = description.strip()
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationException.for_field(
            "description", f"Description must be less than {DESCRIPTION_MAX_LENGTH} characters"
        )
    return description


def validate_tags(tags: List[str]) -> List[str]:
    """Trim, drop blanks and duplicates, enforce count and length limits."""
    cleaned: List[str] = []
    for tag in tags:
        tag = tag.strip()
        if not tag or tag in cleaned:
            continue
        if len(tag) > TAG_MAX_LENGTH:
            raise ValidationException.for_field(
                "tags", f"Tags must be at most {TAG_MAX_LENGTH} characters"
            )
        cleaned.append(tag)

    if len(cleaned) > MAX_TAGS:
        raise ValidationException.for_field("tags", f"Maximum {MAX_TAGS} tags allowed")
    return cleaned


@dataclass(frozen=True)
class StatusTransition:
    """Outcome of applying a status to a ticket."""
    previous: TicketStatus
    current: TicketStatus
    entered_resolved: bool = False
    entered_closed: bool = False

    @property
    def changed(self) -> bool:
        return self.previous != self.current


@dataclass
class Ticket:
    """
    Ticket entity representing one support request.

    ``resolved_at`` and ``closed_at`` are latches: stamped the first time
    the ticket enters that status and kept through later transitions.
    """

    organization_id: str
    ticket_number: str
    subject: str
    created_by: str

    description: Optional[str] = None
    status: TicketStatus = TicketStatus.OPEN
    priority: Priority = Priority.MEDIUM
    category: Optional[TicketCategory] = None
    assigned_to: Optional[str] = None
    requester_name: Optional[str] = None
    requester_email: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    id: Optional[str] = None

    def __post_init__(self):
        """Validate ticket on initialization."""
        self.subject = validate_subject(self.subject)
        self.description = validate_description(self.description)
        self.status = TicketStatus(self.status)
        self.priority = Priority(self.priority)
        if self.category is not None:
            self.category = TicketCategory(self.category)

    @classmethod
    def from_persistence(cls, **values) -> "Ticket":
        """Rebuild a stored ticket. Rows written under older limits stay readable."""
        return _restore(cls, values)

    def apply_status(self, status: TicketStatus, now: datetime) -> StatusTransition:
        """
        Move to ``status``. Any status may follow any other.

        Entering resolved or closed from a different status is reported on
        the transition; the matching timestamp is only stamped if unset.
        """
        previous = self.status
        status = TicketStatus(status)

        entered_resolved = status == TicketStatus.RESOLVED and previous != TicketStatus.RESOLVED
        entered_closed = status == TicketStatus.CLOSED and previous != TicketStatus.CLOSED

        if entered_resolved and self.resolved_at is None:
            self.resolved_at = now
        if entered_closed and self.closed_at is None:
            self.closed_at = now

        self.status = status
        return StatusTransition(
            previous=previous,
            current=status,
            entered_resolved=entered_resolved,
            entered_closed=entered_closed,
        )

    def apply_changes(self, changes: Dict[str, Any]) -> None:
        """Apply a partial update of the editable fields."""
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"fields not editable: {sorted(unknown)}")

        if "subject" in changes:
            self.subject = validate_subject(changes["subject"])
        if "description" in changes:
            self.description = validate_description(changes["description"])
        if "priority" in changes and changes["priority"] is not None:
            self.priority = Priority(changes["priority"])
        if "category" in changes:
            category = changes["category"]
            self.category = TicketCategory(category) if category is not None else None
        if "assigned_to" in changes:
            self.assigned_to = changes["assigned_to"]

    def touch(self, now: datetime) -> None:
        self.updated_at = now


@dataclass
class TicketComment:
    """A reply to the requester, or an internal note when ``is_internal``."""

    ticket_id: str
    organization_id: str
    user_id: str
    content: str
    is_internal: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    id: Optional[str] = None

    def __post_init__(self):
        self.content = (self.content or "").strip()
        if not self.content:
            raise ValidationException.for_field("content", "Comment is required")
        if len(self.content) > COMMENT_MAX_LENGTH:
            raise ValidationException.for_field(
                "content", f"Comment must be less than {COMMENT_MAX_LENGTH} characters"
            )

    @classmethod
    def from_persistence(cls, **values) -> "TicketComment":
        return _restore(cls, values)

    @property
    def counts_as_response(self) -> bool:
        """Only customer-visible replies stop the first response clock."""
        return not self.is_internal


@dataclass
class TicketAttachment:
    """Metadata of a stored file; the bytes live in object storage."""

    ticket_id: str
    file_name: str
    file_key: str
    uploaded_by: str
    file_size: Optional[str] = None
    mime_type: Optional[str] = None
    comment_id: Optional[str] = None
    created_at: Optional[datetime] = None
    id: Optional[str] = None


@dataclass
class TicketDetail:
    """Read model: a ticket with its thread, files, tags and SLA record."""

    ticket: Ticket
    comments: List[TicketComment] = field(default_factory=list)
    attachments: List[TicketAttachment] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    sla: Optional[SLAStatus] = None

    def with_sla_evaluated(self, now: datetime, policy: Optional[SLAPolicy] = None) -> "TicketDetail":
        """Copy whose SLA projection reflects ``now``."""
        if self.sla is None:
            return self
        return replace(self, sla=self.sla.evaluated(now, policy))
