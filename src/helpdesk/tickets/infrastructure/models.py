"""
Ticket Infrastructure Models
=============================

SQLAlchemy ORM models for the tickets module.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.config import Priority, TicketStatus
from helpdesk.infrastructure.database import Base, UTCDateTime


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TicketModel(Base):
    """
    Database model for the Ticket entity.

    Maps to the 'tickets' table. Ticket numbers are unique per organization.
    """
    __tablename__ = "tickets"
    __table_args__ = (
        UniqueConstraint("organization_id", "ticket_number", name="uq_tickets_org_ticket_number"),
        Index("idx_tickets_org_created_at", "organization_id", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    ticket_number: Mapped[str] = mapped_column(String(50), nullable=False)

    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=TicketStatus.OPEN.value, index=True
    )
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default=Priority.MEDIUM.value, index=True
    )
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    assigned_to: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True, index=True)
    created_by: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    requester_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    requester_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=_utc_now)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)


class TicketCommentModel(Base):
    """Database model for ticket comments and internal notes."""
    __tablename__ = "ticket_comments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    ticket_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    organization_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_internal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=_utc_now, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=_utc_now)


class TicketAttachmentModel(Base):
    """Database model for attachment metadata. File bytes live in object storage."""
    __tablename__ = "ticket_attachments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    ticket_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    comment_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("ticket_comments.id", ondelete="CASCADE"), nullable=True, index=True
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_key: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    uploaded_by: Mapped[UUID] = mapped_column(Uuid, nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=_utc_now)


class TicketTagModel(Base):
    """Database model for ticket tags."""
    __tablename__ = "ticket_tags"
    __table_args__ = (
        Index("idx_ticket_tags_ticket_tag", "ticket_id", "tag"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    ticket_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tag: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=_utc_now)


class TicketNumberCounterModel(Base):
    """Last ticket sequence number handed out per organization."""
    __tablename__ = "ticket_number_counters"

    organization_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class UserModel(Base):
    """
    Read-only view of the user store.

    Owned by the authentication service; only the contact columns are mapped.
    """
    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
