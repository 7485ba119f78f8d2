"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM models for the SLA module.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.config import SLAState
from helpdesk.infrastructure.database import Base, UTCDateTime


class SLAStatusModel(Base):
    """
    Database model for the SLAStatus entity.

    Maps to the 'sla_status' table. One row per ticket, removed with it.
    """
    __tablename__ = "sla_status"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    ticket_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    organization_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)

    # Clock start (ticket creation)
    started_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    # First response clock
    first_response_due: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    first_response_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    first_response_breached: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Resolution clock
    resolution_due: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    resolution_breached: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    current_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SLAState.ON_TRACK.value, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
