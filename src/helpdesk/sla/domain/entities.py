"""
SLA Domain Entities
====================

Pure Python domain entities for SLA tracking.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from helpdesk.config import SLAState
from helpdesk.sla.domain.value_objects import SLACalculator, SLADueDates, SLAPolicy


@dataclass
class SLAStatus:
    """
    SLA companion record of a ticket.

    Exactly one exists per ticket. The completion stamps are set once and
    never overwritten. ``current_status`` and the breach flags are a cached
    projection; ``evaluated()`` re-derives them for a given instant.
    """

    ticket_id: str
    organization_id: str
    started_at: datetime

    first_response_due: Optional[datetime] = None
    resolution_due: Optional[datetime] = None

    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    first_response_breached: bool = False
    resolution_breached: bool = False
    current_status: SLAState = SLAState.ON_TRACK

    id: Optional[str] = None

    @classmethod
    def open(
        cls,
        ticket_id: str,
        organization_id: str,
        started_at: datetime,
        due_dates: SLADueDates
    ) -> "SLAStatus":
        """Create the tracking record for a freshly created ticket."""
        return cls(
            ticket_id=ticket_id,
            organization_id=organization_id,
            started_at=started_at,
            first_response_due=due_dates.first_response_due,
            resolution_due=due_dates.resolution_due,
            current_status=SLAState.ON_TRACK,
        )

    @property
    def is_satisfied(self) -> bool:
        """Both clocks stopped."""
        return self.first_response_at is not None and self.resolved_at is not None

    def mark_first_response(self, at: datetime) -> bool:
        """Stamp first response. Returns False if already stamped."""
        if self.first_response_at is not None:
            return False
        self.first_response_at = at
        return True

    def mark_resolved(self, at: datetime) -> bool:
        """Stamp resolution. Returns False if already stamped."""
        if self.resolved_at is not None:
            return False
        self.resolved_at = at
        return True

    def evaluated(self, now: datetime, policy: Optional[SLAPolicy] = None) -> "SLAStatus":
        """Copy with status and breach flags derived at ``now``."""
        if policy is not None:
            state = policy.evaluate(self, now)
        else:
            state = SLACalculator.evaluate(self, now)

        return replace(
            self,
            current_status=state,
            first_response_breached=SLACalculator.is_breached(
                self.first_response_due, self.first_response_at, now
            ),
            resolution_breached=SLACalculator.is_breached(
                self.resolution_due, self.resolved_at, now
            ),
        )

    def differs_in_projection(self, other: "SLAStatus") -> bool:
        """Whether the cached projection fields differ from ``other``."""
        return (
            self.current_status != other.current_status
            or self.first_response_breached != other.first_response_breached
            or self.resolution_breached != other.resolution_breached
        )
