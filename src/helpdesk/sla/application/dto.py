"""
SLA Application DTOs
=====================

Data Transfer Objects for the SLA API layer.

These Pydantic models handle serialization for API responses.
"""

from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field

from helpdesk.sla.domain import SLAStatus


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["urgent", "high", "medium", "low"]
SLAStateStr = Literal["on_track", "at_risk", "breached"]


class SLAStatusResponse(BaseModel):
    """SLA state of a ticket as evaluated at read time."""
    first_response_due: Optional[datetime] = Field(None, description="First response deadline")
    first_response_at: Optional[datetime] = Field(None, description="When the first public reply was posted")
    first_response_breached: bool = Field(..., description="First response deadline missed")
    resolution_due: Optional[datetime] = Field(None, description="Resolution deadline")
    resolved_at: Optional[datetime] = Field(None, description="When the ticket was first resolved")
    resolution_breached: bool = Field(..., description="Resolution deadline missed")
    current_status: SLAStateStr = Field(..., description="Current SLA state")

    @classmethod
    def from_domain(cls, sla: SLAStatus) -> "SLAStatusResponse":
        return cls(
            first_response_due=sla.first_response_due,
            first_response_at=sla.first_response_at,
            first_response_breached=sla.first_response_breached,
            resolution_due=sla.resolution_due,
            resolved_at=sla.resolved_at,
            resolution_breached=sla.resolution_breached,
            current_status=sla.current_status.value,
        )


class SLAWindowResponse(BaseModel):
    """Targets for a single priority."""
    base_first_response_minutes: float
    base_resolution_minutes: float
    multiplier: float
    first_response_minutes: float = Field(..., description="Effective window after multiplier")
    resolution_minutes: float = Field(..., description="Effective window after multiplier")


class SLATargetsResponse(BaseModel):
    """Active SLA policy."""
    priorities: Dict[PriorityStr, SLAWindowResponse]
    at_risk_threshold: float
    at_risk_window_minutes: Optional[float] = None


class SLADashboardSummary(BaseModel):
    """SLA health of an organization's tickets."""
    total_tickets: int
    on_track_count: int
    at_risk_count: int
    breached_count: int
    breach_rate: float = Field(..., description="Percentage of tickets currently breached")
    first_response_compliance: Optional[float] = Field(
        None, description="Percentage of first responses posted on time"
    )
    resolution_compliance: Optional[float] = Field(
        None, description="Percentage of resolutions completed on time"
    )
    evaluated_at: datetime
