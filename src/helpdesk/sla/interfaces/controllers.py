"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA monitoring endpoints.

Controllers are thin - they delegate to application services.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.config import VALID_PRIORITIES
from helpdesk.core import OrganizationContext
from helpdesk.infrastructure.database import get_session
from helpdesk.shared.api.dependencies import (
    get_clock,
    get_organization_context,
    get_policy_provider,
)
from helpdesk.shared.clock import Clock
from helpdesk.sla.application import (
    ISLAPolicyProvider,
    SLADashboardService,
    SLADashboardSummary,
    SLATargetsResponse,
    SLAWindowResponse,
)
from helpdesk.sla.infrastructure.repositories import SQLAlchemySLAStatusRepository

router = APIRouter(prefix="/sla", tags=["SLA Monitoring"])


# ========== Example payloads for Swagger ==========

DASHBOARD_RESPONSE_EXAMPLE = {
    "total_tickets": 42,
    "on_track_count": 30,
    "at_risk_count": 7,
    "breached_count": 5,
    "breach_rate": 11.9,
    "first_response_compliance": 93.3,
    "resolution_compliance": 88.0,
    "evaluated_at": "2024-01-15T10:00:00Z"
}

TARGETS_RESPONSE_EXAMPLE = {
    "priorities": {
        "urgent": {
            "base_first_response_minutes": 30,
            "base_resolution_minutes": 240,
            "multiplier": 0.5,
            "first_response_minutes": 15,
            "resolution_minutes": 120
        }
    },
    "at_risk_threshold": 0.2,
    "at_risk_window_minutes": None
}


# ========== Dependencies ==========

async def get_dashboard_service(
    session: AsyncSession = Depends(get_session),
    policy_provider: ISLAPolicyProvider = Depends(get_policy_provider),
    clock: Clock = Depends(get_clock),
) -> SLADashboardService:
    """Get SLA dashboard service instance."""
    return SLADashboardService(
        SQLAlchemySLAStatusRepository(session),
        policy_provider,
        clock
    )


# ========== Route Handlers ==========

@router.get(
    "/dashboard",
    response_model=SLADashboardSummary,
    summary="Get SLA dashboard",
    description="""
    SLA health of the caller's organization, evaluated at request time.

    **SLA States:**
    - `breached`: an open deadline has passed
    - `at_risk`: an open deadline has less than the at-risk threshold of its window left
    - `on_track`: otherwise

    Compliance figures count completed clocks only and are `null` when
    nothing has completed yet.
    """,
    responses={
        200: {
            "description": "SLA summary",
            "content": {"application/json": {"example": DASHBOARD_RESPONSE_EXAMPLE}}
        }
    }
)
async def get_dashboard(
    context: OrganizationContext = Depends(get_organization_context),
    service: SLADashboardService = Depends(get_dashboard_service),
):
    return await service.summary(context)


@router.get(
    "/targets",
    response_model=SLATargetsResponse,
    summary="Get active SLA targets",
    description="""
    Base targets, multipliers and effective windows of the active SLA policy.

    Effective window = base target x priority multiplier (minutes).
    """,
    responses={
        200: {
            "description": "Active SLA policy",
            "content": {"application/json": {"example": TARGETS_RESPONSE_EXAMPLE}}
        }
    }
)
async def get_targets(
    policy_provider: ISLAPolicyProvider = Depends(get_policy_provider),
):
    policy = policy_provider.get_policy()

    priorities = {}
    for priority in VALID_PRIORITIES:
        base = policy.targets_for(priority)
        effective = policy.effective_minutes(priority)
        priorities[priority.value] = SLAWindowResponse(
            base_first_response_minutes=base.first_response_time,
            base_resolution_minutes=base.resolution_time,
            multiplier=policy.multiplier_for(priority),
            first_response_minutes=effective.first_response_time,
            resolution_minutes=effective.resolution_time,
        )

    return SLATargetsResponse(
        priorities=priorities,
        at_risk_threshold=policy.at_risk_threshold,
        at_risk_window_minutes=policy.at_risk_window_minutes,
    )
