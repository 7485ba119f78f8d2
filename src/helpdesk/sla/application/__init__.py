"""
SLA Application Layer
======================

Application layer for the SLA module.

Contains:
- Services: Reconciliation and dashboard aggregation
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from helpdesk.sla.application.dto import (
    SLADashboardSummary,
    SLAStatusResponse,
    SLATargetsResponse,
    SLAWindowResponse,
)
from helpdesk.sla.application.services import (
    ISLAPolicyProvider,
    ISLAStatusRepository,
    SLADashboardService,
    SLAReconciliationService,
    StaticPolicyProvider,
)

__all__ = [
    # DTOs
    "SLADashboardSummary",
    "SLAStatusResponse",
    "SLATargetsResponse",
    "SLAWindowResponse",
    # Services
    "SLADashboardService",
    "SLAReconciliationService",
    "StaticPolicyProvider",
    # Repository Interfaces
    "ISLAPolicyProvider",
    "ISLAStatusRepository",
]
