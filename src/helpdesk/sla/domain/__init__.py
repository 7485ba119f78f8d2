"""
SLA Domain Layer
================

Domain layer for the SLA module.

Contains:
- Entities: SLAStatus, the per-ticket tracking record
- Value Objects: SLATargets, SLADueDates, SLAPolicy
- Domain Services: SLACalculator (target table, due dates, evaluation)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from helpdesk.sla.domain.entities import SLAStatus
from helpdesk.sla.domain.value_objects import (
    DEFAULT_SLA_TARGETS,
    PRIORITY_MULTIPLIERS,
    SLACalculator,
    SLADueDates,
    SLAPolicy,
    SLATargetConfig,
    SLATargets,
)

__all__ = [
    # Entities
    "SLAStatus",
    # Value Objects & Services
    "DEFAULT_SLA_TARGETS",
    "PRIORITY_MULTIPLIERS",
    "SLACalculator",
    "SLADueDates",
    "SLAPolicy",
    "SLATargetConfig",
    "SLATargets",
]
