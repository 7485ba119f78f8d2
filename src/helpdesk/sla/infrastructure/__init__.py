"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for SLA tracking:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer
- External: YAML policy watcher and reconciliation scheduler
"""

from helpdesk.sla.infrastructure.external import SLAConfigManager, SLAScheduler
from helpdesk.sla.infrastructure.models import SLAStatusModel
from helpdesk.sla.infrastructure.repositories import SQLAlchemySLAStatusRepository

__all__ = [
    "SLAStatusModel",
    "SQLAlchemySLAStatusRepository",
    "SLAConfigManager",
    "SLAScheduler",
]
