"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from helpdesk.config import SLAState
from helpdesk.core import IUnitOfWork, OrganizationContext
from helpdesk.shared.clock import Clock, utc_now
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.application.dto import SLADashboardSummary
from helpdesk.sla.domain import SLACalculator, SLAPolicy, SLAStatus

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ISLAStatusRepository(ABC):
    """Interface for SLA status data access."""

    @abstractmethod
    async def get_for_ticket(
        self,
        organization_id: str,
        ticket_id: str,
        for_update: bool = False
    ) -> Optional[SLAStatus]:
        """Get the SLA record of a ticket within an organization."""

    @abstractmethod
    async def add(self, status: SLAStatus) -> SLAStatus:
        """Stage a new SLA record."""

    @abstractmethod
    async def save(self, status: SLAStatus) -> SLAStatus:
        """Stage changes to an existing SLA record. Set stamps are never cleared."""

    @abstractmethod
    async def save_projection(self, status: SLAStatus) -> SLAStatus:
        """Stage only ``current_status`` and the breach flags of a record."""

    @abstractmethod
    async def list_for_organization(self, organization_id: str) -> List[SLAStatus]:
        """All SLA records of an organization."""

    @abstractmethod
    async def list_open(self, limit: int = 1000, offset: int = 0) -> List[SLAStatus]:
        """SLA records with at least one clock still running."""


class ISLAPolicyProvider(ABC):
    """Interface for SLA policy access."""

    @abstractmethod
    def get_policy(self) -> SLAPolicy:
        """Get current SLA policy."""


class StaticPolicyProvider(ISLAPolicyProvider):
    """Fixed policy, the default table unless one is given."""

    def __init__(self, policy: Optional[SLAPolicy] = None):
        self._policy = policy or SLAPolicy()

    def get_policy(self) -> SLAPolicy:
        return self._policy


# ========== Application Services ==========

class SLAReconciliationService:
    """
    Persists fresh SLA projections for records with running clocks.

    Reads always re-evaluate, so this only keeps the stored
    ``current_status`` useful for queries and reporting.
    """

    def __init__(
        self,
        sla_repository: ISLAStatusRepository,
        unit_of_work: IUnitOfWork,
        policy_provider: ISLAPolicyProvider,
        clock: Clock = utc_now,
        batch_size: int = 500
    ):
        self._sla_repo = sla_repository
        self._uow = unit_of_work
        self._policy_provider = policy_provider
        self._clock = clock
        self._batch_size = batch_size

    async def reconcile(self) -> dict:
        """
        Re-evaluate every open SLA record and store changed projections.

        Returns:
            Summary of the run
        """
        policy = self._policy_provider.get_policy()
        now = self._clock()

        evaluated = 0
        updated = 0
        offset = 0

        while True:
            batch = await self._sla_repo.list_open(limit=self._batch_size, offset=offset)
            if not batch:
                break

            for status in batch:
                evaluated += 1
                if not status.evaluated(now, policy).differs_in_projection(status):
                    continue

                # Batch rows are unlocked snapshots; stamps may have landed since
                current = await self._sla_repo.get_for_ticket(
                    status.organization_id, status.ticket_id, for_update=True
                )
                if current is None:
                    continue
                fresh = current.evaluated(now, policy)
                if fresh.differs_in_projection(current):
                    await self._sla_repo.save_projection(fresh)
                    updated += 1

            if len(batch) < self._batch_size:
                break
            offset += self._batch_size

        await self._uow.commit()

        logger.info(
            "SLA reconciliation complete",
            extra={"sla_evaluated": evaluated, "sla_updated": updated}
        )
        return {"evaluated": evaluated, "updated": updated, "evaluated_at": now.isoformat()}


class SLADashboardService:
    """Aggregate SLA health for an organization."""

    def __init__(
        self,
        sla_repository: ISLAStatusRepository,
        policy_provider: ISLAPolicyProvider,
        clock: Clock = utc_now
    ):
        self._sla_repo = sla_repository
        self._policy_provider = policy_provider
        self._clock = clock

    async def summary(self, context: OrganizationContext) -> SLADashboardSummary:
        policy = self._policy_provider.get_policy()
        now = self._clock()

        statuses = [
            s.evaluated(now, policy)
            for s in await self._sla_repo.list_for_organization(context.organization_id)
        ]

        counts = {state: 0 for state in SLAState}
        for status in statuses:
            counts[status.current_status] += 1

        total = len(statuses)
        breach_rate = (counts[SLAState.BREACHED] / total * 100) if total else 0.0

        return SLADashboardSummary(
            total_tickets=total,
            on_track_count=counts[SLAState.ON_TRACK],
            at_risk_count=counts[SLAState.AT_RISK],
            breached_count=counts[SLAState.BREACHED],
            breach_rate=round(breach_rate, 1),
            first_response_compliance=_compliance(
                [(s.first_response_due, s.first_response_at) for s in statuses]
            ),
            resolution_compliance=_compliance(
                [(s.resolution_due, s.resolved_at) for s in statuses]
            ),
            evaluated_at=now,
        )


def _compliance(clocks: list) -> Optional[float]:
    """Percentage of completed clocks that finished by their deadline."""
    completed = [(due, done) for due, done in clocks if due is not None and done is not None]
    if not completed:
        return None
    on_time = sum(1 for due, done in completed if not SLACalculator.is_breached(due, done, done))
    return round(on_time / len(completed) * 100, 1)
