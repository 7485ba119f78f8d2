"""Tests for SLA reconciliation and the dashboard summary."""

from datetime import timedelta

import pytest

from conftest import ORG_A, ORG_B, T0, make_sla
from helpdesk.config import SLAState
from helpdesk.core import OrganizationContext
from helpdesk.sla.application import (
    SLADashboardService,
    SLAReconciliationService,
    StaticPolicyProvider,
)
from helpdesk.sla.domain import SLAPolicy


def put(store, sla):
    store.sla[sla.ticket_id] = sla
    return sla


class TestReconciliation:
    async def test_updates_changed_projections(self, store, uow, sla_repo, clock):
        overdue = put(store, make_sla())
        fresh = put(store, make_sla(started_at=T0 + timedelta(minutes=10)))
        clock.advance(minutes=16)

        service = SLAReconciliationService(sla_repo, uow, StaticPolicyProvider(), clock)
        result = await service.reconcile()

        assert result["evaluated"] == 2
        assert result["updated"] == 1
        assert store.sla[overdue.ticket_id].current_status == SLAState.BREACHED
        assert store.sla[overdue.ticket_id].first_response_breached is True
        assert store.sla[fresh.ticket_id].current_status == SLAState.ON_TRACK
        assert uow.commits == 1

    async def test_skips_completed_records(self, store, uow, sla_repo, clock):
        put(store, make_sla(first_response_at=T0, resolved_at=T0))
        clock.advance(days=5)

        service = SLAReconciliationService(sla_repo, uow, StaticPolicyProvider(), clock)
        result = await service.reconcile()

        assert result["evaluated"] == 0
        assert sla_repo.saves == 0

    async def test_walks_all_batches(self, store, uow, sla_repo, clock):
        for _ in range(5):
            put(store, make_sla())
        clock.advance(minutes=16)

        service = SLAReconciliationService(
            sla_repo, uow, StaticPolicyProvider(), clock, batch_size=2
        )
        result = await service.reconcile()

        assert result["evaluated"] == 5
        assert all(s.current_status == SLAState.BREACHED for s in store.sla.values())

    async def test_reply_during_run_keeps_its_stamp(self, store, uow, sla_repo, clock):
        sla = put(store, make_sla())
        clock.advance(minutes=16)
        list_open = sla_repo.list_open

        async def reply_after_read(limit=1000, offset=0):
            batch = await list_open(limit, offset)
            store.sla[sla.ticket_id].first_response_at = T0 + timedelta(minutes=10)
            return batch

        sla_repo.list_open = reply_after_read
        service = SLAReconciliationService(sla_repo, uow, StaticPolicyProvider(), clock)
        await service.reconcile()

        stored = store.sla[sla.ticket_id]
        assert stored.first_response_at == T0 + timedelta(minutes=10)
        assert stored.first_response_breached is False
        assert stored.current_status == SLAState.ON_TRACK

    async def test_second_run_is_a_no_op(self, store, uow, sla_repo, clock):
        put(store, make_sla())
        clock.advance(minutes=16)
        service = SLAReconciliationService(sla_repo, uow, StaticPolicyProvider(), clock)

        await service.reconcile()
        result = await service.reconcile()

        assert result["updated"] == 0


class TestDashboard:
    @pytest.fixture
    def dashboard(self, sla_repo, clock):
        return SLADashboardService(sla_repo, StaticPolicyProvider(), clock)

    async def test_empty_organization(self, dashboard):
        summary = await dashboard.summary(OrganizationContext(ORG_A, "u"))

        assert summary.total_tickets == 0
        assert summary.breach_rate == 0.0
        assert summary.first_response_compliance is None
        assert summary.resolution_compliance is None

    async def test_counts_by_live_state(self, store, dashboard, clock):
        put(store, make_sla())  # breached at T0+16
        put(store, make_sla(started_at=T0 + timedelta(minutes=3)))  # 2 of 15 minutes left
        put(store, make_sla(first_response_at=T0 + timedelta(minutes=5), resolved_at=T0 + timedelta(minutes=10)))
        put(store, make_sla(organization_id=ORG_B))
        clock.advance(minutes=16)

        summary = await dashboard.summary(OrganizationContext(ORG_A, "u"))

        assert summary.total_tickets == 3
        assert summary.breached_count == 1
        assert summary.at_risk_count == 1
        assert summary.on_track_count == 1
        assert summary.breach_rate == 33.3
        assert summary.evaluated_at == clock.now

    async def test_compliance_counts_only_completed_clocks(self, store, dashboard, clock):
        put(store, make_sla(first_response_at=T0 + timedelta(minutes=5)))
        put(store, make_sla(first_response_at=T0 + timedelta(minutes=30)))
        put(store, make_sla(first_response_at=T0 + timedelta(minutes=1), resolved_at=T0 + timedelta(minutes=60)))
        put(store, make_sla())
        clock.advance(hours=1)

        summary = await dashboard.summary(OrganizationContext(ORG_A, "u"))

        assert summary.first_response_compliance == 66.7
        assert summary.resolution_compliance == 100.0

    async def test_uses_policy_window(self, store, sla_repo, clock):
        put(store, make_sla())
        clock.advance(minutes=5)
        dashboard = SLADashboardService(
            sla_repo, StaticPolicyProvider(SLAPolicy(at_risk_window_minutes=60)), clock
        )

        summary = await dashboard.summary(OrganizationContext(ORG_A, "u"))

        assert summary.at_risk_count == 1
