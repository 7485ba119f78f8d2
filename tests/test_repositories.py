"""Tests for the SQLAlchemy repositories against SQLite."""

from datetime import timedelta
from uuid import UUID, uuid4

import pytest

from conftest import AGENT, ORG_A, ORG_B, T0, USER_A, USER_B
from helpdesk.config import DESCRIPTION_MAX_LENGTH, SLAState, TicketStatus
from helpdesk.core import ConflictException, OrganizationContext
from helpdesk.shared.infrastructure.cache import InMemoryTTLCache
from helpdesk.shared.infrastructure.email import LoggingEmailClient
from helpdesk.sla.application import SLADashboardService, SLAReconciliationService, StaticPolicyProvider
from helpdesk.sla.domain import SLAPolicy, SLAStatus
from helpdesk.sla.infrastructure import SQLAlchemySLAStatusRepository
from helpdesk.tickets.application import (
    CommentCreateDTO,
    TicketCreateDTO,
    TicketEmailTemplates,
    TicketFilterDTO,
    TicketLifecycleService,
    TicketNotifier,
    TicketUpdateDTO,
)
from helpdesk.tickets.domain import Ticket, TicketComment
from helpdesk.tickets.infrastructure import (
    SQLAlchemyAttachmentRepository,
    SQLAlchemyCommentRepository,
    SQLAlchemyTicketNumberAllocator,
    SQLAlchemyTicketRepository,
    SQLAlchemyUnitOfWork,
    SQLAlchemyUserDirectory,
    TicketAttachmentModel,
    TicketModel,
    UserModel,
)


def make_ticket(number="TKT-A3C-000001", organization_id=ORG_A, created_at=T0, **overrides):
    fields = dict(
        organization_id=organization_id,
        ticket_number=number,
        subject="VPN keeps dropping",
        created_by=USER_A,
        created_at=created_at,
        updated_at=created_at,
    )
    fields.update(overrides)
    return Ticket(**fields)


class TestTicketRepository:
    async def test_add_and_get(self, session):
        repo = SQLAlchemyTicketRepository(session)

        ticket = await repo.add(make_ticket(priority="high", category="technical"))
        await session.commit()

        loaded = await repo.get(ORG_A, ticket.id)
        assert loaded.ticket_number == "TKT-A3C-000001"
        assert loaded.priority.value == "high"
        assert loaded.category.value == "technical"
        assert loaded.created_at == T0
        assert loaded.created_at.tzinfo is not None

    async def test_rows_over_current_limits_still_load(self, session):
        model = TicketModel(
            organization_id=UUID(ORG_A),
            ticket_number="TKT-A3C-000001",
            subject="Imported from the old desk",
            description="x" * (DESCRIPTION_MAX_LENGTH + 1),
            created_by=UUID(USER_A),
            created_at=T0,
            updated_at=T0,
        )
        session.add(model)
        await session.commit()

        loaded = await SQLAlchemyTicketRepository(session).get(ORG_A, str(model.id))

        assert len(loaded.description) == DESCRIPTION_MAX_LENGTH + 1

    async def test_foreign_organization_sees_nothing(self, session):
        repo = SQLAlchemyTicketRepository(session)
        ticket = await repo.add(make_ticket())
        await session.commit()

        assert await repo.get(ORG_B, ticket.id) is None
        assert await repo.get(ORG_A, "not-a-uuid") is None

    async def test_duplicate_number_in_organization_conflicts(self, session):
        repo = SQLAlchemyTicketRepository(session)
        await repo.add(make_ticket())
        await session.commit()

        with pytest.raises(ConflictException):
            await repo.add(make_ticket())
        await session.rollback()

    async def test_same_number_in_other_organization_allowed(self, session):
        repo = SQLAlchemyTicketRepository(session)
        await repo.add(make_ticket())
        await repo.add(make_ticket(organization_id=ORG_B))
        await session.commit()

    async def test_save_persists_latches(self, session):
        repo = SQLAlchemyTicketRepository(session)
        ticket = await repo.add(make_ticket())

        ticket.apply_status(TicketStatus.RESOLVED, T0 + timedelta(hours=1))
        await repo.save(ticket)
        await session.commit()

        loaded = await repo.get(ORG_A, ticket.id)
        assert loaded.status is TicketStatus.RESOLVED
        assert loaded.resolved_at == T0 + timedelta(hours=1)

    async def test_list_newest_first_with_total(self, session):
        repo = SQLAlchemyTicketRepository(session)
        for i in range(3):
            await repo.add(make_ticket(f"TKT-A3C-00000{i}", created_at=T0 + timedelta(minutes=i), subject=f"Issue {i}"))
        await repo.add(make_ticket(organization_id=ORG_B))
        await session.commit()

        tickets, total = await repo.list(ORG_A, TicketFilterDTO(limit=2))

        assert total == 3
        assert [t.subject for t in tickets] == ["Issue 2", "Issue 1"]

        tickets, _ = await repo.list(ORG_A, TicketFilterDTO(limit=2, offset=2))
        assert [t.subject for t in tickets] == ["Issue 0"]

    async def test_list_filters(self, session):
        repo = SQLAlchemyTicketRepository(session)
        await repo.add(make_ticket("TKT-A3C-000001", priority="low", assigned_to=AGENT))
        await repo.add(make_ticket("TKT-A3C-000002", priority="high", status="waiting"))
        await session.commit()

        _, by_priority = await repo.list(ORG_A, TicketFilterDTO(priority="low"))
        _, by_status = await repo.list(ORG_A, TicketFilterDTO(status="waiting"))
        tickets, _ = await repo.list(ORG_A, TicketFilterDTO(assigned_to=UUID(AGENT)))

        assert (by_priority, by_status) == (1, 1)
        assert tickets[0].assigned_to == AGENT

    async def test_search_is_case_insensitive_and_literal(self, session):
        repo = SQLAlchemyTicketRepository(session)
        await repo.add(make_ticket("TKT-A3C-000001", subject="Disk 100% full"))
        await repo.add(make_ticket("TKT-A3C-000002", subject="Disk 1000 errors"))
        await session.commit()

        tickets, total = await repo.list(ORG_A, TicketFilterDTO(search="100%"))
        assert total == 1
        assert tickets[0].subject == "Disk 100% full"

        _, total = await repo.list(ORG_A, TicketFilterDTO(search="disk"))
        assert total == 2

    async def test_tags_keep_order_and_replace(self, session):
        repo = SQLAlchemyTicketRepository(session)
        ticket = await repo.add(make_ticket())

        await repo.replace_tags(ticket.id, ["zeta", "alpha", "mid"])
        assert await repo.list_tags(ticket.id) == ["zeta", "alpha", "mid"]

        await repo.replace_tags(ticket.id, ["only"])
        await session.commit()
        assert await repo.list_tags(ticket.id) == ["only"]


class TestTicketNumberAllocator:
    async def test_seeds_from_existing_count(self, session):
        repo = SQLAlchemyTicketRepository(session)
        await repo.add(make_ticket("LEGACY-1"))
        await repo.add(make_ticket("LEGACY-2"))
        await session.commit()

        allocator = SQLAlchemyTicketNumberAllocator(session)

        assert await allocator.next_number(ORG_A) == 3
        assert await allocator.next_number(ORG_A) == 4
        assert await allocator.next_number(ORG_B) == 1

    async def test_counter_survives_commit(self, session_factory):
        async with session_factory() as first:
            await SQLAlchemyTicketNumberAllocator(first).next_number(ORG_A)
            await first.commit()

        async with session_factory() as second:
            assert await SQLAlchemyTicketNumberAllocator(second).next_number(ORG_A) == 2


class TestCommentAndAttachmentRepositories:
    async def test_comments_oldest_first_and_scoped(self, session):
        ticket = await SQLAlchemyTicketRepository(session).add(make_ticket())
        repo = SQLAlchemyCommentRepository(session)
        for minutes, content in ((5, "second"), (1, "first")):
            await repo.add(TicketComment(
                ticket_id=ticket.id,
                organization_id=ORG_A,
                user_id=USER_A,
                content=content,
                created_at=T0 + timedelta(minutes=minutes),
                updated_at=T0 + timedelta(minutes=minutes),
            ))
        await session.commit()

        comments = await repo.list_for_ticket(ORG_A, ticket.id)

        assert [c.content for c in comments] == ["first", "second"]
        assert await repo.list_for_ticket(ORG_B, ticket.id) == []

    async def test_attachments_scoped_through_ticket(self, session):
        ticket = await SQLAlchemyTicketRepository(session).add(make_ticket())
        session.add(TicketAttachmentModel(
            ticket_id=UUID(ticket.id),
            file_name="screenshot.png",
            file_key="org/ticket/screenshot.png",
            mime_type="image/png",
            uploaded_by=UUID(USER_A),
            created_at=T0,
        ))
        await session.commit()

        repo = SQLAlchemyAttachmentRepository(session)

        attachments = await repo.list_for_ticket(ORG_A, ticket.id)
        assert [a.file_name for a in attachments] == ["screenshot.png"]
        assert await repo.list_for_ticket(ORG_B, ticket.id) == []


class TestUserDirectory:
    async def test_contact_lookup(self, session):
        session.add(UserModel(id=UUID(AGENT), email="agent@example.com", name="Grace Hopper"))
        await session.commit()

        directory = SQLAlchemyUserDirectory(session)

        contact = await directory.get_contact(AGENT)
        assert contact.email == "agent@example.com"
        assert await directory.get_contact(str(uuid4())) is None
        assert await directory.get_contact("nope") is None


class TestSLAStatusRepository:
    async def _add(self, session, organization_id=ORG_A, **overrides) -> SLAStatus:
        ticket = await SQLAlchemyTicketRepository(session).add(
            make_ticket(f"TKT-{uuid4().hex[:8]}", organization_id=organization_id)
        )
        status = SLAStatus(
            ticket_id=ticket.id,
            organization_id=organization_id,
            started_at=T0,
            first_response_due=T0 + timedelta(minutes=15),
            resolution_due=T0 + timedelta(minutes=120),
        )
        for key, value in overrides.items():
            setattr(status, key, value)
        return await SQLAlchemySLAStatusRepository(session).add(status)

    async def test_round_trip(self, session):
        added = await self._add(session)
        await session.commit()

        repo = SQLAlchemySLAStatusRepository(session)
        loaded = await repo.get_for_ticket(ORG_A, added.ticket_id)

        assert loaded.first_response_due == T0 + timedelta(minutes=15)
        assert loaded.current_status == SLAState.ON_TRACK
        assert await repo.get_for_ticket(ORG_B, added.ticket_id) is None

    async def test_save_updates_stamps(self, session):
        added = await self._add(session)
        repo = SQLAlchemySLAStatusRepository(session)

        added.mark_first_response(T0 + timedelta(minutes=20))
        await repo.save(added.evaluated(T0 + timedelta(minutes=20)))
        await session.commit()

        loaded = await repo.get_for_ticket(ORG_A, added.ticket_id)
        assert loaded.first_response_at == T0 + timedelta(minutes=20)
        assert loaded.first_response_breached is True

    async def test_list_open_excludes_completed(self, session):
        open_ = await self._add(session)
        await self._add(session, first_response_at=T0, resolved_at=T0)
        await self._add(session, organization_id=ORG_B)
        await session.commit()

        repo = SQLAlchemySLAStatusRepository(session)

        assert len(await repo.list_open()) == 2
        assert [s.ticket_id for s in await repo.list_for_organization(ORG_A)].count(open_.ticket_id) == 1
        assert len(await repo.list_for_organization(ORG_A)) == 2

    async def test_reconciliation_persists_state(self, session, clock):
        added = await self._add(session)
        await session.commit()
        clock.advance(minutes=16)

        repo = SQLAlchemySLAStatusRepository(session)
        service = SLAReconciliationService(repo, SQLAlchemyUnitOfWork(session), StaticPolicyProvider(), clock)
        result = await service.reconcile()

        assert result["updated"] == 1
        loaded = await repo.get_for_ticket(ORG_A, added.ticket_id)
        assert loaded.current_status == SLAState.BREACHED


@pytest.fixture
def sql_service(session, clock):
    return TicketLifecycleService(
        ticket_repository=SQLAlchemyTicketRepository(session),
        comment_repository=SQLAlchemyCommentRepository(session),
        attachment_repository=SQLAlchemyAttachmentRepository(session),
        sla_repository=SQLAlchemySLAStatusRepository(session),
        number_allocator=SQLAlchemyTicketNumberAllocator(session),
        unit_of_work=SQLAlchemyUnitOfWork(session),
        user_directory=SQLAlchemyUserDirectory(session),
        notifier=TicketNotifier(LoggingEmailClient(), TicketEmailTemplates("https://support.example.com")),
        cache=InMemoryTTLCache(),
        policy_provider=StaticPolicyProvider(SLAPolicy()),
        clock=clock,
    )


class TestLifecycleOnDatabase:
    async def test_full_lifecycle(self, sql_service, session, clock):
        ctx = OrganizationContext(ORG_A, USER_A)

        ticket = await sql_service.create_ticket(ctx, TicketCreateDTO(
            subject="Cannot log in", priority="urgent", requester_email="ada@example.com"
        ))
        assert ticket.ticket_number == "TKT-A3C-000001"

        clock.advance(minutes=5)
        await sql_service.add_comment(ctx, ticket.id, CommentCreateDTO(content="On it"))
        clock.advance(minutes=10)
        await sql_service.add_comment(ctx, ticket.id, CommentCreateDTO(content="Still on it"))
        clock.advance(minutes=30)
        await sql_service.update_ticket(ctx, ticket.id, TicketUpdateDTO(status="resolved", tags=["login"]))

        detail = await sql_service.get_ticket(ctx, ticket.id)

        assert detail.ticket.status is TicketStatus.RESOLVED
        assert detail.ticket.resolved_at == T0 + timedelta(minutes=45)
        assert len(detail.comments) == 2
        assert detail.tags == ["login"]
        assert detail.sla.first_response_at == T0 + timedelta(minutes=5)
        assert detail.sla.resolved_at == T0 + timedelta(minutes=45)
        assert detail.sla.current_status == SLAState.ON_TRACK
        assert not detail.sla.first_response_breached

    async def test_numbers_and_isolation(self, sql_service, session):
        ctx_a = OrganizationContext(ORG_A, USER_A)
        ctx_b = OrganizationContext(ORG_B, USER_B)

        for _ in range(3):
            last = await sql_service.create_ticket(ctx_a, TicketCreateDTO(subject="Question"))
        other = await sql_service.create_ticket(ctx_b, TicketCreateDTO(subject="Question"))

        assert last.ticket_number == "TKT-A3C-000003"
        assert other.ticket_number == "TKT-B7D-000001"

        _, total = await sql_service.list_tickets(ctx_b, TicketFilterDTO())
        assert total == 1

    async def test_reconciliation_keeps_concurrent_reply(self, sql_service, session_factory, clock):
        ctx = OrganizationContext(ORG_A, USER_A)
        ticket = await sql_service.create_ticket(ctx, TicketCreateDTO(subject="Down", priority="urgent"))
        clock.advance(minutes=20)

        async with session_factory() as job_session:
            repo = SQLAlchemySLAStatusRepository(job_session)
            list_open = repo.list_open

            async def reply_after_read(limit=1000, offset=0):
                batch = await list_open(limit, offset)
                await sql_service.add_comment(ctx, ticket.id, CommentCreateDTO(content="On it"))
                return batch

            repo.list_open = reply_after_read
            service = SLAReconciliationService(
                repo, SQLAlchemyUnitOfWork(job_session), StaticPolicyProvider(), clock
            )
            await service.reconcile()

        async with session_factory() as check:
            stored = await SQLAlchemySLAStatusRepository(check).get_for_ticket(ORG_A, ticket.id)

        assert stored.first_response_at == T0 + timedelta(minutes=20)
        assert stored.first_response_breached is True
        assert stored.current_status == SLAState.ON_TRACK

    async def test_save_never_clears_a_stamp(self, sql_service, session, clock):
        ctx = OrganizationContext(ORG_A, USER_A)
        ticket = await sql_service.create_ticket(ctx, TicketCreateDTO(subject="Down"))
        repo = SQLAlchemySLAStatusRepository(session)
        stale = await repo.get_for_ticket(ORG_A, ticket.id)

        clock.advance(minutes=5)
        await sql_service.add_comment(ctx, ticket.id, CommentCreateDTO(content="On it"))
        await repo.save(stale)
        await session.commit()

        loaded = await repo.get_for_ticket(ORG_A, ticket.id, for_update=True)
        assert loaded.first_response_at == T0 + timedelta(minutes=5)

    async def test_dashboard_over_database(self, sql_service, session, clock):
        ctx = OrganizationContext(ORG_A, USER_A)
        await sql_service.create_ticket(ctx, TicketCreateDTO(subject="Down", priority="urgent"))
        await sql_service.create_ticket(ctx, TicketCreateDTO(subject="Slow", priority="low"))
        clock.advance(minutes=16)

        dashboard = SLADashboardService(SQLAlchemySLAStatusRepository(session), StaticPolicyProvider(), clock)
        summary = await dashboard.summary(ctx)

        assert summary.total_tickets == 2
        assert summary.breached_count == 1
        assert summary.on_track_count == 1
