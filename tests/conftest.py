"""
Shared test fixtures: controllable clock, in-memory collaborators and a
factory for the ticket lifecycle service.
"""

import asyncio
import copy
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from helpdesk.core import IUnitOfWork, NotificationException, OrganizationContext
from helpdesk.infrastructure.database import Base
from helpdesk.shared.infrastructure.cache import InMemoryTTLCache
from helpdesk.shared.infrastructure.email import EmailMessage, IEmailSender
from helpdesk.sla.application import ISLAStatusRepository, StaticPolicyProvider
from helpdesk.sla.domain import SLAStatus
from helpdesk.sla.infrastructure import SLAStatusModel  # noqa: F401 - registers table
from helpdesk.tickets.application import (
    IAttachmentRepository,
    ICommentRepository,
    ITicketNumberAllocator,
    ITicketRepository,
    IUserDirectory,
    TicketEmailTemplates,
    TicketFilterDTO,
    TicketLifecycleService,
    TicketNotifier,
    UserContact,
)
from helpdesk.tickets.domain import Ticket, TicketAttachment, TicketComment
from helpdesk.tickets.infrastructure import TicketModel  # noqa: F401 - registers tables

T0 = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

ORG_A = "a3c1e6b2-0f7e-4b5c-8a7d-1e2f3a4b5c6d"
ORG_B = "b7d2f4a1-9e8c-4d3b-a2f1-0c9e8d7b6a54"
USER_A = "5d1e0b7c-3a2f-4e6d-9c8b-7a6f5e4d3c2b"
USER_B = "6e2f1c8d-4b3a-4f7e-8d9c-8b7a6f5e4d3c"
AGENT = "7f3a2d9e-5c4b-4a8f-9e0d-9c8b7a6f5e4d"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InMemoryStore:
    """Tables shared by the fake repositories."""

    def __init__(self):
        self.tickets: Dict[str, Ticket] = {}
        self.sla: Dict[str, SLAStatus] = {}
        self.comments: List[TicketComment] = []
        self.attachments: List[TicketAttachment] = []
        self.tags: Dict[str, List[str]] = {}
        self.counters: Dict[str, int] = {}

    def snapshot(self) -> dict:
        return copy.deepcopy(self.__dict__)

    def restore(self, state: dict) -> None:
        self.__dict__.update(copy.deepcopy(state))


class FakeUnitOfWork(IUnitOfWork):
    """Commit keeps the store, rollback restores the last committed state."""

    def __init__(self, store: InMemoryStore):
        self._store = store
        self._committed = store.snapshot()
        self.commits = 0
        self.rollbacks = 0

    async def commit(self) -> None:
        self._committed = self._store.snapshot()
        self.commits += 1

    async def rollback(self) -> None:
        self._store.restore(self._committed)
        self.rollbacks += 1


class InMemoryTicketRepository(ITicketRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get(self, organization_id, ticket_id, for_update=False) -> Optional[Ticket]:
        ticket = self._store.tickets.get(ticket_id)
        if ticket is None or ticket.organization_id != organization_id:
            return None
        return copy.deepcopy(ticket)

    async def add(self, ticket: Ticket) -> Ticket:
        ticket.id = str(uuid4())
        self._store.tickets[ticket.id] = copy.deepcopy(ticket)
        return ticket

    async def save(self, ticket: Ticket) -> Ticket:
        self._store.tickets[ticket.id] = copy.deepcopy(ticket)
        return ticket

    async def list(self, organization_id, filters: TicketFilterDTO) -> Tuple[List[Ticket], int]:
        matches = [
            t for t in self._store.tickets.values()
            if t.organization_id == organization_id
            and (filters.status is None or t.status.value == filters.status)
            and (filters.priority is None or t.priority.value == filters.priority)
            and (filters.search is None or filters.search.lower() in t.subject.lower())
        ]
        matches.sort(key=lambda t: t.created_at, reverse=True)
        page = matches[filters.offset:filters.offset + filters.limit]
        return [copy.deepcopy(t) for t in page], len(matches)

    async def list_tags(self, ticket_id) -> List[str]:
        return list(self._store.tags.get(ticket_id, []))

    async def replace_tags(self, ticket_id, tags) -> None:
        self._store.tags[ticket_id] = list(tags)


class InMemoryNumberAllocator(ITicketNumberAllocator):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def next_number(self, organization_id) -> int:
        if organization_id not in self._store.counters:
            self._store.counters[organization_id] = sum(
                1 for t in self._store.tickets.values() if t.organization_id == organization_id
            )
        self._store.counters[organization_id] += 1
        return self._store.counters[organization_id]


class InMemoryCommentRepository(ICommentRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def add(self, comment: TicketComment) -> TicketComment:
        comment.id = str(uuid4())
        self._store.comments.append(copy.deepcopy(comment))
        return comment

    async def list_for_ticket(self, organization_id, ticket_id) -> List[TicketComment]:
        found = [
            copy.deepcopy(c) for c in self._store.comments
            if c.ticket_id == ticket_id and c.organization_id == organization_id
        ]
        return sorted(found, key=lambda c: c.created_at)


class InMemoryAttachmentRepository(IAttachmentRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def list_for_ticket(self, organization_id, ticket_id) -> List[TicketAttachment]:
        ticket = self._store.tickets.get(ticket_id)
        if ticket is None or ticket.organization_id != organization_id:
            return []
        return [copy.deepcopy(a) for a in self._store.attachments if a.ticket_id == ticket_id]


class InMemorySLAStatusRepository(ISLAStatusRepository):
    def __init__(self, store: InMemoryStore, fail_on_add: bool = False):
        self._store = store
        self.fail_on_add = fail_on_add
        self.saves = 0

    async def get_for_ticket(self, organization_id, ticket_id, for_update=False) -> Optional[SLAStatus]:
        sla = self._store.sla.get(ticket_id)
        if sla is None or sla.organization_id != organization_id:
            return None
        return copy.deepcopy(sla)

    async def add(self, status: SLAStatus) -> SLAStatus:
        if self.fail_on_add:
            raise RuntimeError("database unavailable")
        status.id = str(uuid4())
        self._store.sla[status.ticket_id] = copy.deepcopy(status)
        return status

    async def save(self, status: SLAStatus) -> SLAStatus:
        self.saves += 1
        stored = self._store.sla[status.ticket_id]
        self._store.sla[status.ticket_id] = replace(
            copy.deepcopy(status),
            first_response_at=stored.first_response_at or status.first_response_at,
            resolved_at=stored.resolved_at or status.resolved_at,
        )
        return status

    async def save_projection(self, status: SLAStatus) -> SLAStatus:
        self.saves += 1
        stored = self._store.sla[status.ticket_id]
        stored.current_status = status.current_status
        stored.first_response_breached = status.first_response_breached
        stored.resolution_breached = status.resolution_breached
        return status

    async def list_for_organization(self, organization_id) -> List[SLAStatus]:
        return [copy.deepcopy(s) for s in self._store.sla.values() if s.organization_id == organization_id]

    async def list_open(self, limit=1000, offset=0) -> List[SLAStatus]:
        open_ = [
            s for s in self._store.sla.values()
            if s.first_response_at is None or s.resolved_at is None
        ]
        return [copy.deepcopy(s) for s in open_[offset:offset + limit]]


class FakeUserDirectory(IUserDirectory):
    def __init__(self, users: Optional[Dict[str, UserContact]] = None):
        self.users = users or {}

    async def get_contact(self, user_id) -> Optional[UserContact]:
        return self.users.get(user_id)


class RecordingEmailSender(IEmailSender):
    """Keeps sent messages; can be told to fail or hang."""

    def __init__(self):
        self.sent: List[EmailMessage] = []
        self.fail = False
        self.hang = False

    async def send(self, message: EmailMessage) -> None:
        if self.hang:
            await asyncio.sleep(60)
        if self.fail:
            raise NotificationException("provider returned 503")
        self.sent.append(message)

    def subjects(self) -> List[str]:
        return [m.subject for m in self.sent]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def uow(store) -> FakeUnitOfWork:
    return FakeUnitOfWork(store)


@pytest.fixture
def sla_repo(store) -> InMemorySLAStatusRepository:
    return InMemorySLAStatusRepository(store)


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def cache() -> InMemoryTTLCache:
    return InMemoryTTLCache()


@pytest.fixture
def users() -> FakeUserDirectory:
    return FakeUserDirectory({
        AGENT: UserContact(user_id=AGENT, email="agent@example.com", name="Grace Hopper"),
    })


@pytest.fixture
def ctx_a() -> OrganizationContext:
    return OrganizationContext(organization_id=ORG_A, user_id=USER_A)


@pytest.fixture
def ctx_b() -> OrganizationContext:
    return OrganizationContext(organization_id=ORG_B, user_id=USER_B)


@pytest.fixture
def service(store, uow, sla_repo, email_sender, cache, users, clock) -> TicketLifecycleService:
    notifier = TicketNotifier(
        email_sender,
        TicketEmailTemplates("https://support.example.com"),
        timeout_seconds=0.05,
    )
    return TicketLifecycleService(
        ticket_repository=InMemoryTicketRepository(store),
        comment_repository=InMemoryCommentRepository(store),
        attachment_repository=InMemoryAttachmentRepository(store),
        sla_repository=sla_repo,
        number_allocator=InMemoryNumberAllocator(store),
        unit_of_work=uow,
        user_directory=users,
        notifier=notifier,
        cache=cache,
        policy_provider=StaticPolicyProvider(),
        clock=clock,
    )


@pytest.fixture
async def session_factory(tmp_path):
    """Session maker over a fresh SQLite file with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'helpdesk.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    await engine.dispose()


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


def make_sla(started_at: datetime = T0, **overrides) -> SLAStatus:
    """Urgent-priority SLA record: first response due +15m, resolution +120m."""
    sla = SLAStatus(
        ticket_id=str(uuid4()),
        organization_id=ORG_A,
        started_at=started_at,
        first_response_due=started_at + timedelta(minutes=15),
        resolution_due=started_at + timedelta(minutes=120),
    )
    return replace(sla, **overrides)
