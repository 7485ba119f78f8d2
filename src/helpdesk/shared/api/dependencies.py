"""
Shared API Dependencies
========================

FastAPI dependencies for request context and process-wide collaborators.

Collaborators are created once in the application lifespan and kept on
``app.state``; tests replace them through ``app.dependency_overrides``.
"""

from uuid import UUID

from fastapi import Header, Request

from helpdesk.core import OrganizationContext
from helpdesk.shared.clock import Clock, utc_now
from helpdesk.shared.infrastructure.cache import ICache
from helpdesk.shared.infrastructure.email import IEmailSender
from helpdesk.sla.application.services import ISLAPolicyProvider


async def get_organization_context(
    organization_id: UUID = Header(..., alias="X-Organization-ID"),
    user_id: UUID = Header(..., alias="X-User-ID"),
) -> OrganizationContext:
    """Caller identity as set by the upstream auth gateway."""
    return OrganizationContext(organization_id=str(organization_id), user_id=str(user_id))


def get_policy_provider(request: Request) -> ISLAPolicyProvider:
    return request.app.state.sla_policy_provider


def get_cache(request: Request) -> ICache:
    return request.app.state.cache


def get_email_sender(request: Request) -> IEmailSender:
    return request.app.state.email_sender


def get_clock() -> Clock:
    return utc_now
