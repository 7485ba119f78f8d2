"""
Request Context
===============

Identity of the caller as established by the authentication gateway.

Every ticket and SLA operation is scoped by ``organization_id``.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class OrganizationContext:
    """Organization and user on whose behalf an operation runs."""
    organization_id: str
    user_id: str
