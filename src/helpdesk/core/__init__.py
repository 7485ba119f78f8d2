"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from helpdesk.core.context import OrganizationContext
from helpdesk.core.unit_of_work import IUnitOfWork
from helpdesk.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    ValidationException,
    ResourceNotFoundException,
    ConflictException,
    InvariantViolationException,
    ConfigurationException,
    ExternalServiceException,
    NotificationException,
)

__all__ = [
    "OrganizationContext",
    "IUnitOfWork",
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "ValidationException",
    "ResourceNotFoundException",
    "ConflictException",
    "InvariantViolationException",
    "ConfigurationException",
    "ExternalServiceException",
    "NotificationException",
]
