"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """
    Exception for validation errors.

    ``details["errors"]`` maps field names to messages.
    """

    def __init__(self, message: str, errors: Optional[dict] = None):
        self.errors = errors or {}
        super().__init__(message, {"errors": self.errors})

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationException":
        return cls(f"{field}: {message}", {field: message})


class ResourceNotFoundException(ApplicationException):
    """
    Exception when a requested resource is not found.

    Raised identically whether the resource does not exist or belongs to
    another organization.
    """

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} not found", details)


class ConflictException(ApplicationException):
    """Exception for uniqueness violations."""


class InvariantViolationException(DomainException):
    """Persisted state breaks an invariant that should always hold."""


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class NotificationException(ExternalServiceException):
    """Exception for email delivery failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Email Service", message, details)
