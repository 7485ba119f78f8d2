"""
Unit of Work
============

Transaction boundary shared by the repositories of one request.
"""

from abc import ABC, abstractmethod


class IUnitOfWork(ABC):
    """Commits or rolls back everything the repositories have staged."""

    @abstractmethod
    async def commit(self) -> None:
        """Make staged writes durable."""

    @abstractmethod
    async def rollback(self) -> None:
        """Discard staged writes."""
