"""
Email Delivery
==============

Email senders for ticket notifications:
- HTTP email provider client (httpx) with circuit breaker and retry
- Logging sender for development environments
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from helpdesk.core import NotificationException
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass
class EmailMessage:
    """Outgoing email."""
    to: List[str]
    subject: str
    html: str
    text: Optional[str] = None
    sender: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)


class IEmailSender(ABC):
    """Interface for the email delivery collaborator."""

    @abstractmethod
    async def send(self, message: EmailMessage) -> None:
        """Deliver a message. Raises NotificationException on failure."""

    async def close(self) -> None:
        """Release any held connections."""


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        """Get current circuit state."""
        if self._state == CircuitState.OPEN and self._last_failure_time:
            elapsed = time.monotonic() - self._last_failure_time
            if elapsed >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class HTTPEmailClient(IEmailSender):
    """
    JSON-over-HTTP email provider client.

    Posts ``{"from", "to", "subject", "html", "text"}`` to the configured
    endpoint with a bearer token, retrying with exponential backoff and
    short-circuiting while the provider keeps failing.
    """

    def __init__(
        self,
        api_url: str,
        api_key: Optional[str],
        default_sender: str,
        timeout_seconds: float = 5.0,
        max_retries: int = 3,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self._api_url = api_url
        self._api_key = api_key
        self._default_sender = default_sender
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries
        self._circuit_breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        self._http_client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout_seconds)
        return self._http_client

    def _build_payload(self, message: EmailMessage) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "from": message.sender or self._default_sender,
            "to": message.to,
            "subject": message.subject,
            "html": message.html,
        }
        if message.text:
            payload["text"] = message.text
        if message.tags:
            payload["tags"] = [{"name": k, "value": v} for k, v in message.tags.items()]
        return payload

    async def send(self, message: EmailMessage) -> None:
        if not self._circuit_breaker.allow_request():
            raise NotificationException("circuit open, email not sent", {"to": message.to})

        headers = {}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        payload = self._build_payload(message)
        last_error: Optional[str] = None

        for attempt in range(self._max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self._api_url, json=payload, headers=headers)

                if response.is_success:
                    self._circuit_breaker.record_success()
                    logger.info(
                        "Email sent",
                        extra={"email_subject": message.subject, "recipients": len(message.to)}
                    )
                    return

                last_error = f"provider returned {response.status_code}"
                logger.warning(
                    "Email provider returned non-2xx",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )
                if response.status_code < 500 and response.status_code != 429:
                    # Client errors will not succeed on retry
                    break

            except httpx.HTTPError as e:
                last_error = str(e)
                logger.error(
                    "Email delivery failed",
                    extra={"error": str(e), "attempt": attempt + 1}
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(2 ** attempt)

        self._circuit_breaker.record_failure()
        raise NotificationException(last_error or "delivery failed", {"to": message.to})

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class LoggingEmailClient(IEmailSender):
    """Development sender that only logs what would be sent."""

    async def send(self, message: EmailMessage) -> None:
        logger.info(
            "Email not delivered (no provider configured)",
            extra={"email_to": message.to, "email_subject": message.subject}
        )
