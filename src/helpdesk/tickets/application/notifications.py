"""
Ticket Notifications
=====================

Email content for ticket lifecycle events and a best-effort dispatcher.

Dispatch runs after the primary write has committed. Every failure,
including a timeout, is logged and dropped.
"""

import asyncio
from html import escape
from typing import Optional

from helpdesk.core import ApplicationException
from helpdesk.shared.infrastructure.email import EmailMessage, IEmailSender
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.tickets.domain import Ticket

logger = get_logger(__name__)


class TicketEmailTemplates:
    """Builders for the four ticket notification emails."""

    def __init__(self, public_site_url: str):
        self.portal_url = f"{public_site_url.rstrip('/')}/portal"

    def _portal_link(self) -> str:
        return f'<a href="{escape(self.portal_url)}">Support Portal</a>'

    def ticket_created(self, ticket: Ticket) -> EmailMessage:
        number = escape(ticket.ticket_number)
        subject = escape(ticket.subject)
        priority = escape(ticket.priority.value)
        name = escape(ticket.requester_name or "there")

        return EmailMessage(
            to=[ticket.requester_email],
            subject=f"Ticket Created: {ticket.ticket_number} - {ticket.subject}",
            html=(
                "<h2>Your support ticket has been created</h2>"
                f"<p>Hello {name},</p>"
                f"<p>We've received your support request and created ticket <strong>{number}</strong>.</p>"
                f"<p><strong>Subject:</strong> {subject}</p>"
                f"<p><strong>Priority:</strong> {priority}</p>"
                "<p>Our support team will review your ticket and get back to you soon.</p>"
                f"<p>You can track your ticket status at: {self._portal_link()}</p>"
            ),
            text=(
                "Your support ticket has been created\n\n"
                f"Ticket Number: {ticket.ticket_number}\n"
                f"Subject: {ticket.subject}\n"
                f"Priority: {ticket.priority.value}\n\n"
                "Our support team will review your ticket and get back to you soon.\n"
                f"Track it at: {self.portal_url}\n"
            ),
            tags={"event": "ticket_created", "ticket_number": ticket.ticket_number},
        )

    def ticket_updated(self, ticket: Ticket) -> EmailMessage:
        number = escape(ticket.ticket_number)
        status = escape(ticket.status.value)

        return EmailMessage(
            to=[ticket.requester_email],
            subject=f"Ticket Updated: {ticket.ticket_number}",
            html=(
                "<h2>Your ticket has been updated</h2>"
                f"<p>Ticket <strong>{number}</strong> status has been updated to <strong>{status}</strong>.</p>"
                f"<p><strong>Subject:</strong> {escape(ticket.subject)}</p>"
                f"<p>View your ticket: {self._portal_link()}</p>"
            ),
            text=(
                f"Ticket {ticket.ticket_number} status has been updated to {ticket.status.value}.\n"
                f"Subject: {ticket.subject}\n"
                f"View your ticket: {self.portal_url}\n"
            ),
            tags={"event": "ticket_updated", "ticket_number": ticket.ticket_number},
        )

    def ticket_resolved(self, ticket: Ticket) -> EmailMessage:
        number = escape(ticket.ticket_number)

        return EmailMessage(
            to=[ticket.requester_email],
            subject=f"Ticket Resolved: {ticket.ticket_number}",
            html=(
                "<h2>Your ticket has been resolved</h2>"
                f"<p>Ticket <strong>{number}</strong> has been marked as resolved.</p>"
                f"<p><strong>Subject:</strong> {escape(ticket.subject)}</p>"
                "<p>Thank you for contacting us. If you need further assistance, "
                "please reply to this email or create a new ticket.</p>"
            ),
            text=(
                f"Ticket {ticket.ticket_number} has been marked as resolved.\n"
                f"Subject: {ticket.subject}\n"
            ),
            tags={"event": "ticket_resolved", "ticket_number": ticket.ticket_number},
        )

    def ticket_assigned(self, ticket: Ticket, assignee_email: str, assignee_name: Optional[str]) -> EmailMessage:
        number = escape(ticket.ticket_number)
        name = escape(assignee_name or assignee_email)

        return EmailMessage(
            to=[assignee_email],
            subject=f"Ticket Assigned: {ticket.ticket_number}",
            html=(
                "<h2>New ticket assigned to you</h2>"
                f"<p>Hello {name},</p>"
                f"<p>You've been assigned to ticket <strong>{number}</strong>.</p>"
                f"<p><strong>Subject:</strong> {escape(ticket.subject)}</p>"
                f"<p><strong>Priority:</strong> {escape(ticket.priority.value)}</p>"
                "<p>Please review and respond to this ticket.</p>"
            ),
            text=(
                f"You've been assigned to ticket {ticket.ticket_number}.\n"
                f"Subject: {ticket.subject}\n"
            ),
            tags={"event": "ticket_assigned", "ticket_number": ticket.ticket_number},
        )


class TicketNotifier:
    """
    Sends ticket emails without ever failing the caller.

    Requester emails are skipped when the ticket has no requester address.
    """

    def __init__(
        self,
        sender: IEmailSender,
        templates: TicketEmailTemplates,
        timeout_seconds: float = 10.0
    ):
        self._sender = sender
        self._templates = templates
        self._timeout = timeout_seconds

    async def ticket_created(self, ticket: Ticket) -> bool:
        if not ticket.requester_email:
            return False
        return await self._dispatch("ticket_created", ticket, self._templates.ticket_created(ticket))

    async def ticket_updated(self, ticket: Ticket) -> bool:
        if not ticket.requester_email:
            return False
        return await self._dispatch("ticket_updated", ticket, self._templates.ticket_updated(ticket))

    async def ticket_resolved(self, ticket: Ticket) -> bool:
        if not ticket.requester_email:
            return False
        return await self._dispatch("ticket_resolved", ticket, self._templates.ticket_resolved(ticket))

    async def ticket_assigned(
        self,
        ticket: Ticket,
        assignee_email: Optional[str],
        assignee_name: Optional[str] = None
    ) -> bool:
        if not assignee_email:
            return False
        message = self._templates.ticket_assigned(ticket, assignee_email, assignee_name)
        return await self._dispatch("ticket_assigned", ticket, message)

    async def _dispatch(self, event: str, ticket: Ticket, message: EmailMessage) -> bool:
        try:
            await asyncio.wait_for(self._sender.send(message), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error(
                "Notification timed out",
                extra={"event": event, "ticket_id": ticket.id, "timeout_seconds": self._timeout}
            )
            return False
        except ApplicationException as e:
            logger.error(
                "Failed to send notification",
                extra={"event": event, "ticket_id": ticket.id, "error": e.message}
            )
            return False
        except Exception as e:
            logger.exception(
                "Unexpected error sending notification",
                extra={"event": event, "ticket_id": ticket.id, "error": str(e)}
            )
            return False

        logger.info("Notification sent", extra={"event": event, "ticket_id": ticket.id})
        return True
