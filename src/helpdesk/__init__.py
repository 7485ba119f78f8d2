"""
Helpdesk Service
================

Multi-tenant customer support ticketing with SLA tracking.

Bounded contexts:
- tickets: Ticket lifecycle (create, update, assign, comment, read)
- sla: Service level agreement deadlines, evaluation and reporting
"""

__version__ = "1.0.0"
