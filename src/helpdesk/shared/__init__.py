"""
Shared Kernel Module
====================

Shared infrastructure used across all bounded contexts (Tickets and SLA).

Architecture Pattern: Modular Monolith
- Each module (tickets, sla) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add business logic from Tickets or SLA to shared kernel.
"""
