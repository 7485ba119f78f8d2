"""
Tickets Module
==============

Ticket lifecycle: creation, updates, assignment, comments and the
notifications they trigger. Keeps each ticket's SLA record in lockstep.
"""
