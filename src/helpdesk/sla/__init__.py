"""
SLA Module
==========

Service Level Agreement tracking: target policy, due-date calculation,
status evaluation, reconciliation and dashboard.
"""
