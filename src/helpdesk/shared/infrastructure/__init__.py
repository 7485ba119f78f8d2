"""
Infrastructure Layer
=====================

Low-level technical concerns shared by all bounded contexts:
- Logging setup
- Read-through cache
- Email delivery
"""
