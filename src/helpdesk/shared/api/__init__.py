"""
Shared API Layer
================

Middleware, exception handlers and common dependencies.
"""
