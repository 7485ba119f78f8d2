"""
Infrastructure Package
======================

Technical infrastructure shared by the bounded contexts (database engine
and session lifecycle).
"""
