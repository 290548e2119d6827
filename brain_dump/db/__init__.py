"""Database Metadata — SQLAlchemy declarative base for the relational store.

Invariants:
    - Engines and sessions live in infrastructure/database.py, not here
"""
