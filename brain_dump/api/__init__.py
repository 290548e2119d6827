"""API Layer — FastAPI routes, provider dependencies and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - Providers reach routes only through api/dependencies.py

Design Decisions:
    - Thin routes delegate to services/ReflectionFlow
"""
