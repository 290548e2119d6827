"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (user input, API responses)
    - Domain enums from core/ used for constrained fields

Design Decisions:
    - Separate from records/models: schemas are API contracts
"""
