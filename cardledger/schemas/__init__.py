"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas check shapes and types at the system boundary
    - Content rules (non-empty labels, cent precision, consistency) live in core/ledger_rules

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence (ADR: DDD boundary)
"""
