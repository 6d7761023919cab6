"""Infrastructure Layer — database access and cross-cutting concerns.

Invariants:
    - Infrastructure never imports core ledger rules, only core error types
    - Every store failure surfaces as StorageError

Design Decisions:
    - Resilient wrappers over raw clients (ADR: single responsibility)
"""
