"""Services Layer — the imperative shell around the pure ledger rules.

Invariants:
    - Every operation takes the owner explicitly; nothing reads ambient request state
    - Every write runs inside unit_of_work(): failures roll back the whole transaction

Design Decisions:
    - One class per component (CardStore, PostingEngine, OrderingManager), each bound
      to the request's AsyncSession (ADR: impureim sandwich)
"""
