"""Core Layer — pure descriptor algebra, no IO, no async.

Invariants:
    - No module in core/ imports from services/, schemas/ or infrastructure/
    - All functions are pure and deterministic; instances are immutable

Design Decisions:
    - Functional core separated from the stateful loader and the wire format
"""
