"""Pydantic Schemas — wire format of serialized meta records.

Invariants:
    - Schemas validate at the system boundary (records read from JSON or storage)
    - Domain enums from core/ used for the kind field

Design Decisions:
    - Separate from core: records are a transport contract, meta instances are the domain model
"""
