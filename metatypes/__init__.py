"""metatypes — runtime structural type descriptors with content-addressed ids.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports from metatypes.core.* / metatypes.services.*,
      no star exports
"""
