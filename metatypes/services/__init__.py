"""Services Layer — the stateful converter loader and the record serializer.

Invariants:
    - Services build on core/ and never the other way round
    - The converter loader is the only stateful, asynchronous component
"""
