"""Services Layer — the reflection flow, assistant adapter and narration dispatch.

Invariants:
    - Services hold no HTTP concerns; routes translate to and from JSON
    - Pure decisions are delegated to core/, IO to infrastructure/
"""
