"""Services Layer — orchestrates core rules around storage IO.

Invariants:
    - Services depend on core/ protocols, never on a concrete store

Design Decisions:
    - One service per aggregate: the arbitration engine owns product/request decisions
"""
