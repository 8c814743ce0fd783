"""Infrastructure Layer — database access, storage adapters, logging.

Invariants:
    - SQLAlchemy exceptions never escape this layer unmapped (DatabaseError)

Design Decisions:
    - Storage adapters implement core/repository_protocols.py structurally
"""
