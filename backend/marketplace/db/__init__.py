"""Database Infrastructure — SQLAlchemy Base shared by every ORM model.

Invariants:
    - Single async engine per process (initialized via init_db)

Design Decisions:
    - asyncpg driver for PostgreSQL (native async, no thread pool overhead)
"""
