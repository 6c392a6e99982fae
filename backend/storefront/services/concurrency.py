# Overview: Service-layer helpers for concurrency; row locking for critical reads.

from __future__ import annotations


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the conditional UPDATEs in the stores serialize on the database
    write lock instead.
    """
    return query.with_for_update()


def for_update_clause(dialect_name: str) -> str:
    """Raw-SQL counterpart of lock_for_update for hand-written queries."""
    if dialect_name == "sqlite":
        return ""
    return " FOR UPDATE"
