# Overview: Connection diagnostics; engine, SQLite version, foreign-key enforcement, tables.

from __future__ import annotations

import time

from sqlalchemy import inspect, text

from ..extensions import db


def _redacted_url() -> str:
    return db.engine.url.render_as_string(hide_password=True)


def connection_diagnostics() -> dict:
    """
    Probe the configured database on a fresh connection.

    Raises whatever the driver raises when the database is unreachable;
    callers decide whether that is a 503 or a CLI failure.
    """
    start = time.time()
    engine = db.engine
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
        info = {
            "dialect": engine.dialect.name,
            "driver": engine.dialect.driver,
            "url": _redacted_url(),
        }
        if engine.dialect.name == "sqlite":
            info["sqlite_version"] = conn.execute(text("SELECT sqlite_version()")).scalar_one()
            info["foreign_keys"] = bool(conn.execute(text("PRAGMA foreign_keys")).scalar_one())
        else:
            info["server_version"] = ".".join(str(p) for p in engine.dialect.server_version_info or ())
            info["foreign_keys"] = True
        tables = sorted(inspect(conn).get_table_names())

    info["tables"] = tables
    info["table_count"] = len(tables)
    info["latency_ms"] = round((time.time() - start) * 1000, 2)
    return info


def check_database_health() -> dict:
    """Health-check view of connection_diagnostics(): never raises."""
    start = time.time()
    try:
        info = connection_diagnostics()
    except Exception as exc:
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "error": type(exc).__name__,
        }

    expected = {"categories", "products", "customers", "orders", "order_items", "order_sequences"}
    missing = sorted(expected - set(info["tables"]))
    status = "healthy"
    if missing or not info["foreign_keys"]:
        status = "degraded"
    return {
        "status": status,
        "latency_ms": info["latency_ms"],
        "details": {
            "dialect": info["dialect"],
            "foreign_keys": info["foreign_keys"],
            "missing_tables": missing,
        },
    }
