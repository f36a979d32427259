"""Database schema initialization for the migration service."""
from __future__ import annotations

from src.shared.db.connection import ConnectionPool


def init_migration_db(pool: ConnectionPool) -> None:
    """Initialize the migration service database schema.

    One row per project.  The full project record (including every
    artifact) lives in ``project_json``; the scalar columns mirror the
    fields the service filters or sorts on.
    """
    conn = pool.get()
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS projects (
            id TEXT PRIMARY KEY,
            project_name TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'created'
                CHECK(status IN ('created','analyzing','analyzed','designing',
                                 'designed','building','built')),
            current_phase TEXT NOT NULL DEFAULT 'pending',
            project_json TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
        CREATE INDEX IF NOT EXISTS idx_projects_created ON projects(created_at);
    """)
    conn.commit()
