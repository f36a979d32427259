"""Project storage layer for the migration service."""
from __future__ import annotations

from src.shared.db.connection import ConnectionPool
from src.shared.errors import NotFoundError
from src.shared.models.migration import Project


class ProjectStore:
    """Persists and retrieves Project records from the database.

    Uses the projects table with columns:
    - id TEXT PRIMARY KEY
    - project_name TEXT NOT NULL
    - status TEXT NOT NULL
    - current_phase TEXT NOT NULL
    - project_json TEXT NOT NULL (the full camelCase record)
    - created_at TEXT NOT NULL
    - updated_at TEXT NOT NULL
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def insert(self, project: Project) -> None:
        """Insert a new project row."""
        with self._pool.transaction() as conn:
            conn.execute(
                """INSERT INTO projects
                   (id, project_name, status, current_phase, project_json, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    project.id,
                    project.project_name,
                    project.status.value,
                    project.current_phase.value,
                    project.model_dump_json(by_alias=True),
                    project.created_at,
                    project.updated_at,
                ),
            )

    def get(self, project_id: str) -> Project | None:
        """Get a project by ID.

        Returns:
            The Project or None if not found.
        """
        conn = self._pool.get()
        row = conn.execute(
            "SELECT project_json FROM projects WHERE id = ?", (project_id,)
        ).fetchone()
        if row is None:
            return None
        return Project.model_validate_json(row["project_json"])

    def update(self, project: Project) -> None:
        """Overwrite the stored record of *project* in one statement.

        Raises:
            NotFoundError: If no row exists for the project ID.
        """
        with self._pool.transaction() as conn:
            cursor = conn.execute(
                """UPDATE projects
                   SET project_name = ?, status = ?, current_phase = ?,
                       project_json = ?, updated_at = ?
                   WHERE id = ?""",
                (
                    project.project_name,
                    project.status.value,
                    project.current_phase.value,
                    project.model_dump_json(by_alias=True),
                    project.updated_at,
                    project.id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Project not found")

    def list(self, limit: int = 100) -> list[Project]:
        """List projects, most recently created first."""
        conn = self._pool.get()
        rows = conn.execute(
            "SELECT project_json FROM projects ORDER BY created_at DESC, rowid DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [Project.model_validate_json(row["project_json"]) for row in rows]
