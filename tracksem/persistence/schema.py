"""
Relational schema for courses, components and sub-items.

Deleting a course cascades to its components, and deleting a component
cascades to its sub-items.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List

from .database import DatabaseManager


logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


@dataclass
class Migration:
    """A versioned set of DDL statements."""
    version: int
    name: str
    statements: Dict[str, str]
    description: str = ""


MIGRATIONS: List[Migration] = [
    Migration(
        version=1,
        name="initial_schema",
        description="Courses, components and sub-items with cascading deletes",
        statements={
            "courses": """
                CREATE TABLE IF NOT EXISTS courses (
                    id         TEXT PRIMARY KEY,
                    user_id    TEXT NOT NULL,
                    name       TEXT NOT NULL,
                    full_name  TEXT NOT NULL,
                    color      TEXT NOT NULL,
                    template   TEXT,
                    sort_order INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """,
            "courses_user_index": """
                CREATE INDEX IF NOT EXISTS idx_courses_user_id ON courses (user_id)
            """,
            "components": """
                CREATE TABLE IF NOT EXISTS components (
                    id         TEXT PRIMARY KEY,
                    course_id  TEXT NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
                    name       TEXT NOT NULL,
                    weight     REAL NOT NULL DEFAULT 0,
                    max_score  REAL NOT NULL DEFAULT 100,
                    score      REAL,
                    best_of    INTEGER,
                    sort_order INTEGER NOT NULL DEFAULT 0
                )
            """,
            "sub_items": """
                CREATE TABLE IF NOT EXISTS sub_items (
                    id           TEXT PRIMARY KEY,
                    component_id TEXT NOT NULL REFERENCES components(id) ON DELETE CASCADE,
                    name         TEXT NOT NULL,
                    score        REAL,
                    max_score    REAL NOT NULL DEFAULT 100,
                    sort_order   INTEGER NOT NULL DEFAULT 0
                )
            """,
        },
    ),
]


def _ensure_migrations_table(database: DatabaseManager) -> None:
    database.create_tables({
        "schema_migrations": """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version     INTEGER PRIMARY KEY,
                name        TEXT NOT NULL,
                applied_at  TEXT NOT NULL,
                description TEXT
            )
        """
    })


def current_version(database: DatabaseManager) -> int:
    """Highest applied schema version, 0 for an empty database."""
    _ensure_migrations_table(database)
    rows = database.execute_query("SELECT MAX(version) AS version FROM schema_migrations")
    if not rows or rows[0]["version"] is None:
        return 0
    return int(rows[0]["version"])


def apply_schema(database: DatabaseManager) -> int:
    """Apply pending migrations; safe to call on every start-up."""
    applied = current_version(database)
    for migration in MIGRATIONS:
        if migration.version <= applied:
            continue
        database.create_tables(migration.statements)
        database.execute_update(
            "INSERT INTO schema_migrations (version, name, applied_at, description) VALUES (?, ?, ?, ?)",
            (migration.version, migration.name,
             datetime.now(timezone.utc).isoformat(), migration.description),
        )
        logger.info("Applied migration %s (%s)", migration.version, migration.name)
        applied = migration.version
    return applied
