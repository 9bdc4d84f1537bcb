"""
Persistence module for relational storage of courses, components and sub-items.
"""

from .database import DatabaseManager, SQLiteDatabase, PostgreSQLDatabase, DatabaseFactory
from .schema import SCHEMA_VERSION, apply_schema, current_version
from .repositories import CourseRepository, ComponentRepository, SubItemRepository

__all__ = [
    "DatabaseManager",
    "SQLiteDatabase",
    "PostgreSQLDatabase",
    "DatabaseFactory",
    "SCHEMA_VERSION",
    "apply_schema",
    "current_version",
    "CourseRepository",
    "ComponentRepository",
    "SubItemRepository",
]
