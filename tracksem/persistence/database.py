"""
Database management and connection handling.
"""

import logging
import os
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

try:
    import psycopg2
    from psycopg2.extras import RealDictCursor
    PSYCOPG2_AVAILABLE = True
except ImportError:
    PSYCOPG2_AVAILABLE = False

from ..core.enums import DatabaseType
from ..core.exceptions import PersistenceError, ConfigurationError


logger = logging.getLogger(__name__)


class DatabaseManager(ABC):
    """Abstract base class for database management."""

    @abstractmethod
    def connect(self) -> Any:
        """Create a database connection."""
        pass

    @abstractmethod
    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """Execute a query and return results."""
        pass

    @abstractmethod
    def execute_update(self, query: str, params: Optional[tuple] = None) -> int:
        """Execute an update query and return affected rows."""
        pass

    @abstractmethod
    def execute_transaction(self, queries: List[tuple]) -> bool:
        """Execute multiple (query, params) pairs in a single transaction."""
        pass

    @abstractmethod
    def create_tables(self, schema: Dict[str, str]) -> None:
        """Create database tables from schema."""
        pass

    @abstractmethod
    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        pass


class SQLiteDatabase(DatabaseManager):
    """SQLite database implementation."""

    def __init__(self, database_path: str = "data/tracksem.db"):
        self._database_path = database_path
        self._initialize_database()

    def _initialize_database(self) -> None:
        """Create the data directory and switch the file to WAL mode."""
        directory = os.path.dirname(os.path.abspath(self._database_path))
        os.makedirs(directory, exist_ok=True)
        with self._get_connection() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.commit()
        logger.debug("SQLite database ready at %s", self._database_path)

    @contextmanager
    def _get_connection(self):
        """Get database connection with proper cleanup."""
        conn = None
        try:
            conn = self.connect()
            yield conn
        except PersistenceError:
            if conn:
                conn.rollback()
            raise
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            raise PersistenceError(f"Database error: {str(e)}")
        finally:
            if conn:
                conn.close()

    def connect(self) -> sqlite3.Connection:
        """Create a database connection with foreign keys enforced."""
        conn = sqlite3.connect(self._database_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """Execute a query and return results."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            if params:
                cursor.execute(query, params)
            else:
                cursor.execute(query)
            return [dict(row) for row in cursor.fetchall()]

    def execute_update(self, query: str, params: Optional[tuple] = None) -> int:
        """Execute an update query and return affected rows."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            if params:
                cursor.execute(query, params)
            else:
                cursor.execute(query)
            conn.commit()
            return cursor.rowcount

    def execute_transaction(self, queries: List[tuple]) -> bool:
        """Execute multiple queries in a transaction."""
        with self._get_connection() as conn:
            try:
                cursor = conn.cursor()
                for query, params in queries:
                    if params:
                        cursor.execute(query, params)
                    else:
                        cursor.execute(query)
                conn.commit()
                return True
            except sqlite3.Error as e:
                conn.rollback()
                raise PersistenceError(f"Transaction failed: {str(e)}")

    def create_tables(self, schema: Dict[str, str]) -> None:
        """Create database tables from schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            for table_name, table_schema in schema.items():
                cursor.execute(table_schema)
            conn.commit()

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        query = "SELECT name FROM sqlite_master WHERE type='table' AND name=?"
        results = self.execute_query(query, (table_name,))
        return len(results) > 0


class PostgreSQLDatabase(DatabaseManager):
    """PostgreSQL database implementation."""

    def __init__(self, host: str = "localhost", port: int = 5432,
                 database: str = "tracksem", user: str = "tracksem", password: str = ""):
        if not PSYCOPG2_AVAILABLE:
            raise ConfigurationError("psycopg2 is required for PostgreSQL support")

        self._host = host
        self._port = port
        self._database = database
        self._user = user
        self._password = password

    def _get_connection_string(self) -> str:
        """Get PostgreSQL connection string."""
        return f"host={self._host} port={self._port} dbname={self._database} user={self._user} password={self._password}"

    @staticmethod
    def _adapt(query: str) -> str:
        """Repositories write qmark placeholders; psycopg2 expects %s."""
        return query.replace("?", "%s")

    @contextmanager
    def _get_connection(self):
        """Get database connection with proper cleanup."""
        conn = None
        try:
            conn = self.connect()
            yield conn
        except PersistenceError:
            if conn:
                conn.rollback()
            raise
        except psycopg2.Error as e:
            if conn:
                conn.rollback()
            raise PersistenceError(f"Database error: {str(e)}")
        finally:
            if conn:
                conn.close()

    def connect(self):
        """Create a database connection."""
        return psycopg2.connect(self._get_connection_string())

    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """Execute a query and return results."""
        with self._get_connection() as conn:
            cursor = conn.cursor(cursor_factory=RealDictCursor)
            cursor.execute(self._adapt(query), params)
            return [dict(row) for row in cursor.fetchall()]

    def execute_update(self, query: str, params: Optional[tuple] = None) -> int:
        """Execute an update query and return affected rows."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(self._adapt(query), params)
            conn.commit()
            return cursor.rowcount

    def execute_transaction(self, queries: List[tuple]) -> bool:
        """Execute multiple queries in a transaction."""
        with self._get_connection() as conn:
            try:
                cursor = conn.cursor()
                for query, params in queries:
                    cursor.execute(self._adapt(query), params)
                conn.commit()
                return True
            except psycopg2.Error as e:
                conn.rollback()
                raise PersistenceError(f"Transaction failed: {str(e)}")

    def create_tables(self, schema: Dict[str, str]) -> None:
        """Create database tables from schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            for table_name, table_schema in schema.items():
                cursor.execute(table_schema)
            conn.commit()

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        query = "SELECT table_name FROM information_schema.tables WHERE table_name = ?"
        results = self.execute_query(query, (table_name,))
        return len(results) > 0


class DatabaseFactory:
    """Factory for creating database instances."""

    @staticmethod
    def create_database(database_type: str, **kwargs) -> DatabaseManager:
        """Create a database instance based on type."""
        try:
            kind = DatabaseType(database_type.lower())
        except ValueError:
            raise ConfigurationError(f"Unsupported database type: {database_type}")

        if kind is DatabaseType.SQLITE:
            return SQLiteDatabase(**kwargs)
        return PostgreSQLDatabase(**kwargs)
