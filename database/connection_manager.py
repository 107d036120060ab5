"""
Database Connection Manager
===========================
Handles both SQLite (local) and PostgreSQL (hosted backend) connections.

PostgreSQL is used when a connection string is configured; otherwise the
manager falls back to a local SQLite file.
"""

import logging
import sqlite3
from typing import Any, Optional

import psycopg2
import psycopg2.extras

from core.exceptions import StorageError
from core.settings import Settings, load_settings

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Manages database connections with automatic fallback.

    Uses PostgreSQL if a database connection string is available,
    falls back to SQLite for local development without secrets.
    """

    def __init__(self, database_url: Optional[str] = None,
                 sqlite_path: str = "property_inspection.db"):
        self.database_url = database_url
        self.sqlite_path = sqlite_path
        self.db_type = self._detect_database_type()

    def _detect_database_type(self) -> str:
        if self.database_url:
            logger.info(f"✅ PostgreSQL detected - URL starts with: {self.database_url[:30]}...")
            return "postgresql"
        logger.info(f"📁 Falling back to SQLite (local mode): {self.sqlite_path}")
        return "sqlite"

    @property
    def placeholder(self) -> str:
        """Parameter marker for the active driver"""
        return "%s" if self.db_type == "postgresql" else "?"

    def get_connection(self):
        """
        Get a database connection based on environment

        Returns:
            Database connection object (sqlite3.Connection or psycopg2.connection)
        """
        if self.db_type == "postgresql":
            return self._get_postgres_connection()
        return self._get_sqlite_connection()

    def _get_postgres_connection(self):
        database_url = self.database_url

        if "?" not in database_url:
            database_url += "?connect_timeout=15&sslmode=require"
        elif "connect_timeout" not in database_url:
            database_url += "&connect_timeout=15"

        try:
            conn = psycopg2.connect(
                database_url,
                connect_timeout=15,
                options='-c statement_timeout=30000'
            )
            conn.autocommit = False
            return conn

        except psycopg2.OperationalError as e:
            error_msg = str(e)

            if "timeout" in error_msg.lower():
                raise StorageError(
                    f"PostgreSQL connection timeout. Possible causes:\n"
                    f"1. Firewall blocking connection\n"
                    f"2. IP address not allow-listed on the hosted backend\n"
                    f"3. Network routing issues\n"
                    f"Original error: {error_msg}"
                ) from e
            elif "password authentication failed" in error_msg:
                raise StorageError(
                    "PostgreSQL authentication failed. Please check:\n"
                    "1. Username and password in DATABASE_URL\n"
                    "2. Special characters in password (use URL encoding)\n"
                    "   Example: ! should be %21"
                ) from e
            raise StorageError(f"PostgreSQL connection error: {error_msg}") from e
        except psycopg2.Error as e:
            # e.g. ProgrammingError for a malformed DATABASE_URL
            raise StorageError(f"Invalid PostgreSQL connection settings: {e}") from e

    def _get_sqlite_connection(self):
        try:
            conn = sqlite3.connect(self.sqlite_path, check_same_thread=False, timeout=30.0)
            conn.row_factory = sqlite3.Row
            # Needed for ON DELETE CASCADE between inspections, areas and items
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            raise StorageError(f"SQLite database {self.sqlite_path} could not be opened: {e}") from e
        return conn

    def dict_cursor(self, conn):
        """Cursor whose rows support access by column name on both drivers"""
        if self.db_type == "postgresql":
            return conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
        return conn.cursor()

    def execute_query(self, query: str, params: tuple = None, fetch: str = None) -> Any:
        """
        Execute a query with automatic connection handling

        Args:
            query: SQL query string
            params: Query parameters
            fetch: 'one', 'all', or None (for INSERT/UPDATE/DELETE)

        Returns:
            Query results based on fetch parameter
        """
        conn = None
        cursor = None
        try:
            conn = self.get_connection()
            cursor = self.dict_cursor(conn)
            if params:
                cursor.execute(query, params)
            else:
                cursor.execute(query)

            if fetch == 'one':
                result = cursor.fetchone()
            elif fetch == 'all':
                result = cursor.fetchall()
            else:
                conn.commit()
                result = cursor.rowcount

            return result

        except (sqlite3.Error, psycopg2.Error) as e:
            if conn is not None:
                conn.rollback()
            raise StorageError(f"Query failed: {e}") from e
        finally:
            if cursor is not None:
                cursor.close()
            if conn is not None:
                conn.close()


# Singleton instance
_connection_manager = None


def get_connection_manager(settings: Optional[Settings] = None) -> ConnectionManager:
    """Get singleton ConnectionManager instance"""
    global _connection_manager
    if _connection_manager is None:
        settings = settings or load_settings()
        _connection_manager = ConnectionManager(
            database_url=settings.database_url,
            sqlite_path=settings.sqlite_path,
        )
        logger.info(f"🔧 Database type detected: {_connection_manager.db_type}")
    return _connection_manager
