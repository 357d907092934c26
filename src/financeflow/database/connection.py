import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from financeflow.config.settings import DEFAULT_DB_PATH
from financeflow.logging_setup import get_logger

logger = get_logger(__name__)

Connection = sqlite3.Connection

SCHEMA_PATH = Path(__file__).parent / "schema.sql"
IN_MEMORY = ":memory:"


class DatabaseConfig:
    """Where the SQLite file lives. ':memory:' keeps everything in RAM."""

    def __init__(self, db_path: Path | str = DEFAULT_DB_PATH):
        self.in_memory = str(db_path) == IN_MEMORY
        self.db_path = Path(db_path)
        if not self.in_memory:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def connection_string(self) -> str:
        """Path handed to sqlite3.connect"""
        if self.in_memory:
            return IN_MEMORY
        return str(self.db_path.absolute())


def configure_connection(conn: Connection) -> None:
    """
    Settings every FinanceFlow connection shares.

    Args:
        conn: SQLite connection to configure
    """
    conn.execute("PRAGMA foreign_keys = ON")
    # Column access by name in the repository
    conn.row_factory = sqlite3.Row


class DatabaseManager:
    """
    Owns the single SQLite connection used by a repository.

    The connection is opened lazily and reused; `transaction()` wraps a
    unit of work in commit/rollback.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._connection: Connection | None = None

    def get_connection(self) -> Connection:
        """
        Get or create the database connection.

        Returns:
            sqlite3.Connection: Active database connection
        """
        if self._connection is None:
            self._connection = self._create_connection()
        return self._connection

    def _create_connection(self) -> Connection:
        logger.debug("Opening SQLite database at %s", self.config.connection_string)
        conn = sqlite3.connect(
            self.config.connection_string,
            check_same_thread=False,
        )
        configure_connection(conn)
        return conn

    def initialize(self, schema_path: Path = SCHEMA_PATH) -> None:
        """Create tables and indexes if they are missing."""
        execute_schema(self.get_connection(), schema_path)

    def close(self) -> None:
        """Close the database connection if open."""
        if self._connection:
            self._connection.close()
            self._connection = None

    @contextmanager
    def transaction(self) -> Generator[Connection, None, None]:
        """
        Commit on success, roll back on any exception.

        Usage:
            with db_manager.transaction() as conn:
                conn.execute("INSERT INTO ...")
                conn.execute("UPDATE ...")
        """
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def execute_schema(conn: Connection, schema_path: Path = SCHEMA_PATH) -> None:
    """
    Run a .sql script against the connection.

    The bundled schema only uses IF NOT EXISTS / OR IGNORE, so running it
    twice is harmless.

    Args:
        conn: Database connection
        schema_path: Path to .sql file
    """
    with open(schema_path) as f:
        schema = f.read()

    conn.executescript(schema)
    conn.commit()
