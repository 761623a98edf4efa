import sqlite3

from catalog.config import settings
from catalog.models import Kind

# Default database file; LIBRARY_DB_FILE in the environment/.env overrides it.
DATABASE_FILE = settings.database_file


def get_db_connection(db_file: str | None = None) -> sqlite3.Connection:
    """Establishes a connection to the SQLite database."""
    conn = sqlite3.connect(db_file or DATABASE_FILE)
    conn.row_factory = sqlite3.Row
    return conn


def create_tables(db_file: str | None = None) -> None:
    """Creates one document collection per record kind if it doesn't exist."""
    conn = get_db_connection(db_file)
    try:
        cursor = conn.cursor()
        for kind in Kind:
            # Table names come from the closed Kind enum, never from input
            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS {kind.value} (
                    id TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
        conn.commit()
    finally:
        conn.close()


def initialize_database(db_file: str | None = None) -> None:
    """Initializes the database, creating tables as needed."""
    create_tables(db_file)
