"""Database factory functions for creating database instances."""

from pathlib import Path
from typing import Optional

from famledger.config import db_path_from_env
from famledger.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks the
            FAMLEDGER_DB_PATH environment variable, then defaults to
            ~/.famledger/famledger.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = db_path_from_env()

    if database_path is None:
        # Default to ~/.famledger/famledger.db
        db_dir = Path.home() / ".famledger"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "famledger.db")

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyDatabase(database_url)
