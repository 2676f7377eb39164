"""
Database Initialization - Create the conversation tables.

Called once on application startup; safe to run repeatedly because
create_all only creates tables that are missing.
"""
from typing import Optional

from atheron.core.logging_config import get_logger
from atheron.database.connection import DatabaseConnection, get_database
from atheron.database.models import Base

logger = get_logger(__name__)


def init_tables(db: Optional[DatabaseConnection] = None) -> bool:
    """
    Create users, chat_sessions and messages if they don't exist.

    Args:
        db: Connection to use (defaults to the singleton)

    Returns:
        True if tables were created successfully
    """
    db = db or get_database()
    try:
        Base.metadata.create_all(db.engine)
    except Exception as e:
        logger.error(f"Failed to initialize tables: {e}")
        raise

    logger.info("Conversation tables initialized successfully")
    return True


def drop_tables(db: Optional[DatabaseConnection] = None) -> bool:
    """Drop every table (development only)."""
    db = db or get_database()
    Base.metadata.drop_all(db.engine)
    logger.warning("Conversation tables dropped")
    return True


if __name__ == "__main__":
    # Allow running directly to create tables
    print("Initializing conversation tables...")
    init_tables()
    print("Done!")
