"""
Database module - Relational storage for users, sessions and messages.

This module handles:
- Database connection management
- ORM models
- Table creation
"""
from atheron.database.connection import DatabaseConnection, get_database, reset_database
from atheron.database.models import Base, User, ChatSession, ChatMessage, DEFAULT_SESSION_TITLE
from atheron.database.init_db import init_tables, drop_tables

__all__ = [
    # Connection
    "DatabaseConnection",
    "get_database",
    "reset_database",
    # Models
    "Base",
    "User",
    "ChatSession",
    "ChatMessage",
    "DEFAULT_SESSION_TITLE",
    # Init
    "init_tables",
    "drop_tables",
]
