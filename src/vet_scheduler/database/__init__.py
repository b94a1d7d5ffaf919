"""
Database connection, session management, and migration utilities.

This module provides async SQLAlchemy engine configuration, session management,
column types and migration utilities for the scheduling store.
"""

from .connection import (
    check_connection,
    close_engine,
    create_engine,
    get_async_url,
    wait_for_database,
)
from .migrations import MigrationManager
from .session import (
    SessionManager,
    get_session,
    get_session_manager,
    get_transaction,
    initialize_session_manager,
)
from .types import UTCDateTime

__all__ = [
    # Connection utilities
    "create_engine",
    "get_async_url",
    "check_connection",
    "close_engine",
    "wait_for_database",
    # Session management
    "SessionManager",
    "initialize_session_manager",
    "get_session_manager",
    "get_session",
    "get_transaction",
    # Column types
    "UTCDateTime",
    # Migration utilities
    "MigrationManager",
]
