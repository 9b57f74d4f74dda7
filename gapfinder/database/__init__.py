"""
Database Module

SQLAlchemy models, session management and the report store.
"""

from .models import Base, GapReport, GapKeyword
from .session import (
    get_engine,
    create_db_engine,
    make_session_factory,
    get_session_factory,
    get_db_context,
    init_db,
    check_db_connection,
)
from .repository import (
    ReportStore,
    EntryPage,
    ReportNotFoundError,
    InvalidTransitionError,
    ALLOWED_TRANSITIONS,
    INSERT_CHUNK_SIZE,
    SORT_FIELDS,
)

__all__ = [
    # Models
    "Base",
    "GapReport",
    "GapKeyword",
    # Session
    "get_engine",
    "create_db_engine",
    "make_session_factory",
    "get_session_factory",
    "get_db_context",
    "init_db",
    "check_db_connection",
    # Repository
    "ReportStore",
    "EntryPage",
    "ReportNotFoundError",
    "InvalidTransitionError",
    "ALLOWED_TRANSITIONS",
    "INSERT_CHUNK_SIZE",
    "SORT_FIELDS",
]
