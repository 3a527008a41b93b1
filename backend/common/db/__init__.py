"""
Database Module

This package provides the declarative base and async session management
used by every persistent model in the application.
"""

from backend.common.db.base import Base, ModelBase, metadata
from backend.common.db.session import (
    initialize_database,
    create_schema,
    close_database,
    get_engine,
    get_session_factory,
)

__all__ = [
    'Base',
    'ModelBase',
    'metadata',
    'initialize_database',
    'create_schema',
    'close_database',
    'get_engine',
    'get_session_factory',
]
