"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface: engine configuration per backend
- LinkStore interface: storage operations injected into the services
- SQLLinkStore: the SQLModel/SQLAlchemy implementation of LinkStore
- Session management: request-scoped and standalone store scopes

To add a new database backend:
1. Create a new adapter class inheriting from DatabaseAdapter
2. Implement all abstract methods
3. Register it in get_database_adapter() in adapters.py
"""

from qrlink.db.interface import DatabaseAdapter, LinkStore
from qrlink.db.session import (
    async_session_maker,
    engine,
    get_link_store,
    init_models,
    link_store_scope,
)
from qrlink.db.sql_store import SQLLinkStore

__all__ = [
    "DatabaseAdapter",
    "LinkStore",
    "SQLLinkStore",
    "async_session_maker",
    "engine",
    "get_link_store",
    "init_models",
    "link_store_scope",
]
