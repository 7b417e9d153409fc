"""
Store — persistence protocol and implementations.

    from shopcore import store as St

    repo = St.MemoryRepository().seed(products=[...], inventory=[...])

    session_factory, engine = await St.create_database(settings.database_url)
    repo = St.SQLAlchemyRepository(session_factory)
"""

from __future__ import annotations

from shopcore.store._protocol import Repository
from shopcore.store._memory import MemoryRepository
from shopcore.store._sqlalchemy import SQLAlchemyRepository, create_database, Base

__all__ = (
    "Repository",
    "MemoryRepository",
    "SQLAlchemyRepository",
    "create_database",
    "Base",
)
