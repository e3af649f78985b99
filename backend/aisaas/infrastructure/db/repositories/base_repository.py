"""
Base Repository for the AI SaaS backend

Generic async repository with the shared read helpers and a dialect-aware
INSERT builder used for single-statement upserts.
"""

from typing import TypeVar, Generic, Optional, Type, Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel


# Type variable for generic repository
ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic async repository.

    Repositories never commit; the session context that owns the unit of
    work commits or rolls back.

    Args:
        model: The SQLModel class to operate on
        session: Async database session
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self._model = model
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Get the current session."""
        return self._session

    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        """
        Get a single record by its primary key.

        Args:
            id: Primary key value

        Returns:
            Model instance or None if not found
        """
        return await self._session.get(self._model, id)

    async def add(self, db_obj: ModelType) -> ModelType:
        """
        Insert a new record.

        Args:
            db_obj: Model instance to persist

        Returns:
            The flushed instance
        """
        self._session.add(db_obj)
        await self._session.flush()
        return db_obj

    def _insert(self):
        """
        INSERT construct for the bound dialect.

        Both PostgreSQL and SQLite support ON CONFLICT, which is what makes
        get-or-create and webhook upserts a single atomic statement.
        """
        dialect = self._session.get_bind().dialect.name
        if dialect == "sqlite":
            return sqlite_insert(self._model)
        return pg_insert(self._model)
