"""
User Repository

Read access to user identities.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from aisaas.infrastructure.db.models.user import UserModel
from aisaas.infrastructure.db.repositories.base_repository import BaseRepository


class UserRepository(BaseRepository[UserModel]):
    """Repository for users."""

    def __init__(self, session: AsyncSession):
        super().__init__(UserModel, session)

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        """Case-insensitive email lookup."""
        stmt = select(UserModel).where(
            func.lower(UserModel.email) == email.strip().lower()
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()
