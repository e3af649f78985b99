"""
User Database Model

Identity rows owned by the auth provider. This service only reads them
(email lookup for webhooks, recipient details for notifications).
"""

from typing import Optional

from sqlmodel import Field

from aisaas.domain.identity import UserRole
from aisaas.infrastructure.db.models.base import TimestampMixin, new_id


class UserModel(TimestampMixin, table=True):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(unique=True, index=True, nullable=False)
    name: Optional[str] = Field(default=None, max_length=255)
    role: str = Field(default=UserRole.MEMBER.value, max_length=20)

    # AI provider selection and encrypted API keys (JSON, encrypted at rest)
    provider: Optional[str] = Field(default=None, max_length=50)
    api_keys: Optional[str] = Field(default=None)
