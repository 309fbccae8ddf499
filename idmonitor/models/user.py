"""User entity model."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """User database model.

    Users are provisioned on first authenticated request; credentials live
    with the identity provider, only its subject identifier is stored here.
    """

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    auth_subject: str = Field(max_length=255, unique=True, index=True)
    email: str | None = Field(default=None, max_length=255)
    phone_number: str | None = Field(default=None, max_length=32)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class UserResponse(SQLModel):
    """Schema for user response."""

    id: UUID
    email: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
