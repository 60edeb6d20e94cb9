"""
Record schemas for the Rating Platform

Records are persisted as whole collections in a key-value blob (see
record_store.py). Each model dumps to a JSON-compatible dict and loads back with
``model_validate``.

Collections:
- users: system users (admin, normal user, store owner)
- stores: registered stores with cached rating aggregates
- ratings: one score per (user, store)
- currentUser: the persisted session
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from bson import ObjectId
from pydantic import BaseModel, Field


def new_id() -> str:
    return str(ObjectId())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"
    STORE_OWNER = "store_owner"


class User(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    email: str
    address: str
    password_hash: str = Field(..., description="BCrypt hash of password")
    role: Role = Field(Role.USER)
    created_at: datetime = Field(default_factory=utcnow)

    def public(self) -> dict:
        """Dump without the password hash."""
        return self.model_dump(mode="json", exclude={"password_hash"})


class Store(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    email: str
    address: str
    owner_id: str = Field(..., description="Reference to a store_owner user id")
    average_rating: float = 0.0
    total_ratings: int = 0
    created_at: datetime = Field(default_factory=utcnow)


class Rating(BaseModel):
    id: str = Field(default_factory=new_id)
    store_id: str
    user_id: str
    score: int = Field(..., ge=1, le=5)
    created_at: datetime = Field(default_factory=utcnow)


class Session(BaseModel):
    """The current authenticated user, if any."""

    user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None
