from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class UserRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    WORKER = "worker"

    @classmethod
    def account_owner_roles(cls) -> list["UserRole"]:
        """Roles that manage the factory's account and billing."""
        return [cls.OWNER, cls.ADMIN]


class Profile(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    factory_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileCreateModel(BaseModel):
    """Model for creating a profile."""

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    factory_id: Optional[str] = None
