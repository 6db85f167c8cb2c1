from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from common.db.base import Base


class ProfileEntity(Base):
    """User profile. ``id`` is the auth service's user id."""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, index=True)
    email = Column(String, nullable=True, index=True)
    full_name = Column(String, nullable=True)
    factory_id = Column(
        String(36), ForeignKey("factory_accounts.id"), nullable=True, index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class UserRoleEntity(Base):
    __tablename__ = "user_roles"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    factory_id = Column(
        String(36), ForeignKey("factory_accounts.id"), nullable=True, index=True
    )
    role = Column(String(50), nullable=False)  # owner, admin, supervisor, worker

    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),)
