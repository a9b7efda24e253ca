"""User model definitions."""

import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String, func
from backend.database import Base

PROVIDER_MANAGED_PASSWORD = "supabase_managed"


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    STAFF = "staff"


class User(Base):
    """Local profile row for an identity owned by the identity provider."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    # Passwords live with the identity provider; this is always a placeholder.
    password_hash = Column(String, nullable=False, default=PROVIDER_MANAGED_PASSWORD)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=lambda roles: [role.value for role in roles]),
        nullable=False,
        default=UserRole.STAFF,
    )
    first_name = Column(String)
    last_name = Column(String)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
    active = Column(Boolean, nullable=False, default=True)
