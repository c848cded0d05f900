"""User model (owned by the auth collaborator; read here for ids and roles)."""

from enum import Enum

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from passcut.db.base import Base


class UserRole(str, Enum):
    """User role."""

    USER = "USER"
    ADMIN = "ADMIN"


class User(Base):
    """Registered participant or administrator."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    role = Column(String(16), nullable=False, default=UserRole.USER.value)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
