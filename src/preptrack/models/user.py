"""User account model."""

import enum

from sqlalchemy import Column, DateTime, Enum, Integer, String

from preptrack.db.base import Base
from preptrack.models.item import enum_values, utcnow


class Role(enum.Enum):
    user = "user"
    admin = "admin"


class User(Base):
    """Authenticated user; created on first successful login."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True)
    role = Column(
        Enum(Role, name="user_role", values_callable=enum_values),
        nullable=False,
        default=Role.user,
    )
    name = Column(String(255), nullable=True)
    avatar = Column(String(1024), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
