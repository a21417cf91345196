"""Mock test session model."""

import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from preptrack.db.base import Base
from preptrack.models.item import enum_values, utcnow


class TestStatus(enum.Enum):
    """Status of one item inside a mock test."""

    __test__ = False

    pending = "pending"
    completed = "completed"
    abandoned = "abandoned"


class TestSession(Base):
    """One item of a mock test; rows sharing ``session_id`` form a test."""

    __test__ = False
    __tablename__ = "test_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(36), nullable=False)
    user_id = Column(Integer, nullable=False)
    item_id = Column(
        Integer,
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
    )
    status = Column(
        Enum(TestStatus, name="test_status", values_callable=enum_values),
        nullable=False,
        default=TestStatus.pending,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    item = relationship("Item")

    __table_args__ = (
        Index("idx_test_sessions_user_status", "user_id", "status"),
        Index("idx_test_sessions_session", "session_id"),
    )
