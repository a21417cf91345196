"""Per-user streak and completion-cycle counters."""

from sqlalchemy import CheckConstraint, Column, Date, DateTime, Integer

from preptrack.db.base import Base
from preptrack.models.item import utcnow


class UserStats(Base):
    """Streak fields and completed-all counter for a user."""

    __tablename__ = "user_stats"

    user_id = Column(Integer, primary_key=True, autoincrement=False)
    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    last_activity_date = Column(Date, nullable=True)
    completed_all_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        CheckConstraint("current_streak >= 0", name="check_current_streak"),
        CheckConstraint("longest_streak >= 0", name="check_longest_streak"),
        CheckConstraint("completed_all_count >= 0", name="check_completed_all"),
    )
