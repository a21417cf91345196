"""Per-user item progress model."""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from preptrack.db.base import Base
from preptrack.errors import InvalidArgumentError
from preptrack.models.item import enum_values, utcnow


class ProgressStatus(enum.Enum):
    """Lifecycle status of an item for one user."""

    pending = "pending"
    in_progress = "in-progress"
    done = "done"


class Progress(Base):
    """Status record for one (user, item) pair."""

    __tablename__ = "user_progress"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False)
    item_id = Column(
        Integer,
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
    )
    status = Column(
        Enum(ProgressStatus, name="progress_status", values_callable=enum_values),
        nullable=False,
        default=ProgressStatus.pending,
    )
    starred = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=False, default="")
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    item = relationship("Item", back_populates="progress")

    __table_args__ = (
        UniqueConstraint("user_id", "item_id", name="unique_user_item"),
        # At most one in-progress row per user
        Index(
            "uq_user_progress_in_progress",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'in-progress'"),
            sqlite_where=text("status = 'in-progress'"),
        ),
        Index("idx_user_progress_user_status", "user_id", "status"),
    )


def parse_status(value) -> ProgressStatus:
    """Coerce a raw value into a ``ProgressStatus``."""
    if isinstance(value, ProgressStatus):
        return value
    try:
        return ProgressStatus(value)
    except ValueError:
        raise InvalidArgumentError(
            f"invalid status: {value}", {"status": value}
        ) from None
