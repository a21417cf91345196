"""SQLAlchemy models for the catalog, progress tracking and mock tests."""

from .item import (
    COMMON_SUBCATEGORIES,
    HLD_INTERVIEW_QUESTIONS,
    TEST_N_REVISE,
    Category,
    Item,
    parse_category,
)
from .progress import Progress, ProgressStatus, parse_status
from .test_session import TestSession, TestStatus
from .user import Role, User
from .user_stats import UserStats

__all__ = [
    "COMMON_SUBCATEGORIES",
    "HLD_INTERVIEW_QUESTIONS",
    "TEST_N_REVISE",
    "Category",
    "Item",
    "parse_category",
    "Progress",
    "ProgressStatus",
    "parse_status",
    "TestSession",
    "TestStatus",
    "Role",
    "User",
    "UserStats",
]
