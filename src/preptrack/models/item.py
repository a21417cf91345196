"""Catalog item model."""

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON

from preptrack.db.base import Base
from preptrack.errors import InvalidArgumentError

# JSONB for Postgres with JSON fallback
JSONType = JSON().with_variant(JSONB, "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def enum_values(enum_cls):
    """Persist enum values ("in-progress") rather than member names."""
    return [member.value for member in enum_cls]


class Category(enum.Enum):
    """Top-level study area of an item."""

    dsa = "dsa"
    lld = "lld"
    hld = "hld"
    miscellaneous = "miscellaneous"


# Subcategory used by the mock-test feature
TEST_N_REVISE = "test_n_revise"
HLD_INTERVIEW_QUESTIONS = "interview questions"

COMMON_SUBCATEGORIES = {
    Category.dsa: [
        "arrays",
        "strings",
        "two-pointers",
        "sliding window - fixed size",
        "sliding window - dynamic size",
        "prefix-sum",
        "kadane's algorithm",
        "matrix (2d array)",
        "linked-lists",
        "linkedList in-place reversal",
        "fast and slow pointers",
        "stacks",
        "monotonic stack",
        "queues",
        "monotonic queue",
        "hashing",
        "bit-manipulation",
        "bucket sort",
        "recursion",
        "divide-conquer",
        "merge sort",
        "quickSort / quickSelect",
        "binary search",
        "backtracking",
        "tree traversal - level order",
        "tree traversal - pre order",
        "tree traversal - in order",
        "tree traversal - post-order",
        "bst / ordered set",
        "tries",
        "heaps",
        "two heaps",
        "top k elements",
        "intervals",
        "k-way merge",
        "data structure design",
        "graphs",
        "depth first search (dfs)",
        "breadth first search (bfs)",
        "topological sort",
        "union find",
        "minimum spanning tree",
        "shortest path",
        "eulerian circuit",
        "greedy",
        "1-d dp",
        "knapsack dp",
        "unbounded knapsack dp",
        "longest increasing subsequence dp",
        "2d (grid) dp",
        "string dp",
        "tree / graph dp",
        "bitmask dp",
        "digit dp",
        "probability dp",
        "state machine dp",
        "string matching",
        "binary indexed tree / segment tree",
        "maths / geometry",
        "line sweep",
        "suffix array",
        "other",
    ],
    Category.lld: [
        "object-oriented-programming",
        "design-principles",
        "uml",
        "design-patterns-creational",
        "design-patterns-structural",
        "design-patterns-behavioral",
        "lld-interview-tips",
        "lld-interview-questions",
    ],
    Category.hld: [
        "introduction",
        "core concepts",
        "databases and storage",
        "database scaling techniques",
        "caching",
        "networking",
        "api",
        "asynchronous communications",
        "tradeoffs",
        "distributed system concepts",
        "microservices",
        "big data processing",
        "architectural patterns",
        "observability",
        "security",
        "interview tips",
        HLD_INTERVIEW_QUESTIONS,
    ],
    Category.miscellaneous: [
        "gre",
        "finance",
        "development",
        "sql",
        "books",
        TEST_N_REVISE,
        "other",
    ],
}


class Item(Base):
    """Study item in the global catalog."""

    __tablename__ = "items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    link = Column(Text, nullable=False)
    category = Column(
        Enum(Category, name="item_category", values_callable=enum_values),
        nullable=False,
    )
    subcategory = Column(String(100), nullable=False)
    attachments = Column(JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    progress = relationship(
        "Progress",
        back_populates="item",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_items_category_subcategory", "category", "subcategory"),
    )


def parse_category(value) -> Category:
    """Coerce a raw value into a ``Category``."""
    if isinstance(value, Category):
        return value
    try:
        return Category(value)
    except ValueError:
        valid = ", ".join(c.value for c in Category)
        raise InvalidArgumentError(
            f"invalid category: {value}. Valid categories are: {valid}",
            {"category": value},
        ) from None
