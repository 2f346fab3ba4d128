"""Habit tree data structures.

A ``Habit`` is stored as one document: its scalar settings plus the ordered
list of ``TreeNode`` attempts, each of which may hold ``Check`` events.
``HabitRecord`` is the table row the durable store keeps per document.
"""

from __future__ import annotations

import datetime as dt
import random
import re
import string
import time
import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TrackingType(str, Enum):
    """Which progress-accounting rule applies to a habit's nodes."""

    CHECK = "check"
    COUNT = "count"
    AMOUNT = "amount"


class NodeStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class ProgressOperation(str, Enum):
    """How an amount entry is applied to a node's accumulator."""

    ADD = "add"
    SUBTRACT = "subtract"
    SET = "set"


def generate_habit_id(title: str) -> str:
    """Build a habit id from its title, the current time and a random suffix."""

    slug = re.sub(r"\s+", "-", title.strip().lower()) or "habit"
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=5))
    return f"habit_{int(time.time() * 1000)}_{slug}_{suffix}"


def generate_node_id() -> str:
    return f"node_{uuid.uuid4().hex}"


def generate_check_id() -> str:
    return f"check_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


class Check(SQLModel):
    """One discrete completion event within a check-type node."""

    id: str = Field(default_factory=generate_check_id)
    type: str = Field(default="default")
    timestamp: datetime = Field(default_factory=utcnow)
    completed: bool = Field(default=True)
    amount: float = Field(default=1)


class TreeNode(SQLModel):
    """A single calendar-date attempt at a habit, possibly branched from another node."""

    id: str = Field(default_factory=generate_node_id)
    date: dt.date
    checks: list[Check] = Field(default_factory=list)
    current_progress: float = Field(default=0, ge=0)
    status: NodeStatus = Field(default=NodeStatus.ACTIVE)
    parent_id: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = Field(default=None)

    @classmethod
    def fresh(cls, on: date, parent_id: Optional[str] = None) -> "TreeNode":
        """Return an active node with no progress for ``on``."""
        return cls(date=on, parent_id=parent_id)


class Habit(SQLModel):
    """A trackable recurring activity and its tree of dated attempts."""

    id: str
    title: str = Field(min_length=1, max_length=120)
    description: str = Field(default="", max_length=500)
    category: str = Field(default="general", max_length=32)
    frequency: str = Field(default="daily", max_length=32)
    tracking_type: TrackingType = Field(default=TrackingType.CHECK)
    target_checks: int = Field(default=1, ge=1)
    target_amount: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = Field(default=None, max_length=32)
    allow_multiple_checks: bool = Field(default=False)
    color: str = Field(default="#3B82F6", max_length=32)
    emoji: str = Field(default="🎯", max_length=16)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = Field(default=0, ge=0)
    tree_nodes: list[TreeNode] = Field(default_factory=list)

    def find_node(self, node_id: str) -> Optional[TreeNode]:
        for node in self.tree_nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_on(self, day: date) -> list[TreeNode]:
        return [node for node in self.tree_nodes if node.date == day]

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-serializable document form of the habit."""
        return self.model_dump(mode="json")

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Habit":
        return cls.model_validate(document)


class HabitRecord(SQLModel, table=True):
    """Durable row holding one habit document for one user."""

    __tablename__: ClassVar[str] = "habit_document"

    user_id: str = Field(primary_key=True, max_length=128)
    habit_id: str = Field(primary_key=True, max_length=200)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)
    version: int = Field(default=1, nullable=False)
    document: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
