from sqlalchemy import Index
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import Optional

from .base import UTCDateTime, new_id, utcnow

PRIORITIES = ("low", "medium", "high")
DEFAULT_LEVEL = 5


class Task(SQLModel, table=True):
    """A user's task.

    ``category`` and ``status`` are denormalized names of the user's taxonomy
    entries; ``status_id``/``level_id`` link the rows when they are known.
    """
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_status", "user_id", "status"),
        Index("ix_tasks_user_category", "user_id", "category"),
        Index("ix_tasks_user_due_date", "user_id", "due_date"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    title: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    category: str = Field(max_length=50)
    priority: str = Field(default="medium", max_length=10)
    status: str = Field(max_length=50)
    status_id: Optional[str] = Field(default=None, foreign_key="task_statuses.id")
    level: int = Field(default=DEFAULT_LEVEL)
    level_id: Optional[str] = Field(default=None, foreign_key="task_levels.id")
    workflow_id: Optional[str] = Field(default=None, foreign_key="workflows.id")
    due_date: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    completed_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    user_id: str = Field(foreign_key="users.id", index=True)

    user: Optional["User"] = Relationship(back_populates="tasks")
