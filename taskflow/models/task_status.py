from sqlalchemy import Index, UniqueConstraint
from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional

from .base import UTCDateTime, new_id, utcnow


class TaskStatus(SQLModel, table=True):
    """User-defined task status. ``is_completed`` marks a terminal status."""
    __tablename__ = "task_statuses"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_task_statuses_user_name"),
        Index("ix_task_statuses_user_order", "user_id", "order"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    color: str = Field(default="#6B7280")
    order: int = Field(default=0)
    is_default: bool = Field(default=False)
    is_completed: bool = Field(default=False)
    is_active: bool = Field(default=True)
    workflow_id: Optional[str] = Field(default=None, foreign_key="workflows.id")
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    user_id: str = Field(foreign_key="users.id", index=True)
