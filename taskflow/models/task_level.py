from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional

from .base import UTCDateTime, new_id, utcnow


class TaskLevel(SQLModel, table=True):
    """Priority level. ``level`` is a dense rank, 1 being the most urgent."""
    __tablename__ = "task_levels"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_task_levels_user_name"),
        UniqueConstraint("user_id", "level", name="uq_task_levels_user_level"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    level: int
    color: str = Field(default="#6B7280")
    icon: Optional[str] = Field(default=None, max_length=50)
    is_default: bool = Field(default=False)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    user_id: str = Field(foreign_key="users.id", index=True)
