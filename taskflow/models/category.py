from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional

from .base import UTCDateTime, new_id, utcnow


class Category(SQLModel, table=True):
    """User-defined task category.

    ``task_count`` is recomputed whenever a task write touches the category.
    """
    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_categories_user_name"),)

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    color: str = Field(default="#3B82F6")
    is_default: bool = Field(default=False)
    task_count: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    user_id: str = Field(foreign_key="users.id", index=True)
