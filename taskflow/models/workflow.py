from sqlalchemy import Column, JSON, UniqueConstraint
from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import List, Optional

from .base import UTCDateTime, new_id, utcnow


class Workflow(SQLModel, table=True):
    """Named process over a user's statuses.

    ``statuses`` holds ``{"status_id", "order", "is_required"}`` items.
    """
    __tablename__ = "workflows"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_workflows_user_name"),)

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_default: bool = Field(default=False)
    is_active: bool = Field(default=True)
    statuses: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    user_id: str = Field(foreign_key="users.id", index=True)
