from pydantic import Field, model_validator
from datetime import datetime
from typing import List, Literal, Optional

from ..services.status_names import normalize_status_name
from .base import CamelModel

Priority = Literal["low", "medium", "high"]


class TaskCreate(CamelModel):
    """Schema for creating new tasks. ``status`` and ``level`` fall back to taxonomy defaults."""
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    category: str = Field(min_length=1, max_length=50)
    priority: Priority = "medium"
    status: Optional[str] = Field(default=None, min_length=1, max_length=50)
    level: Optional[int] = Field(default=None, ge=1, le=10)
    workflow_id: Optional[str] = None
    due_date: Optional[datetime] = None


class TaskUpdate(CamelModel):
    """Schema for updating existing tasks."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    priority: Optional[Priority] = None
    status: Optional[str] = Field(default=None, min_length=1, max_length=50)
    level: Optional[int] = Field(default=None, ge=1, le=10)
    workflow_id: Optional[str] = None
    due_date: Optional[datetime] = None


class TaskRead(CamelModel):
    """Task response; ``display_status`` is the canonical name of ``status``."""
    id: str
    title: str
    description: Optional[str] = None
    category: str
    priority: str
    status: str
    display_status: str = ""
    status_id: Optional[str] = None
    level: int
    level_id: Optional[str] = None
    workflow_id: Optional[str] = None
    due_date: Optional[datetime] = None
    user_id: str
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _fill_display_status(self):
        if not self.display_status:
            self.display_status = normalize_status_name(self.status)
        return self


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_tasks: int
    has_next: bool
    has_prev: bool


class TaskPage(CamelModel):
    tasks: List[TaskRead]
    pagination: Pagination


class TaskStats(CamelModel):
    total_tasks: int = 0
    completed_tasks: int = 0
    in_progress_tasks: int = 0
    todo_tasks: int = 0
    high_priority_tasks: int = 0
    overdue_tasks: int = 0
