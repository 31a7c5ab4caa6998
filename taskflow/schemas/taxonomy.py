from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import CamelModel

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class CategoryCreate(CamelModel):
    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    color: str = Field(default="#3B82F6", pattern=COLOR_PATTERN)


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)


class CategoryRead(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    color: str
    is_default: bool
    task_count: int
    created_at: datetime
    updated_at: datetime


class TaskStatusCreate(CamelModel):
    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    color: str = Field(default="#6B7280", pattern=COLOR_PATTERN)
    order: int = Field(ge=0)
    is_completed: bool = False
    is_active: bool = True
    workflow_id: Optional[str] = None


class TaskStatusUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)
    order: Optional[int] = Field(default=None, ge=0)
    is_completed: Optional[bool] = None
    is_active: Optional[bool] = None
    workflow_id: Optional[str] = None


class TaskStatusRead(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    color: str
    order: int
    is_default: bool
    is_completed: bool
    is_active: bool
    workflow_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class StatusOrder(CamelModel):
    id: str
    order: int = Field(ge=0)


class TaskStatusReorder(CamelModel):
    statuses: List[StatusOrder]


class TaskLevelCreate(CamelModel):
    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    level: int = Field(ge=1, le=10)
    color: str = Field(default="#6B7280", pattern=COLOR_PATTERN)
    icon: Optional[str] = Field(default=None, max_length=50)
    is_active: bool = True


class TaskLevelUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    level: Optional[int] = Field(default=None, ge=1, le=10)
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)
    icon: Optional[str] = Field(default=None, max_length=50)
    is_active: Optional[bool] = None


class TaskLevelRead(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    level: int
    color: str
    icon: Optional[str] = None
    is_default: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime


class WorkflowStatusItem(CamelModel):
    status_id: str
    order: int = Field(ge=0)
    is_required: bool = True


class WorkflowCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True
    statuses: List[WorkflowStatusItem] = Field(default_factory=list)


class WorkflowUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None
    statuses: Optional[List[WorkflowStatusItem]] = None


class WorkflowRead(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    is_default: bool
    is_active: bool
    statuses: List[WorkflowStatusItem]
    created_at: datetime
    updated_at: datetime


class ReorderResult(CamelModel):
    updated: int
