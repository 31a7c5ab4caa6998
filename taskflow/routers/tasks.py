from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..database import get_db
from ..models import User
from ..schemas.base import get_update_data
from ..schemas.task import TaskCreate, TaskPage, TaskRead, TaskStats, TaskUpdate
from ..services.tasks import TaskStore
from .auth import get_current_user

router = APIRouter()


def get_task_store(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TaskStore:
    return TaskStore(db, str(current_user.id))


@router.get("", response_model=TaskPage)
def list_tasks(
    status: Optional[str] = None,
    category: Optional[str] = None,
    priority: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    store: TaskStore = Depends(get_task_store),
):
    """Get a page of the user's tasks, newest first, with optional filters."""
    return store.list(status=status, category=category, priority=priority, page=page, limit=limit)


@router.get("/stats/overview", response_model=TaskStats)
def get_stats(store: TaskStore = Depends(get_task_store)):
    """Dashboard counters for the user's tasks."""
    return store.stats()


@router.post("", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
def create_task(task: TaskCreate, store: TaskStore = Depends(get_task_store)):
    """Create a new task for the user."""
    return store.create(task.model_dump())


@router.get("/{task_id}", response_model=TaskRead)
def get_task(task_id: str, store: TaskStore = Depends(get_task_store)):
    """Get a specific task by ID."""
    return store.get(task_id)


@router.put("/{task_id}", response_model=TaskRead)
def update_task(task_id: str, task_update: TaskUpdate, store: TaskStore = Depends(get_task_store)):
    """Update a specific task; reaching a completion status stamps completedAt."""
    return store.update(task_id, get_update_data(task_update))


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(task_id: str, store: TaskStore = Depends(get_task_store)):
    """Delete a specific task."""
    store.delete(task_id)
