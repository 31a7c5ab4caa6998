from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import User
from ..schemas.base import get_update_data
from ..schemas.taxonomy import (
    ReorderResult,
    TaskStatusCreate,
    TaskStatusRead,
    TaskStatusReorder,
    TaskStatusUpdate,
)
from ..services.defaults import DefaultBootstrapper, TaxonomyKind
from ..services.taxonomy import TaskStatusStore
from .auth import get_current_user

router = APIRouter()


def get_status_store(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TaskStatusStore:
    return TaskStatusStore(db, str(current_user.id))


@router.get("", response_model=List[TaskStatusRead])
def list_task_statuses(store: TaskStatusStore = Depends(get_status_store)):
    return store.list()


@router.post("", response_model=TaskStatusRead, status_code=status.HTTP_201_CREATED)
def create_task_status(task_status: TaskStatusCreate, store: TaskStatusStore = Depends(get_status_store)):
    return store.create(task_status.model_dump())


@router.post("/initialize-defaults", response_model=List[TaskStatusRead], status_code=status.HTTP_201_CREATED)
def initialize_default_statuses(store: TaskStatusStore = Depends(get_status_store)):
    return DefaultBootstrapper(store.db, store.user_id).initialize_defaults(TaxonomyKind.STATUSES)


@router.put("/reorder", response_model=ReorderResult)
def reorder_task_statuses(payload: TaskStatusReorder, store: TaskStatusStore = Depends(get_status_store)):
    """Bulk-update ``order``; ids that are not the user's are skipped."""
    updated = store.reorder([item.model_dump() for item in payload.statuses])
    return {"updated": updated}


@router.get("/{status_id}", response_model=TaskStatusRead)
def get_task_status(status_id: str, store: TaskStatusStore = Depends(get_status_store)):
    return store.get(status_id)


@router.put("/{status_id}", response_model=TaskStatusRead)
def update_task_status(
    status_id: str,
    status_update: TaskStatusUpdate,
    store: TaskStatusStore = Depends(get_status_store),
):
    return store.update(status_id, get_update_data(status_update))


@router.delete("/{status_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task_status(status_id: str, store: TaskStatusStore = Depends(get_status_store)):
    store.delete(status_id)
