from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import User
from ..schemas.base import get_update_data
from ..schemas.taxonomy import TaskLevelCreate, TaskLevelRead, TaskLevelUpdate
from ..services.defaults import DefaultBootstrapper, TaxonomyKind
from ..services.taxonomy import TaskLevelStore
from .auth import get_current_user

router = APIRouter()


def get_level_store(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TaskLevelStore:
    return TaskLevelStore(db, str(current_user.id))


@router.get("", response_model=List[TaskLevelRead])
def list_task_levels(store: TaskLevelStore = Depends(get_level_store)):
    return store.list()


@router.post("", response_model=TaskLevelRead, status_code=status.HTTP_201_CREATED)
def create_task_level(task_level: TaskLevelCreate, store: TaskLevelStore = Depends(get_level_store)):
    return store.create(task_level.model_dump())


@router.post("/initialize-defaults", response_model=List[TaskLevelRead], status_code=status.HTTP_201_CREATED)
def initialize_default_levels(store: TaskLevelStore = Depends(get_level_store)):
    return DefaultBootstrapper(store.db, store.user_id).initialize_defaults(TaxonomyKind.LEVELS)


@router.get("/{level_id}", response_model=TaskLevelRead)
def get_task_level(level_id: str, store: TaskLevelStore = Depends(get_level_store)):
    return store.get(level_id)


@router.put("/{level_id}", response_model=TaskLevelRead)
def update_task_level(
    level_id: str,
    level_update: TaskLevelUpdate,
    store: TaskLevelStore = Depends(get_level_store),
):
    return store.update(level_id, get_update_data(level_update))


@router.delete("/{level_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task_level(level_id: str, store: TaskLevelStore = Depends(get_level_store)):
    store.delete(level_id)
