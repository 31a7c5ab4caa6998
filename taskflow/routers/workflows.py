from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import User
from ..schemas.base import CamelModel, get_update_data
from ..schemas.taxonomy import TaskStatusRead, WorkflowCreate, WorkflowRead, WorkflowUpdate
from ..services.taxonomy import WorkflowStore
from .auth import get_current_user

router = APIRouter()


class WorkflowStep(CamelModel):
    status: TaskStatusRead
    order: Optional[int] = None
    is_required: bool


def get_workflow_store(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> WorkflowStore:
    return WorkflowStore(db, str(current_user.id))


@router.get("", response_model=List[WorkflowRead])
def list_workflows(store: WorkflowStore = Depends(get_workflow_store)):
    return store.list()


@router.post("", response_model=WorkflowRead, status_code=status.HTTP_201_CREATED)
def create_workflow(workflow: WorkflowCreate, store: WorkflowStore = Depends(get_workflow_store)):
    return store.create(workflow.model_dump())


@router.get("/{workflow_id}", response_model=WorkflowRead)
def get_workflow(workflow_id: str, store: WorkflowStore = Depends(get_workflow_store)):
    return store.get(workflow_id)


@router.get("/{workflow_id}/statuses", response_model=List[WorkflowStep])
def get_workflow_statuses(workflow_id: str, store: WorkflowStore = Depends(get_workflow_store)):
    """The workflow's statuses in rendering order."""
    return store.status_sequence(workflow_id)


@router.put("/{workflow_id}", response_model=WorkflowRead)
def update_workflow(
    workflow_id: str,
    workflow_update: WorkflowUpdate,
    store: WorkflowStore = Depends(get_workflow_store),
):
    return store.update(workflow_id, get_update_data(workflow_update))


@router.delete("/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_workflow(workflow_id: str, store: WorkflowStore = Depends(get_workflow_store)):
    store.delete(workflow_id)
