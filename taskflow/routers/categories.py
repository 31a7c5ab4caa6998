from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import User
from ..schemas.base import get_update_data
from ..schemas.taxonomy import CategoryCreate, CategoryRead, CategoryUpdate
from ..services.defaults import DefaultBootstrapper, TaxonomyKind
from ..services.taxonomy import CategoryStore
from .auth import get_current_user

router = APIRouter()


def get_category_store(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CategoryStore:
    return CategoryStore(db, str(current_user.id))


@router.get("", response_model=List[CategoryRead])
def list_categories(store: CategoryStore = Depends(get_category_store)):
    """Defaults first, then the busiest categories, then by name."""
    return store.list()


@router.post("", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
def create_category(category: CategoryCreate, store: CategoryStore = Depends(get_category_store)):
    return store.create(category.model_dump())


@router.post("/initialize-defaults", response_model=List[CategoryRead], status_code=status.HTTP_201_CREATED)
def initialize_default_categories(store: CategoryStore = Depends(get_category_store)):
    return DefaultBootstrapper(store.db, store.user_id).initialize_defaults(TaxonomyKind.CATEGORIES)


@router.get("/{category_id}", response_model=CategoryRead)
def get_category(category_id: str, store: CategoryStore = Depends(get_category_store)):
    return store.get(category_id)


@router.put("/{category_id}", response_model=CategoryRead)
def update_category(
    category_id: str,
    category_update: CategoryUpdate,
    store: CategoryStore = Depends(get_category_store),
):
    return store.update(category_id, get_update_data(category_update))


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: str, store: CategoryStore = Depends(get_category_store)):
    """Delete a category that is neither a default nor in use."""
    store.delete(category_id)
