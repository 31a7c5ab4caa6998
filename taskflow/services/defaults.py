"""Starter taxonomy for new users."""
import enum
import logging
from typing import Dict, List

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import translate_storage_errors
from ..errors import AlreadyInitializedError, ValidationError
from ..models import Category, TaskLevel, TaskStatus
from . import guard
from .status_names import COMPLETED, IN_PROGRESS, ON_HOLD, REVIEW, TODO

logger = logging.getLogger(__name__)


class TaxonomyKind(str, enum.Enum):
    CATEGORIES = "categories"
    STATUSES = "statuses"
    LEVELS = "levels"


DEFAULT_CATEGORIES = [
    {"name": "Work", "description": "Work-related tasks", "color": "#3B82F6"},
    {"name": "Personal", "description": "Personal tasks", "color": "#10B981"},
    {"name": "Health", "description": "Health and fitness tasks", "color": "#F59E0B"},
    {"name": "Learning", "description": "Learning and education tasks", "color": "#8B5CF6"},
    {"name": "Shopping", "description": "Shopping and errands", "color": "#EF4444"},
]

DEFAULT_STATUSES = [
    {"name": TODO, "description": "Tasks that need to be started", "color": "#6B7280", "order": 1},
    {"name": IN_PROGRESS, "description": "Tasks currently being worked on", "color": "#F59E0B", "order": 2},
    {"name": REVIEW, "description": "Tasks ready for review", "color": "#3B82F6", "order": 3},
    {"name": COMPLETED, "description": "Finished tasks", "color": "#10B981", "order": 4, "is_completed": True},
    {"name": ON_HOLD, "description": "Tasks temporarily paused", "color": "#EF4444", "order": 5},
]

DEFAULT_LEVELS = [
    {"name": "Critical", "description": "Highest priority tasks", "level": 1, "color": "#DC2626", "icon": "🔥"},
    {"name": "High", "description": "Important tasks", "level": 2, "color": "#EA580C", "icon": "⚡"},
    {"name": "Medium", "description": "Normal priority tasks", "level": 3, "color": "#D97706", "icon": "📋"},
    {"name": "Low", "description": "Lower priority tasks", "level": 4, "color": "#059669", "icon": "📝"},
    {"name": "Backlog", "description": "Future tasks", "level": 5, "color": "#6B7280", "icon": "📚"},
]

_STARTER_SETS = {
    TaxonomyKind.CATEGORIES: (Category, DEFAULT_CATEGORIES),
    TaxonomyKind.STATUSES: (TaskStatus, DEFAULT_STATUSES),
    TaxonomyKind.LEVELS: (TaskLevel, DEFAULT_LEVELS),
}


class DefaultBootstrapper:
    """Seeds a user's empty taxonomy with the starter sets above."""

    def __init__(self, db: Session, user_id: str):
        self.db = db
        self.user_id = user_id

    def _has_entries(self, model) -> bool:
        existing = (
            self.db.query(func.count(model.id)).filter(model.user_id == self.user_id).scalar()
        )
        return bool(existing)

    @translate_storage_errors
    def initialize_defaults(self, kind) -> List:
        """Insert the starter set for ``kind``.

        Raises AlreadyInitializedError if the user already owns any entry of
        that kind; nothing is inserted in that case.
        """
        try:
            kind = TaxonomyKind(kind)
        except ValueError:
            raise ValidationError(f"Unknown taxonomy kind: {kind}") from None

        model, starter = _STARTER_SETS[kind]
        if self._has_entries(model):
            raise AlreadyInitializedError(f"User already has {kind.value}")

        entries = [model(**row, is_default=True, user_id=self.user_id) for row in starter]
        self.db.add_all(entries)
        try:
            self.db.commit()
        except IntegrityError as exc:
            # A concurrent request seeded the same kind first.
            self.db.rollback()
            raise AlreadyInitializedError(f"User already has {kind.value}") from exc

        for entry in entries:
            self.db.refresh(entry)
        logger.info("Seeded %d default %s for user %s", len(entries), kind.value, self.user_id)
        return entries

    @translate_storage_errors
    def provision_user(self) -> Dict[str, int]:
        """Seed every kind that is still empty, then migrate legacy task statuses.

        Safe to call repeatedly; returns how many entries each kind received.
        """
        created = {}
        for kind in TaxonomyKind:
            try:
                created[kind.value] = len(self.initialize_defaults(kind))
            except AlreadyInitializedError:
                created[kind.value] = 0

        if guard.migrate_legacy_statuses(self.db, self.user_id):
            self.db.commit()
        return created
