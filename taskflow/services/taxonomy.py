"""Per-user CRUD for categories, statuses, levels and workflows."""
import logging
from contextlib import contextmanager
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import CASCADE_TAXONOMY_RENAMES
from ..database import translate_storage_errors
from ..errors import (
    DuplicateNameError,
    DuplicateRankError,
    NotFoundError,
    ProtectedDefaultError,
    ReferencedEntryError,
    ValidationError,
)
from ..models import Category, TaskLevel, TaskStatus, Workflow
from ..models.base import utcnow
from . import guard

logger = logging.getLogger(__name__)


class _TaxonomyStore:
    """Shared create/update/delete rules for one taxonomy table.

    Subclasses set ``model``, ``label`` and ``unique_fields`` and may hook
    ``_validate_links``, ``_after_update``, ``_count_references`` and
    ``_before_delete``.
    """

    model = None
    label = "Entry"
    # (field, error raised on collision, word used in the message)
    unique_fields = (("name", DuplicateNameError, "name"),)

    def __init__(self, db: Session, user_id: str, cascade_renames: bool = CASCADE_TAXONOMY_RENAMES):
        self.db = db
        self.user_id = user_id
        self.cascade_renames = cascade_renames

    def _query(self):
        return self.db.query(self.model).filter(self.model.user_id == self.user_id)

    def _ordering(self):
        return (self.model.created_at,)

    def _check_unique(self, data: dict, exclude_id: Optional[str] = None) -> None:
        for field, error_cls, word in self.unique_fields:
            value = data.get(field)
            if value is None:
                continue
            query = self._query().filter(getattr(self.model, field) == value)
            if exclude_id is not None:
                query = query.filter(self.model.id != exclude_id)
            if query.first() is not None:
                raise error_cls(f"{self.label} with this {word} already exists")

    def _check_not_null(self, patch: dict) -> None:
        columns = self.model.__table__.columns
        for field, value in patch.items():
            if value is None and field in columns and not columns[field].nullable:
                raise ValidationError(f"{field} cannot be null")

    @contextmanager
    def _unique_writes(self, data: dict, exclude_id: Optional[str] = None):
        try:
            yield
        except IntegrityError:
            self.db.rollback()
            # Lost a race with a concurrent writer: report it the same way
            # the pre-insert check would have.
            self._check_unique(data, exclude_id)
            raise

    def _validate_links(self, data: dict) -> None:
        pass

    def _after_update(self, entry, previous: dict) -> None:
        pass

    def _count_references(self, entry) -> int:
        return 0

    def _before_delete(self, entry) -> None:
        pass

    @translate_storage_errors
    def list(self) -> List:
        return self._query().order_by(*self._ordering()).all()

    @translate_storage_errors
    def get(self, entry_id: str):
        entry = self._query().filter(self.model.id == entry_id).first()
        if entry is None:
            raise NotFoundError(f"{self.label} not found")
        return entry

    @translate_storage_errors
    def find_by_name(self, name: str):
        return self._query().filter(self.model.name == name).first()

    @translate_storage_errors
    def create(self, data: dict):
        self._check_unique(data)
        self._validate_links(data)

        entry = self.model(**data, user_id=self.user_id)
        self.db.add(entry)
        with self._unique_writes(data):
            self.db.commit()
        self.db.refresh(entry)
        logger.info("Created %s %r for user %s", self.label.lower(), entry.name, self.user_id)
        return entry

    @translate_storage_errors
    def update(self, entry_id: str, patch: dict):
        entry = self.get(entry_id)
        self._check_not_null(patch)
        self._check_unique(patch, exclude_id=entry.id)
        self._validate_links(patch)

        previous = {field: getattr(entry, field) for field in patch}
        for field, value in patch.items():
            setattr(entry, field, value)
        entry.updated_at = utcnow()

        with self._unique_writes(patch, exclude_id=entry.id):
            self.db.flush()
            self._after_update(entry, previous)
            self.db.commit()
        self.db.refresh(entry)
        return entry

    @translate_storage_errors
    def delete(self, entry_id: str) -> None:
        entry = self.get(entry_id)
        noun = self.label.lower()
        name = entry.name

        if entry.is_default:
            raise ProtectedDefaultError(f"Cannot delete default {noun}")

        count = self._count_references(entry)
        if count > 0:
            logger.info("Blocked delete of %s %r: %d task(s) reference it", noun, name, count)
            raise ReferencedEntryError(
                f"Cannot delete {noun}. {count} task(s) are using this {noun}. "
                "Please reassign them first.",
                count,
            )

        self._before_delete(entry)
        self.db.delete(entry)
        self.db.commit()
        logger.info("Deleted %s %r for user %s", noun, name, self.user_id)


class CategoryStore(_TaxonomyStore):
    model = Category
    label = "Category"

    def _ordering(self):
        return (Category.is_default.desc(), Category.task_count.desc(), Category.name)

    def _after_update(self, entry: Category, previous: dict) -> None:
        old_name = previous.get("name")
        if old_name is None or old_name == entry.name:
            return
        if self.cascade_renames:
            guard.cascade_category_rename(self.db, self.user_id, old_name, entry.name)
        guard.refresh_category_counts(self.db, self.user_id, [old_name, entry.name])

    def _count_references(self, entry: Category) -> int:
        return guard.count_category_references(self.db, self.user_id, entry)


class TaskStatusStore(_TaxonomyStore):
    model = TaskStatus
    label = "Task status"

    def _ordering(self):
        return (TaskStatus.order, TaskStatus.created_at)

    def _validate_links(self, data: dict) -> None:
        workflow_id = data.get("workflow_id")
        if workflow_id is None:
            return
        exists = (
            self.db.query(Workflow.id)
            .filter(Workflow.id == workflow_id, Workflow.user_id == self.user_id)
            .first()
        )
        if exists is None:
            raise ValidationError("Workflow not found")

    def _after_update(self, entry: TaskStatus, previous: dict) -> None:
        old_name = previous.get("name")
        if self.cascade_renames and old_name is not None and old_name != entry.name:
            guard.cascade_status_rename(self.db, self.user_id, entry.id, old_name, entry.name)

    def _count_references(self, entry: TaskStatus) -> int:
        return guard.count_status_references(self.db, self.user_id, entry)

    def _before_delete(self, entry: TaskStatus) -> None:
        guard.prune_status_from_workflows(self.db, self.user_id, entry.id)

    @translate_storage_errors
    def default_status(self) -> Optional[TaskStatus]:
        """The first active, non-completion status in workflow order."""
        return (
            self._query()
            .filter(TaskStatus.is_completed.is_(False), TaskStatus.is_active.is_(True))
            .order_by(*self._ordering())
            .first()
        )

    @translate_storage_errors
    def reorder(self, entries: List[Dict]) -> int:
        """Apply ``[{id, order}]`` in one commit. Unknown ids are skipped."""
        now = utcnow()
        updated = 0
        for item in entries:
            updated += self._query().filter(TaskStatus.id == item["id"]).update(
                {TaskStatus.order: item["order"], TaskStatus.updated_at: now},
                synchronize_session=False,
            )
        self.db.commit()
        skipped = len(entries) - updated
        if skipped:
            logger.info("Reorder skipped %d unknown status id(s) for user %s", skipped, self.user_id)
        return updated


class TaskLevelStore(_TaxonomyStore):
    model = TaskLevel
    label = "Task level"
    unique_fields = (
        ("name", DuplicateNameError, "name"),
        ("level", DuplicateRankError, "number"),
    )

    def _ordering(self):
        return (TaskLevel.level, TaskLevel.created_at)

    def _after_update(self, entry: TaskLevel, previous: dict) -> None:
        old_rank = previous.get("level")
        if self.cascade_renames and old_rank is not None and old_rank != entry.level:
            guard.cascade_level_rerank(self.db, self.user_id, entry.id, old_rank, entry.level)

    def _count_references(self, entry: TaskLevel) -> int:
        return guard.count_level_references(self.db, self.user_id, entry)

    @translate_storage_errors
    def find_by_rank(self, level: int) -> Optional[TaskLevel]:
        return self._query().filter(TaskLevel.level == level).first()


class WorkflowStore(_TaxonomyStore):
    model = Workflow
    label = "Workflow"

    def _ordering(self):
        return (Workflow.is_default.desc(), Workflow.name)

    def _validate_links(self, data: dict) -> None:
        if "statuses" not in data:
            return
        items = data["statuses"]
        if items is None:
            raise ValidationError("Statuses must be a list")
        ids = [item["status_id"] for item in items]
        if len(ids) != len(set(ids)):
            raise ValidationError("A status can appear only once in a workflow")
        owned = {
            status_id
            for (status_id,) in self.db.query(TaskStatus.id)
            .filter(TaskStatus.user_id == self.user_id, TaskStatus.id.in_(ids))
            .all()
        }
        missing = [status_id for status_id in ids if status_id not in owned]
        if missing:
            raise ValidationError(f"Unknown task status id(s): {', '.join(missing)}")

    def _count_references(self, entry: Workflow) -> int:
        return guard.count_workflow_references(self.db, self.user_id, entry)

    def _before_delete(self, entry: Workflow) -> None:
        guard.detach_workflow(self.db, self.user_id, entry.id)

    @translate_storage_errors
    def status_sequence(self, workflow_id: str) -> List[Dict]:
        """Ordered steps of a workflow.

        Statuses listed on the workflow come first, by their workflow order and
        then their own ``order``. Statuses grouped under the workflow through
        ``workflow_id`` but not listed follow, by ``order``.
        """
        workflow = self.get(workflow_id)
        listed = {item["status_id"]: item for item in workflow.statuses}

        rows = (
            self.db.query(TaskStatus)
            .filter(TaskStatus.user_id == self.user_id)
            .filter((TaskStatus.id.in_(list(listed))) | (TaskStatus.workflow_id == workflow.id))
            .all()
        )
        by_id = {row.id: row for row in rows}

        steps = [
            {"status": by_id[status_id], "order": item["order"], "is_required": item.get("is_required", True)}
            for status_id, item in listed.items()
            if status_id in by_id
        ]
        steps.sort(key=lambda step: (step["order"], step["status"].order))

        grouped = sorted(
            (row for row in rows if row.id not in listed),
            key=lambda row: (row.order, row.created_at),
        )
        steps.extend({"status": row, "order": None, "is_required": False} for row in grouped)
        return steps
