"""Per-user task records, validated against the user's taxonomy."""
import logging
import math
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import and_, case, func, not_
from sqlalchemy.orm import Session

from ..config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, STRICT_TASK_REFERENCES
from ..database import translate_storage_errors
from ..errors import NotFoundError, ValidationError
from ..models import Task, TaskStatus, Workflow
from ..models.base import as_utc, utcnow
from ..models.task import DEFAULT_LEVEL, PRIORITIES
from . import guard
from .status_names import COMPLETED, IN_PROGRESS, TODO, normalize_status_name, variants_of
from .taxonomy import CategoryStore, TaskLevelStore, TaskStatusStore

logger = logging.getLogger(__name__)

_PLAIN_FIELDS = ("title", "description", "priority", "due_date", "workflow_id")


def _parse_due_date(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Malformed due date: {value!r}") from None
    if not isinstance(value, datetime):
        raise ValidationError("Due date must be a date-time")
    return as_utc(value)


def _required_text(data: dict, field: str) -> str:
    value = (data.get(field) or "").strip()
    if not value:
        raise ValidationError(f"{field.capitalize()} is required")
    return value


class TaskStore:
    """CRUD, listing and statistics for one user's tasks.

    With ``strict_references`` a task's category and status must name an
    existing taxonomy entry; otherwise unknown names are stored with a warning.
    """

    def __init__(self, db: Session, user_id: str, strict_references: bool = STRICT_TASK_REFERENCES):
        self.db = db
        self.user_id = user_id
        self.strict_references = strict_references
        self.categories = CategoryStore(db, user_id)
        self.statuses = TaskStatusStore(db, user_id)
        self.levels = TaskLevelStore(db, user_id)

    def _query(self):
        return self.db.query(Task).filter(Task.user_id == self.user_id)

    def _unknown_reference(self, kind: str, name: str) -> None:
        if self.strict_references:
            raise ValidationError(f"Unknown {kind} '{name}'")
        logger.warning("Task for user %s references unknown %s %r", self.user_id, kind, name)

    def _resolve_status(self, name: Optional[str]) -> Tuple[str, Optional[TaskStatus]]:
        if name is None:
            row = self.statuses.default_status()
            if row is not None:
                return row.name, row
            if self.strict_references:
                raise ValidationError("No task statuses defined; initialize the defaults first")
            return TODO, None

        row = self.statuses.find_by_name(name)
        if row is None:
            canonical = normalize_status_name(name)
            if canonical != name:
                row = self.statuses.find_by_name(canonical)
        if row is not None:
            return row.name, row

        self._unknown_reference("status", name)
        return name, None

    def _check_category(self, name: str) -> None:
        if self.categories.find_by_name(name) is None:
            self._unknown_reference("category", name)

    def _check_workflow(self, workflow_id: Optional[str]) -> None:
        if workflow_id is None:
            return
        exists = (
            self.db.query(Workflow.id)
            .filter(Workflow.id == workflow_id, Workflow.user_id == self.user_id)
            .first()
        )
        if exists is None:
            raise ValidationError("Workflow not found")

    def _resolve_level(self, level) -> Tuple[int, Optional[str]]:
        if not isinstance(level, int) or isinstance(level, bool) or not 1 <= level <= 10:
            raise ValidationError("Level must be an integer between 1 and 10")
        row = self.levels.find_by_rank(level)
        return level, row.id if row is not None else None

    @staticmethod
    def _check_priority(priority: str) -> None:
        if priority not in PRIORITIES:
            raise ValidationError(f"Priority must be one of: {', '.join(PRIORITIES)}")

    @translate_storage_errors
    def get(self, task_id: str) -> Task:
        task = self._query().filter(Task.id == task_id).first()
        if task is None:
            raise NotFoundError("Task not found")
        return task

    @translate_storage_errors
    def create(self, data: dict) -> Task:
        title = _required_text(data, "title")
        category = _required_text(data, "category")
        priority = data.get("priority") or "medium"
        self._check_priority(priority)

        due_date = _parse_due_date(data.get("due_date"))
        now = utcnow()
        if due_date is not None and due_date <= now:
            raise ValidationError("Due date must be in the future")

        self._check_category(category)
        status, status_row = self._resolve_status(data.get("status"))
        level, level_id = self._resolve_level(data.get("level") or DEFAULT_LEVEL)
        self._check_workflow(data.get("workflow_id"))

        task = Task(
            title=title,
            description=data.get("description"),
            category=category,
            priority=priority,
            status=status,
            status_id=status_row.id if status_row is not None else None,
            level=level,
            level_id=level_id,
            workflow_id=data.get("workflow_id"),
            due_date=due_date,
            user_id=self.user_id,
            created_at=now,
            updated_at=now,
        )
        if status_row is not None and status_row.is_completed:
            task.completed_at = now

        self.db.add(task)
        self.db.flush()
        guard.refresh_category_counts(self.db, self.user_id, [category])
        self.db.commit()
        self.db.refresh(task)
        logger.info("Created task %s for user %s", task.id, self.user_id)
        return task

    @translate_storage_errors
    def update(self, task_id: str, patch: dict) -> Task:
        """Apply a partial update.

        Moving into a completion status stamps ``completed_at`` once, through a
        conditional write in the same transaction. Leaving it never clears it.
        """
        task = self.get(task_id)
        changes = {}

        for field in ("title", "category"):
            if field in patch:
                changes[field] = _required_text(patch, field)
        if "category" in changes:
            self._check_category(changes["category"])
        if "priority" in patch:
            self._check_priority(patch["priority"])
        if "due_date" in patch:
            changes["due_date"] = _parse_due_date(patch["due_date"])
        if "workflow_id" in patch:
            self._check_workflow(patch["workflow_id"])

        status_row = None
        if patch.get("status") is not None:
            changes["status"], status_row = self._resolve_status(patch["status"])
            changes["status_id"] = status_row.id if status_row is not None else None
        if patch.get("level") is not None:
            changes["level"], changes["level_id"] = self._resolve_level(patch["level"])

        for field in _PLAIN_FIELDS:
            if field in patch and field not in changes:
                changes[field] = patch[field]

        old_category = task.category
        now = utcnow()
        for field, value in changes.items():
            setattr(task, field, value)
        task.updated_at = now
        self.db.flush()

        if status_row is not None and status_row.is_completed:
            if guard.stamp_completion(self.db, task.id, now):
                logger.info("Task %s reached completion status %r", task.id, status_row.name)

        guard.refresh_category_counts(self.db, self.user_id, [old_category, task.category])
        self.db.commit()
        self.db.refresh(task)
        return task

    @translate_storage_errors
    def delete(self, task_id: str) -> None:
        task = self.get(task_id)
        category = task.category
        self.db.delete(task)
        self.db.flush()
        guard.refresh_category_counts(self.db, self.user_id, [category])
        self.db.commit()
        logger.info("Deleted task %s for user %s", task_id, self.user_id)

    @translate_storage_errors
    def list(
        self,
        status: Optional[str] = None,
        category: Optional[str] = None,
        priority: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> dict:
        """One page of tasks, newest first, with pagination metadata."""
        if page < 1:
            raise ValidationError("Page must be at least 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")

        query = self._query()
        if status:
            query = query.filter(Task.status == status)
        if category:
            query = query.filter(Task.category == category)
        if priority:
            query = query.filter(Task.priority == priority)

        total = query.count()
        skip = (page - 1) * limit
        tasks = (
            query.order_by(Task.created_at.desc(), Task.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

        return {
            "tasks": tasks,
            "pagination": {
                "current_page": page,
                "total_pages": math.ceil(total / limit),
                "total_tasks": total,
                "has_next": skip + len(tasks) < total,
                "has_prev": page > 1,
            },
        }

    @translate_storage_errors
    def stats(self) -> dict:
        """Dashboard counters.

        "Completed" is any of the user's completion statuses or the legacy
        ``completed`` literal; in-progress and todo match the canonical names
        and their legacy spellings.
        """
        completed_names = guard.completion_status_names(self.db, self.user_id)
        completed_names.update(variants_of(COMPLETED))

        status = func.lower(Task.status)
        is_completed = status.in_([name.lower() for name in completed_names])
        in_progress = status.in_([name.lower() for name in variants_of(IN_PROGRESS)])
        todo = status.in_([name.lower() for name in variants_of(TODO)])
        overdue = and_(Task.due_date.isnot(None), Task.due_date < utcnow(), not_(is_completed))

        def _tally(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        row = self._query().with_entities(
            func.count(Task.id),
            _tally(is_completed),
            _tally(in_progress),
            _tally(todo),
            _tally(Task.priority == "high"),
            _tally(overdue),
        ).one()

        return {
            "total_tasks": row[0],
            "completed_tasks": row[1],
            "in_progress_tasks": row[2],
            "todo_tasks": row[3],
            "high_priority_tasks": row[4],
            "overdue_tasks": row[5],
        }
