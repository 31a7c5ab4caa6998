"""Rules that keep task references and taxonomy entries mutually valid.

Tasks point at taxonomy entries by name (``category``, ``status``) and by rank
(``level``), optionally backed by ids. The helpers here count those references,
carry renames over to tasks, keep category counters current and stamp
completion. None of them commit; the calling store owns the transaction.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional, Set

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from ..models import Category, Task, TaskLevel, TaskStatus, Workflow
from .status_names import is_legacy_variant, normalize_status_name

logger = logging.getLogger(__name__)


def _tasks(db: Session, user_id: str):
    return db.query(Task).filter(Task.user_id == user_id)


def _count(query) -> int:
    return query.with_entities(func.count(Task.id)).scalar() or 0


def count_category_references(db: Session, user_id: str, category: Category) -> int:
    return _count(_tasks(db, user_id).filter(Task.category == category.name))


def count_status_references(db: Session, user_id: str, status: TaskStatus) -> int:
    return _count(
        _tasks(db, user_id).filter(or_(Task.status == status.name, Task.status_id == status.id))
    )


def count_level_references(db: Session, user_id: str, level: TaskLevel) -> int:
    return _count(
        _tasks(db, user_id).filter(or_(Task.level == level.level, Task.level_id == level.id))
    )


def count_workflow_references(db: Session, user_id: str, workflow: Workflow) -> int:
    return _count(_tasks(db, user_id).filter(Task.workflow_id == workflow.id))


def cascade_category_rename(db: Session, user_id: str, old_name: str, new_name: str) -> int:
    updated = (
        _tasks(db, user_id)
        .filter(Task.category == old_name)
        .update({Task.category: new_name}, synchronize_session=False)
    )
    logger.info("Renamed category %r -> %r on %d task(s)", old_name, new_name, updated)
    return updated


def cascade_status_rename(
    db: Session, user_id: str, status_id: str, old_name: str, new_name: str
) -> int:
    updated = (
        _tasks(db, user_id)
        .filter(or_(Task.status_id == status_id, Task.status == old_name))
        .update({Task.status: new_name, Task.status_id: status_id}, synchronize_session=False)
    )
    logger.info("Renamed status %r -> %r on %d task(s)", old_name, new_name, updated)
    return updated


def cascade_level_rerank(
    db: Session, user_id: str, level_id: str, old_rank: int, new_rank: int
) -> int:
    updated = (
        _tasks(db, user_id)
        .filter(
            or_(
                Task.level_id == level_id,
                and_(Task.level_id.is_(None), Task.level == old_rank),
            )
        )
        .update({Task.level: new_rank, Task.level_id: level_id}, synchronize_session=False)
    )
    logger.info("Moved level %d -> %d on %d task(s)", old_rank, new_rank, updated)
    return updated


def refresh_category_counts(db: Session, user_id: str, names: Iterable[Optional[str]]) -> None:
    """Recompute ``task_count`` for the named categories of one user."""
    for name in {name for name in names if name}:
        count = _count(_tasks(db, user_id).filter(Task.category == name))
        db.query(Category).filter(Category.user_id == user_id, Category.name == name).update(
            {Category.task_count: count}, synchronize_session=False
        )


def completion_status_names(db: Session, user_id: str) -> Set[str]:
    rows = (
        db.query(TaskStatus.name)
        .filter(TaskStatus.user_id == user_id, TaskStatus.is_completed.is_(True))
        .all()
    )
    return {name for (name,) in rows}


def stamp_completion(db: Session, task_id: str, when: datetime) -> bool:
    """Set ``completed_at`` only if it is still empty; never clears it."""
    updated = (
        db.query(Task)
        .filter(Task.id == task_id, Task.completed_at.is_(None))
        .update({Task.completed_at: when}, synchronize_session=False)
    )
    return bool(updated)


def detach_workflow(db: Session, user_id: str, workflow_id: str) -> int:
    return (
        db.query(TaskStatus)
        .filter(TaskStatus.user_id == user_id, TaskStatus.workflow_id == workflow_id)
        .update({TaskStatus.workflow_id: None}, synchronize_session=False)
    )


def prune_status_from_workflows(db: Session, user_id: str, status_id: str) -> int:
    pruned = 0
    for workflow in db.query(Workflow).filter(Workflow.user_id == user_id).all():
        kept = [item for item in workflow.statuses if item.get("status_id") != status_id]
        if len(kept) != len(workflow.statuses):
            workflow.statuses = kept
            pruned += 1
    return pruned


def migrate_legacy_statuses(db: Session, user_id: str) -> int:
    """Point tasks carrying legacy status literals at the matching status rows."""
    statuses = {
        status.name: status
        for status in db.query(TaskStatus).filter(TaskStatus.user_id == user_id).all()
    }
    if not statuses:
        return 0

    migrated = 0
    for task in _tasks(db, user_id).all():
        row = statuses.get(task.status)
        if row is None and is_legacy_variant(task.status):
            row = statuses.get(normalize_status_name(task.status))
        if row is None:
            continue
        if task.status != row.name or task.status_id != row.id:
            task.status = row.name
            task.status_id = row.id
            migrated += 1

    if migrated:
        logger.info("Migrated %d legacy task status(es) for user %s", migrated, user_id)
    return migrated
