import pytest
from sqlalchemy.exc import OperationalError

from taskflow.errors import (
    DuplicateNameError,
    DuplicateRankError,
    NotFoundError,
    ProtectedDefaultError,
    ReferencedEntryError,
    StorageUnavailableError,
    ValidationError,
)
from taskflow.models import Task
from taskflow.services import guard
from taskflow.services.taxonomy import (
    CategoryStore,
    TaskLevelStore,
    TaskStatusStore,
    WorkflowStore,
)


def _add_task(db, user_id, **fields):
    values = {"title": "Something", "category": "Work", "status": "To Do"}
    values.update(fields)
    task = Task(user_id=user_id, **values)
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


# ---------------------------------------------------------------------------
# Uniqueness
# ---------------------------------------------------------------------------


def test_duplicate_category_name_rejected_for_same_user(db, user):
    store = CategoryStore(db, user.id)
    store.create({"name": "Work", "color": "#3B82F6"})

    with pytest.raises(DuplicateNameError):
        store.create({"name": "Work", "color": "#10B981"})

    assert len(store.list()) == 1


def test_same_category_name_allowed_for_different_users(db, user, other_user):
    CategoryStore(db, user.id).create({"name": "Work"})
    other = CategoryStore(db, other_user.id).create({"name": "Work"})

    assert other.user_id == other_user.id


def test_category_names_are_case_sensitive(db, user):
    store = CategoryStore(db, user.id)
    store.create({"name": "Work"})
    store.create({"name": "work"})

    assert sorted(c.name for c in store.list()) == ["Work", "work"]


def test_duplicate_level_rank_rejected(db, user):
    store = TaskLevelStore(db, user.id)
    store.create({"name": "Urgent", "level": 3})

    with pytest.raises(DuplicateRankError):
        store.create({"name": "Pressing", "level": 3})


def test_status_order_is_not_unique(db, user):
    store = TaskStatusStore(db, user.id)
    store.create({"name": "Open", "order": 1})
    store.create({"name": "Triaged", "order": 1})

    assert len(store.list()) == 2


def test_update_to_own_name_is_a_no_op(db, user):
    store = CategoryStore(db, user.id)
    category = store.create({"name": "Work"})

    updated = store.update(category.id, {"name": "Work", "color": "#000000"})

    assert updated.name == "Work"
    assert updated.color == "#000000"


def test_update_colliding_with_other_entry_fails(db, user):
    store = TaskLevelStore(db, user.id)
    store.create({"name": "One", "level": 1})
    two = store.create({"name": "Two", "level": 2})

    with pytest.raises(DuplicateNameError):
        store.update(two.id, {"name": "One"})
    with pytest.raises(DuplicateRankError):
        store.update(two.id, {"level": 1})


def test_entries_of_other_users_are_not_found(db, user, other_user):
    category = CategoryStore(db, user.id).create({"name": "Work"})
    foreign = CategoryStore(db, other_user.id)

    with pytest.raises(NotFoundError):
        foreign.get(category.id)
    with pytest.raises(NotFoundError):
        foreign.update(category.id, {"name": "Mine"})
    with pytest.raises(NotFoundError):
        foreign.delete(category.id)


# ---------------------------------------------------------------------------
# Deletion rules
# ---------------------------------------------------------------------------


def test_default_status_cannot_be_deleted_even_when_unused(db, seeded_user):
    store = TaskStatusStore(db, seeded_user.id)
    review = store.find_by_name("Review")

    with pytest.raises(ProtectedDefaultError):
        store.delete(review.id)


def test_referenced_status_delete_reports_exact_count(db, user):
    store = TaskStatusStore(db, user.id)
    blocked = store.create({"name": "Blocked", "order": 7})
    for _ in range(3):
        _add_task(db, user.id, status="Blocked")
    _add_task(db, user.id, status="Other")

    with pytest.raises(ReferencedEntryError) as excinfo:
        store.delete(blocked.id)

    assert excinfo.value.count == 3
    assert store.get(blocked.id).name == "Blocked"


def test_unreferenced_custom_status_is_deleted(db, user):
    store = TaskStatusStore(db, user.id)
    status = store.create({"name": "Parked", "order": 9})

    store.delete(status.id)

    with pytest.raises(NotFoundError):
        store.get(status.id)


def test_category_delete_counts_tasks_by_name(db, user):
    store = CategoryStore(db, user.id)
    errands = store.create({"name": "Errands"})
    _add_task(db, user.id, category="Errands")

    with pytest.raises(ReferencedEntryError) as excinfo:
        store.delete(errands.id)
    assert excinfo.value.count == 1


def test_level_delete_counts_tasks_by_rank(db, user):
    store = TaskLevelStore(db, user.id)
    someday = store.create({"name": "Someday", "level": 9})
    _add_task(db, user.id, level=9)
    _add_task(db, user.id, level=9)

    with pytest.raises(ReferencedEntryError) as excinfo:
        store.delete(someday.id)
    assert excinfo.value.count == 2


def test_other_users_tasks_do_not_block_delete(db, user, other_user):
    store = TaskStatusStore(db, user.id)
    status = store.create({"name": "Waiting", "order": 3})
    _add_task(db, other_user.id, status="Waiting")

    store.delete(status.id)


def test_defaults_remain_editable(db, seeded_user):
    store = CategoryStore(db, seeded_user.id)
    work = store.find_by_name("Work")

    updated = store.update(work.id, {"color": "#111111", "description": "Day job"})

    assert updated.is_default
    assert updated.color == "#111111"


# ---------------------------------------------------------------------------
# Listing and reordering
# ---------------------------------------------------------------------------


def test_category_listing_order(db, user):
    store = CategoryStore(db, user.id)
    store.create({"name": "Zeta"})
    store.create({"name": "Alpha"})
    store.create({"name": "Busy"})
    default = store.create({"name": "Home", "is_default": True})
    _add_task(db, user.id, category="Busy")
    guard.refresh_category_counts(db, user.id, ["Busy"])
    db.commit()

    names = [c.name for c in store.list()]

    assert names == [default.name, "Busy", "Alpha", "Zeta"]


def test_status_listing_follows_order(db, user):
    store = TaskStatusStore(db, user.id)
    store.create({"name": "Done", "order": 3})
    store.create({"name": "Doing", "order": 2})
    store.create({"name": "New", "order": 1})

    assert [s.name for s in store.list()] == ["New", "Doing", "Done"]


def test_level_listing_follows_rank(db, user):
    store = TaskLevelStore(db, user.id)
    store.create({"name": "Low", "level": 8})
    store.create({"name": "Top", "level": 1})

    assert [lvl.level for lvl in store.list()] == [1, 8]


def test_reorder_skips_unknown_ids(db, user, other_user):
    store = TaskStatusStore(db, user.id)
    first = store.create({"name": "First", "order": 1})
    second = store.create({"name": "Second", "order": 2})
    foreign = TaskStatusStore(db, other_user.id).create({"name": "Foreign", "order": 1})

    updated = store.reorder(
        [
            {"id": first.id, "order": 5},
            {"id": "does-not-exist", "order": 0},
            {"id": foreign.id, "order": 9},
            {"id": second.id, "order": 4},
        ]
    )

    assert updated == 2
    assert [s.name for s in store.list()] == ["Second", "First"]
    db.expire_all()
    assert TaskStatusStore(db, other_user.id).get(foreign.id).order == 1


# ---------------------------------------------------------------------------
# Renames
# ---------------------------------------------------------------------------


def test_status_rename_cascades_to_tasks(db, user):
    store = TaskStatusStore(db, user.id, cascade_renames=True)
    status = store.create({"name": "Waiting", "order": 2})
    linked = _add_task(db, user.id, status="Waiting", status_id=status.id)
    by_name = _add_task(db, user.id, status="Waiting")

    store.update(status.id, {"name": "Blocked"})

    db.expire_all()
    assert db.get(Task, linked.id).status == "Blocked"
    assert db.get(Task, by_name.id).status == "Blocked"
    assert db.get(Task, by_name.id).status_id == status.id


def test_status_rename_without_cascade_keeps_task_labels(db, user):
    store = TaskStatusStore(db, user.id, cascade_renames=False)
    status = store.create({"name": "Waiting", "order": 2})
    task = _add_task(db, user.id, status="Waiting", status_id=status.id)

    store.update(status.id, {"name": "Blocked"})

    db.expire_all()
    assert db.get(Task, task.id).status == "Waiting"


def test_category_rename_cascades_and_moves_count(db, user):
    store = CategoryStore(db, user.id, cascade_renames=True)
    category = store.create({"name": "Job"})
    task = _add_task(db, user.id, category="Job")

    renamed = store.update(category.id, {"name": "Career"})

    db.expire_all()
    assert db.get(Task, task.id).category == "Career"
    assert renamed.task_count == 1


def test_level_rerank_moves_linked_tasks(db, user):
    store = TaskLevelStore(db, user.id, cascade_renames=True)
    level = store.create({"name": "Soon", "level": 6})
    task = _add_task(db, user.id, level=6, level_id=level.id)

    store.update(level.id, {"level": 7})

    db.expire_all()
    assert db.get(Task, task.id).level == 7


# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------


def test_workflow_sequence_respects_both_orderings(db, user):
    statuses = TaskStatusStore(db, user.id)
    backlog = statuses.create({"name": "Backlog", "order": 0})
    build = statuses.create({"name": "Build", "order": 5})
    test = statuses.create({"name": "Test", "order": 3})

    workflows = WorkflowStore(db, user.id)
    flow = workflows.create(
        {
            "name": "Delivery",
            "statuses": [
                {"status_id": test.id, "order": 2, "is_required": False},
                {"status_id": build.id, "order": 1, "is_required": True},
                {"status_id": backlog.id, "order": 1, "is_required": True},
            ],
        }
    )
    late = statuses.create({"name": "Shipped", "order": 9, "workflow_id": flow.id})
    early = statuses.create({"name": "Icebox", "order": 1, "workflow_id": flow.id})

    steps = workflows.status_sequence(flow.id)

    assert [step["status"].name for step in steps] == [
        "Backlog",
        "Build",
        "Test",
        early.name,
        late.name,
    ]
    assert steps[2]["is_required"] is False
    assert steps[3]["order"] is None


def test_workflow_rejects_foreign_status(db, user, other_user):
    foreign = TaskStatusStore(db, other_user.id).create({"name": "Theirs", "order": 1})

    with pytest.raises(ValidationError):
        WorkflowStore(db, user.id).create(
            {"name": "Mine", "statuses": [{"status_id": foreign.id, "order": 1}]}
        )


def test_status_rejects_unknown_workflow(db, user):
    with pytest.raises(ValidationError):
        TaskStatusStore(db, user.id).create({"name": "Odd", "order": 1, "workflow_id": "nope"})


def test_deleting_workflow_detaches_grouped_statuses(db, user):
    workflow = WorkflowStore(db, user.id).create({"name": "Flow"})
    statuses = TaskStatusStore(db, user.id)
    grouped = statuses.create({"name": "Grouped", "order": 1, "workflow_id": workflow.id})

    WorkflowStore(db, user.id).delete(workflow.id)

    db.expire_all()
    assert statuses.get(grouped.id).workflow_id is None


def test_deleting_status_prunes_it_from_workflows(db, user):
    statuses = TaskStatusStore(db, user.id)
    keep = statuses.create({"name": "Keep", "order": 1})
    drop = statuses.create({"name": "Drop", "order": 2})
    workflows = WorkflowStore(db, user.id)
    flow = workflows.create(
        {
            "name": "Flow",
            "statuses": [
                {"status_id": keep.id, "order": 1, "is_required": True},
                {"status_id": drop.id, "order": 2, "is_required": True},
            ],
        }
    )

    statuses.delete(drop.id)

    db.expire_all()
    assert [item["status_id"] for item in workflows.get(flow.id).statuses] == [keep.id]


def test_workflow_referenced_by_task_cannot_be_deleted(db, user):
    workflow = WorkflowStore(db, user.id).create({"name": "Flow"})
    _add_task(db, user.id, workflow_id=workflow.id)

    with pytest.raises(ReferencedEntryError) as excinfo:
        WorkflowStore(db, user.id).delete(workflow.id)
    assert excinfo.value.count == 1


# ---------------------------------------------------------------------------
# Nulls, races and storage failures
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "store_cls, data, patch",
    [
        (CategoryStore, {"name": "Work"}, {"name": None}),
        (CategoryStore, {"name": "Work"}, {"color": None}),
        (TaskStatusStore, {"name": "Open", "order": 1}, {"order": None}),
        (TaskStatusStore, {"name": "Open", "order": 1}, {"is_completed": None}),
        (TaskLevelStore, {"name": "Top", "level": 1}, {"level": None}),
        (WorkflowStore, {"name": "Flow"}, {"statuses": None}),
    ],
)
def test_null_for_required_field_is_rejected(db, user, store_cls, data, patch):
    store = store_cls(db, user.id)
    entry = store.create(data)

    with pytest.raises(ValidationError):
        store.update(entry.id, patch)

    db.expire_all()
    assert store.get(entry.id).name == data["name"]


def test_null_for_optional_field_is_allowed(db, user):
    store = CategoryStore(db, user.id)
    category = store.create({"name": "Work", "description": "Day job"})

    assert store.update(category.id, {"description": None}).description is None


def _race_unique_check(monkeypatch, store):
    """Let the first uniqueness check pass, as if a concurrent writer slipped in."""
    real_check = store._check_unique
    calls = []

    def check(data, exclude_id=None):
        calls.append(data)
        if len(calls) > 1:
            real_check(data, exclude_id)

    monkeypatch.setattr(store, "_check_unique", check)


def test_lost_name_race_on_create_is_reported_as_duplicate(db, user, monkeypatch):
    store = CategoryStore(db, user.id)
    store.create({"name": "Work"})
    _race_unique_check(monkeypatch, store)

    with pytest.raises(DuplicateNameError):
        store.create({"name": "Work"})

    assert [c.name for c in store.list()] == ["Work"]
    # The session is usable again afterwards.
    assert store.create({"name": "Home"}).name == "Home"


def test_lost_rank_race_on_create_is_reported_as_duplicate(db, user, monkeypatch):
    store = TaskLevelStore(db, user.id)
    store.create({"name": "Top", "level": 1})
    _race_unique_check(monkeypatch, store)

    with pytest.raises(DuplicateRankError):
        store.create({"name": "Also top", "level": 1})


def test_lost_name_race_on_update_is_reported_as_duplicate(db, user, monkeypatch):
    store = TaskStatusStore(db, user.id)
    store.create({"name": "Open", "order": 1})
    other = store.create({"name": "Closed", "order": 2})
    _race_unique_check(monkeypatch, store)

    with pytest.raises(DuplicateNameError):
        store.update(other.id, {"name": "Open"})

    db.expire_all()
    assert store.get(other.id).name == "Closed"


def test_connection_failure_becomes_storage_unavailable(db, user, monkeypatch):
    store = CategoryStore(db, user.id)
    rollbacks = []
    real_rollback = db.rollback

    def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    def tracking_rollback():
        rollbacks.append(True)
        real_rollback()

    monkeypatch.setattr(db, "commit", broken_commit)
    monkeypatch.setattr(db, "rollback", tracking_rollback)

    with pytest.raises(StorageUnavailableError):
        store.create({"name": "Work"})

    assert rollbacks
    monkeypatch.undo()
    assert store.list() == []
