# tests/test_task_store.py

from __future__ import annotations

from datetime import date

import pytest

from taskboard.tasks.task_models import TaskPriority, TaskStatus
from taskboard.tasks.task_store import TaskStore

from .fakes import FailingStorage, FakeClock


@pytest.mark.asyncio
async def test_add_task_appends_root_tasks_in_order(store: TaskStore) -> None:
    a = await store.add_task("A")
    b = await store.add_task("B")
    assert a is not None and b is not None

    roots = store.get_tasks_by_parent_id(None)
    assert [t.title for t in roots] == ["A", "B"]
    assert [t.order for t in roots] == [0, 1]
    assert all(t.parent_id is None for t in roots)


@pytest.mark.asyncio
async def test_add_task_defaults(store: TaskStore) -> None:
    task = await store.add_task("  Write report  ")
    assert task is not None
    assert task.title == "Write report"
    assert task.status is TaskStatus.TODO
    assert task.priority is TaskPriority.MEDIUM
    assert task.user_id == ""
    assert task.tag_ids == []
    assert task.created_at == task.updated_at
    assert task.completed_at is None
    assert store.is_loading is False
    assert store.error is None


@pytest.mark.asyncio
async def test_add_subtasks_get_their_own_sequence(store: TaskStore) -> None:
    parent = await store.add_task("Parent")
    await store.add_task("Other root")
    assert parent is not None

    for title in ("c1", "c2", "c3"):
        await store.add_task(title, parent_id=parent.id)

    children = store.get_tasks_by_parent_id(parent.id)
    assert [t.title for t in children] == ["c1", "c2", "c3"]
    assert [t.order for t in children] == [0, 1, 2]
    assert [t.order for t in store.get_tasks_by_parent_id(None)] == [0, 1]


@pytest.mark.asyncio
async def test_add_task_with_empty_title_is_rejected(store: TaskStore) -> None:
    assert await store.add_task("   ") is None
    assert store.tasks == ()
    assert store.error == "Task title is required."
    assert store.is_loading is False


@pytest.mark.asyncio
async def test_add_task_with_unknown_parent_is_rejected(store: TaskStore) -> None:
    assert await store.add_task("Orphan", parent_id="nope") is None
    assert store.tasks == ()
    assert store.error is not None


@pytest.mark.asyncio
async def test_add_task_drops_unknown_tags(store: TaskStore) -> None:
    tag = await store.add_tag("work")
    assert tag is not None
    task = await store.add_task("Tagged", tag_ids=[tag.id, "ghost", tag.id])
    assert task is not None
    assert task.tag_ids == [tag.id]


@pytest.mark.asyncio
async def test_add_completed_task_stamps_completed_at(store: TaskStore) -> None:
    task = await store.add_task("Already done", status="completed", priority="high", due_date=date(2026, 2, 1))
    assert task is not None
    assert task.status is TaskStatus.COMPLETED
    assert task.completed_at == task.created_at
    assert task.priority is TaskPriority.HIGH
    assert task.due_date == date(2026, 2, 1)


@pytest.mark.asyncio
async def test_update_task_merges_supplied_fields(store: TaskStore) -> None:
    task = await store.add_task("Draft", description="keep me")
    assert task is not None

    updated = await store.update_task(task.id, title="Final", priority=TaskPriority.URGENT)
    assert updated is not None
    assert updated.title == "Final"
    assert updated.priority is TaskPriority.URGENT
    assert updated.description == "keep me"
    assert updated.updated_at > task.updated_at
    assert updated.order == task.order
    assert store.get_task_by_id(task.id) == updated


@pytest.mark.asyncio
async def test_update_task_can_clear_optional_fields(store: TaskStore) -> None:
    task = await store.add_task("Draft", description="old", due_date=date(2026, 3, 3))
    assert task is not None
    updated = await store.update_task(task.id, description=None, due_date=None)
    assert updated is not None
    assert updated.description is None
    assert updated.due_date is None


@pytest.mark.asyncio
async def test_update_task_missing_id_is_silent_noop(store: TaskStore) -> None:
    await store.add_task("A")
    before = store.tasks
    assert await store.update_task("missing", title="x") is None
    assert store.tasks == before
    assert store.error is None


@pytest.mark.asyncio
async def test_update_task_status_keeps_completed_at_consistent(store: TaskStore) -> None:
    task = await store.add_task("A")
    assert task is not None

    done = await store.update_task(task.id, status="completed")
    assert done is not None and done.completed_at is not None

    again = await store.update_task(task.id, status=TaskStatus.COMPLETED)
    assert again is not None and again.completed_at == done.completed_at

    back = await store.update_task(task.id, status=TaskStatus.IN_PROGRESS)
    assert back is not None
    assert back.status is TaskStatus.IN_PROGRESS
    assert back.completed_at is None


@pytest.mark.asyncio
async def test_update_task_validation_failures(store: TaskStore) -> None:
    task = await store.add_task("A")
    assert task is not None

    assert await store.update_task(task.id, title="") is None
    assert store.error == "Task title is required."

    assert await store.update_task(task.id, status="archived") is None
    assert store.error is not None

    assert store.get_task_by_id(task.id) == task


@pytest.mark.asyncio
async def test_delete_task_cascades_to_descendants(store: TaskStore) -> None:
    x = await store.add_task("X")
    assert x is not None
    y = await store.add_task("Y", parent_id=x.id)
    assert y is not None
    z = await store.add_task("Z", parent_id=y.id)
    w = await store.add_task("W")
    assert z is not None and w is not None

    removed = await store.delete_task(x.id)

    assert set(removed) == {x.id, y.id, z.id}
    assert [t.id for t in store.tasks] == [w.id]
    assert store.get_task_by_id(w.id).order == 0  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_delete_task_keeps_sibling_orders_contiguous(store: TaskStore) -> None:
    a = await store.add_task("A")
    b = await store.add_task("B")
    c = await store.add_task("C")
    assert a and b and c

    await store.delete_task(b.id)

    roots = store.get_tasks_by_parent_id(None)
    assert [(t.title, t.order) for t in roots] == [("A", 0), ("C", 1)]


@pytest.mark.asyncio
async def test_delete_task_missing_id_deletes_nothing(store: TaskStore) -> None:
    await store.add_task("A")
    assert await store.delete_task("missing") == []
    assert len(store.tasks) == 1


@pytest.mark.asyncio
async def test_toggle_twice_restores_status_and_completed_at(store: TaskStore) -> None:
    task = await store.add_task("A")
    assert task is not None

    first = store.toggle_task_status(task.id)
    assert first is not None
    assert first.status is TaskStatus.COMPLETED
    assert first.completed_at is not None

    second = store.toggle_task_status(task.id)
    assert second is not None
    assert second.status == task.status
    assert second.completed_at == task.completed_at
    assert task.updated_at < first.updated_at < second.updated_at


@pytest.mark.asyncio
async def test_toggle_from_in_progress_completes(store: TaskStore) -> None:
    task = await store.add_task("A", status=TaskStatus.IN_PROGRESS)
    assert task is not None
    toggled = store.toggle_task_status(task.id)
    assert toggled is not None and toggled.status is TaskStatus.COMPLETED


def test_toggle_missing_id_is_noop(store: TaskStore) -> None:
    assert store.toggle_task_status("missing") is None
    assert store.error is None


@pytest.mark.asyncio
async def test_internal_failure_sets_error_and_keeps_state(storage, clock) -> None:
    def broken_ids() -> str:
        raise RuntimeError("id generator exploded")

    store = TaskStore(storage, clock=clock, id_factory=broken_ids)

    assert await store.add_task("A") is None
    assert store.error == "Failed to add task"
    assert store.is_loading is False
    assert store.tasks == ()


@pytest.mark.asyncio
async def test_next_operation_clears_previous_error(store: TaskStore) -> None:
    await store.add_task("")
    assert store.error is not None
    await store.add_task("ok")
    assert store.error is None


@pytest.mark.asyncio
async def test_failed_save_keeps_memory_state() -> None:
    storage = FailingStorage()
    store = TaskStore(storage, clock=FakeClock())

    task = await store.add_task("Survives")

    assert task is not None
    assert store.get_task_by_id(task.id) is not None
    assert storage.attempts == 1
    assert store.error is None


@pytest.mark.asyncio
async def test_every_mutation_is_persisted(store: TaskStore, storage) -> None:
    task = await store.add_task("A")
    assert task is not None
    saved = storage.records["task-manager-storage"]
    assert [t["title"] for t in saved["state"]["tasks"]] == ["A"]

    store.toggle_task_status(task.id)
    saved = storage.records["task-manager-storage"]
    assert saved["state"]["tasks"][0]["status"] == "completed"
    assert saved["state"]["tasks"][0]["completedAt"] is not None


@pytest.mark.asyncio
async def test_queries(store: TaskStore) -> None:
    a = await store.add_task("A")
    b = await store.add_task("B", status=TaskStatus.IN_PROGRESS)
    assert a and b
    c = await store.add_task("C", parent_id=a.id)
    assert c

    assert store.get_task_by_id(b.id) == b
    assert store.get_task_by_id("missing") is None
    assert [t.id for t in store.get_tasks_by_status(TaskStatus.TODO)] == [a.id, c.id]
    assert [t.id for t in store.get_tasks_by_status("in_progress")] == [b.id]
    assert store.get_tasks_by_parent_id(a.id) == [c]
    assert store.get_descendant_ids(a.id) == [c.id]
    assert store.get_descendant_ids(c.id) == []


@pytest.mark.asyncio
async def test_rejected_add_returns_none_and_keeps_state(store: TaskStore) -> None:
    assert await store.add_task("Orphan", parent_id="nope") is None
    assert store.error == "Parent task not found: nope"

    assert await store.add_task("Odd", priority="someday") is None
    assert store.error is not None and "someday" in store.error

    assert store.tasks == ()
    assert store.is_loading is False
