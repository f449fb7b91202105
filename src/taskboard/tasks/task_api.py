# src/taskboard/tasks/task_api.py

"""
Read-only views built on top of TaskStore queries.

The store keeps a flat list; these helpers assemble what the board and the
tree view render, recomputed on every call.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from .task_models import Tag, Task, TaskStatus
from .task_store import TaskStore

BOARD_COLUMNS: tuple[TaskStatus, ...] = (
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.COMPLETED,
)


@dataclass(slots=True, frozen=True)
class TaskTreeNode:
    task: Task
    depth: int
    has_children: bool


def board_columns(store: TaskStore) -> dict[TaskStatus, list[Task]]:
    """Kanban columns in display order. Cancelled tasks are not shown on the board."""
    return {status: store.get_tasks_by_status(status) for status in BOARD_COLUMNS}


def iter_task_tree(store: TaskStore, parent_id: str | None = None) -> Iterator[TaskTreeNode]:
    """Depth-first walk of the hierarchy below `parent_id`, siblings in `order`."""
    stack: list[tuple[Task, int]] = [(t, 0) for t in reversed(store.get_tasks_by_parent_id(parent_id))]
    while stack:
        task, depth = stack.pop()
        children = store.get_tasks_by_parent_id(task.id)
        yield TaskTreeNode(task=task, depth=depth, has_children=bool(children))
        stack.extend((c, depth + 1) for c in reversed(children))


def task_with_tags(store: TaskStore, task_id: str) -> tuple[Task, list[Tag]] | None:
    task = store.get_task_by_id(task_id)
    if task is None:
        return None
    return task, store.get_tags_for_task(task_id)
