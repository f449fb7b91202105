# tests/test_move_task.py

from __future__ import annotations

import random
from collections import defaultdict

import pytest

from taskboard.tasks.task_models import Task
from taskboard.tasks.task_store import TaskStore


def _titles_and_orders(store: TaskStore, parent_id: str | None) -> list[tuple[str, int]]:
    return [(t.title, t.order) for t in store.get_tasks_by_parent_id(parent_id)]


def _assert_invariants(tasks: tuple[Task, ...]) -> None:
    groups: dict[str | None, list[int]] = defaultdict(list)
    for t in tasks:
        groups[t.parent_id].append(t.order)
    for parent_id, orders in groups.items():
        assert sorted(orders) == list(range(len(orders))), f"group {parent_id} not contiguous: {orders}"

    by_id = {t.id: t for t in tasks}
    for t in tasks:
        seen = {t.id}
        current = t.parent_id
        while current is not None:
            assert current not in seen, f"cycle through {t.id}"
            seen.add(current)
            current = by_id[current].parent_id


async def _roots(store: TaskStore, *titles: str) -> list[Task]:
    out = []
    for title in titles:
        task = await store.add_task(title)
        assert task is not None
        out.append(task)
    return out


@pytest.mark.asyncio
async def test_move_last_root_to_front(store: TaskStore) -> None:
    a, b, c = await _roots(store, "A", "B", "C")

    assert store.move_task(c.id, None, 0) is True

    assert _titles_and_orders(store, None) == [("C", 0), ("A", 1), ("B", 2)]


@pytest.mark.asyncio
async def test_move_first_root_to_end(store: TaskStore) -> None:
    a, b, c = await _roots(store, "A", "B", "C")

    assert store.move_task(a.id, None, 2)

    assert _titles_and_orders(store, None) == [("B", 0), ("C", 1), ("A", 2)]


@pytest.mark.asyncio
async def test_move_between_parents_renumbers_both_groups(store: TaskStore) -> None:
    a, b = await _roots(store, "A", "B")
    a1 = await store.add_task("a1", parent_id=a.id)
    a2 = await store.add_task("a2", parent_id=a.id)
    a3 = await store.add_task("a3", parent_id=a.id)
    b1 = await store.add_task("b1", parent_id=b.id)
    b2 = await store.add_task("b2", parent_id=b.id)
    assert a1 and a2 and a3 and b1 and b2

    assert store.move_task(a2.id, b.id, 1)

    assert _titles_and_orders(store, a.id) == [("a1", 0), ("a3", 1)]
    assert _titles_and_orders(store, b.id) == [("b1", 0), ("a2", 1), ("b2", 2)]
    assert _titles_and_orders(store, None) == [("A", 0), ("B", 1)]
    _assert_invariants(store.tasks)


@pytest.mark.asyncio
async def test_move_subtask_to_root(store: TaskStore) -> None:
    (a,) = await _roots(store, "A")
    child = await store.add_task("child", parent_id=a.id)
    assert child

    assert store.move_task(child.id, None, 0)

    assert _titles_and_orders(store, None) == [("child", 0), ("A", 1)]
    assert store.get_tasks_by_parent_id(a.id) == []


@pytest.mark.asyncio
async def test_move_clamps_index(store: TaskStore) -> None:
    a, b, c = await _roots(store, "A", "B", "C")

    assert store.move_task(a.id, None, 99)
    assert _titles_and_orders(store, None) == [("B", 0), ("C", 1), ("A", 2)]

    assert store.move_task(a.id, None, -5)
    assert _titles_and_orders(store, None) == [("A", 0), ("B", 1), ("C", 2)]


@pytest.mark.asyncio
async def test_move_refreshes_only_moved_task_timestamp(store: TaskStore) -> None:
    a, b, c = await _roots(store, "A", "B", "C")

    store.move_task(c.id, None, 0)

    assert store.get_task_by_id(c.id).updated_at > c.updated_at  # type: ignore[union-attr]
    assert store.get_task_by_id(a.id).updated_at == a.updated_at  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_move_leaves_unrelated_groups_untouched(store: TaskStore) -> None:
    a, b, c = await _roots(store, "A", "B", "C")
    c1 = await store.add_task("c1", parent_id=c.id)
    c2 = await store.add_task("c2", parent_id=c.id)
    assert c1 and c2

    store.move_task(b.id, None, 0)

    assert store.get_task_by_id(c1.id) is c1
    assert store.get_task_by_id(c2.id) is c2


@pytest.mark.asyncio
async def test_move_under_own_descendant_is_rejected(store: TaskStore) -> None:
    (x,) = await _roots(store, "X")
    y = await store.add_task("Y", parent_id=x.id)
    assert y
    z = await store.add_task("Z", parent_id=y.id)
    assert z
    before = store.tasks

    assert store.move_task(x.id, z.id, 0) is False
    assert store.move_task(x.id, x.id, 0) is False
    assert store.move_task(y.id, z.id, 0) is False

    assert store.tasks == before


@pytest.mark.asyncio
async def test_move_rejects_unknown_ids(store: TaskStore) -> None:
    (a,) = await _roots(store, "A")
    before = store.tasks

    assert store.move_task("missing", None, 0) is False
    assert store.move_task(a.id, "missing", 0) is False
    assert store.tasks == before
    assert store.error is None


@pytest.mark.asyncio
async def test_random_moves_preserve_invariants(store: TaskStore) -> None:
    rng = random.Random(1234)
    for i in range(6):
        await store.add_task(f"root{i}")
    for i in range(8):
        parent = rng.choice(store.tasks)
        await store.add_task(f"child{i}", parent_id=parent.id)
    _assert_invariants(store.tasks)

    ids = [t.id for t in store.tasks]
    for _ in range(200):
        task_id = rng.choice(ids)
        new_parent = rng.choice([None, *ids])
        store.move_task(task_id, new_parent, rng.randint(-1, 6))
        _assert_invariants(store.tasks)

    assert len(store.tasks) == 14
