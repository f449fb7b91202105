# src/taskboard/tasks/task_store.py

from __future__ import annotations

import logging
import uuid
from collections import defaultdict, deque
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import date, datetime
from typing import Any

from ..auth.identity import LocalIdentityProvider
from ..core.ports import IdentityProvider, StateRecord, StateStorage
from .task_models import Tag, Task, TaskPriority, TaskStatus, UserSession, utcnow

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "task-manager-storage"
STATE_VERSION = 0

# Marks "argument not supplied" for partial updates (None is a real value there).
_UNSET: Any = object()


def _record_list(state: dict[str, Any], key: str) -> list[Any]:
    raw = state.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning("Ignoring malformed %s collection: %r", key, raw)
        return []
    return raw


class TaskStore:
    """
    In-process task/tag store with whole-state persistence.

    Tasks are kept in one flat list; the hierarchy is expressed by parent_id
    and sibling position by `order` (0..n-1 per parent_id group).

    Contract:
    - mutating calls never raise; failures land in `error`
    - validation failures leave state untouched and set `error`
    - unknown ids are silent no-ops
    - the whole state is saved after every successful mutation
    """

    def __init__(
        self,
        storage: StateStorage | None = None,
        *,
        storage_key: str = DEFAULT_STORAGE_KEY,
        identity: IdentityProvider | None = None,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._storage = storage
        self._storage_key = storage_key
        self._identity: IdentityProvider = identity or LocalIdentityProvider()
        self._clock = clock or utcnow
        self._new_id = id_factory or (lambda: uuid.uuid4().hex)

        self._tasks: list[Task] = []
        self._tags: list[Tag] = []
        self._current_user: UserSession | None = None
        self._is_loading = False
        self._error: str | None = None

    # ---- read access ----

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    @property
    def tags(self) -> tuple[Tag, ...]:
        return tuple(self._tags)

    @property
    def current_user(self) -> UserSession | None:
        return self._current_user

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> str | None:
        return self._error

    def clear_error(self) -> None:
        self._error = None

    # ---- persistence ----

    def snapshot(self) -> StateRecord:
        return {
            "state": {
                "tasks": [t.to_dict() for t in self._tasks],
                "tags": [t.to_dict() for t in self._tags],
                "currentUser": self._current_user.to_dict() if self._current_user else None,
            },
            "version": STATE_VERSION,
        }

    def _persist(self) -> None:
        if self._storage is None:
            return
        try:
            self._storage.save(self._storage_key, self.snapshot())
        except Exception:
            # No retry: memory and disk diverge until the next successful save.
            logger.exception("Failed to persist state key=%s", self._storage_key)

    def hydrate(self) -> None:
        """Replace the in-memory state with the persisted record (if any)."""
        self._tasks, self._tags, self._current_user = [], [], None
        self._is_loading = False
        if self._storage is None:
            return

        try:
            record = self._storage.load(self._storage_key)
        except Exception:
            logger.exception("Failed to load state key=%s", self._storage_key)
            record = None

        if not record:
            logger.info("TaskStore: no persisted state under key=%s", self._storage_key)
            return

        if not isinstance(record, dict):
            logger.warning("Ignoring malformed state record key=%s", self._storage_key)
            return
        state = record.get("state") if isinstance(record.get("state"), dict) else record

        tags: list[Tag] = []
        seen_tags: set[str] = set()
        for raw in _record_list(state, "tags"):
            try:
                tag = Tag.from_dict(raw)
            except (AttributeError, TypeError, ValueError):
                logger.warning("Skipping malformed tag record: %r", raw)
                continue
            if tag.id not in seen_tags:
                seen_tags.add(tag.id)
                tags.append(tag)

        tasks: list[Task] = []
        seen_tasks: set[str] = set()
        for raw in _record_list(state, "tasks"):
            try:
                task = Task.from_dict(raw)
            except (AttributeError, TypeError, ValueError):
                logger.warning("Skipping malformed task record: %r", raw)
                continue
            if task.id not in seen_tasks:
                seen_tasks.add(task.id)
                tasks.append(task)

        user: UserSession | None = None
        raw_user = state.get("currentUser")
        if raw_user:
            try:
                user = UserSession.from_dict(raw_user)
            except (AttributeError, TypeError, ValueError):
                logger.warning("Skipping malformed session record.")

        self._tags = tags
        self._tasks = self._repair(tasks, {t.id for t in tags})
        self._current_user = user
        logger.info(
            "TaskStore hydrated tasks=%d tags=%d user=%s",
            len(self._tasks),
            len(self._tags),
            user.id if user else None,
        )

    @staticmethod
    def _repair(tasks: list[Task], tag_ids: set[str]) -> list[Task]:
        """Restore the invariants on externally loaded data."""
        by_id = {t.id: t for t in tasks}
        parents: dict[str, str | None] = {}
        for t in tasks:
            parent = t.parent_id
            if parent is not None and (parent not in by_id or parent == t.id):
                logger.warning("Task %s has missing parent %s; moving to root.", t.id, parent)
                parent = None
            parents[t.id] = parent

        for t in tasks:
            seen = {t.id}
            current = parents[t.id]
            while current is not None:
                if current in seen:
                    logger.warning("Task %s is part of a parent cycle; moving to root.", t.id)
                    parents[t.id] = None
                    break
                seen.add(current)
                current = parents.get(current)

        repaired: list[Task] = []
        for t in tasks:
            kept_tags = [tid for tid in t.tag_ids if tid in tag_ids]
            if kept_tags != t.tag_ids or parents[t.id] != t.parent_id:
                t = replace(t, tag_ids=kept_tags, parent_id=parents[t.id])
            repaired.append(t)

        for parent_id in {t.parent_id for t in repaired}:
            repaired = TaskStore._resequence(repaired, parent_id)
        return repaired

    # ---- low-level helpers ----

    def _begin(self) -> None:
        self._is_loading = True
        self._error = None

    def _reject(self, message: str) -> None:
        logger.info("TaskStore rejected operation: %s", message)
        self._error = message

    def _commit(
        self,
        *,
        tasks: list[Task] | None = None,
        tags: list[Tag] | None = None,
        current_user: Any = _UNSET,
    ) -> None:
        if tasks is not None:
            self._tasks = tasks
        if tags is not None:
            self._tags = tags
        if current_user is not _UNSET:
            self._current_user = current_user
        self._persist()

    def _known_tag_ids(self, tag_ids: Iterable[str]) -> list[str]:
        existing = {t.id for t in self._tags}
        wanted = list(dict.fromkeys(tag_ids))
        kept = [tid for tid in wanted if tid in existing]
        if len(kept) != len(wanted):
            logger.warning("Dropping unknown tag ids: %s", sorted(set(wanted) - existing))
        return kept

    @staticmethod
    def _resequence(tasks: list[Task], parent_id: str | None) -> list[Task]:
        """Renumber one sibling group to 0..n-1, keeping its relative order."""
        group = sorted((t for t in tasks if t.parent_id == parent_id), key=lambda t: t.order)
        new_order = {t.id: i for i, t in enumerate(group)}
        return [
            replace(t, order=new_order[t.id])
            if t.id in new_order and t.order != new_order[t.id]
            else t
            for t in tasks
        ]

    def _would_cycle(self, task_id: str, new_parent_id: str) -> bool:
        by_id = {t.id: t for t in self._tasks}
        seen: set[str] = set()
        current: str | None = new_parent_id
        while current is not None and current not in seen:
            if current == task_id:
                return True
            seen.add(current)
            parent = by_id.get(current)
            current = parent.parent_id if parent else None
        return False

    # ---- task operations ----

    async def add_task(
        self,
        title: str,
        *,
        description: str | None = None,
        status: TaskStatus | str | None = None,
        priority: TaskPriority | str | None = None,
        tag_ids: Iterable[str] | None = None,
        parent_id: str | None = None,
        due_date: date | None = None,
    ) -> Task | None:
        self._begin()
        try:
            title = (title or "").strip()
            if not title:
                self._reject("Task title is required.")
                return None
            if parent_id is not None and self.get_task_by_id(parent_id) is None:
                self._reject(f"Parent task not found: {parent_id}")
                return None
            try:
                new_status = TaskStatus(status) if status else TaskStatus.TODO
                new_priority = TaskPriority(priority) if priority else TaskPriority.MEDIUM
            except ValueError as e:
                self._reject(str(e))
                return None

            now = self._clock()
            task = Task(
                id=self._new_id(),
                title=title,
                description=description or None,
                user_id=self._current_user.id if self._current_user else "",
                status=new_status,
                priority=new_priority,
                tag_ids=self._known_tag_ids(tag_ids or []),
                parent_id=parent_id,
                order=len(self.get_tasks_by_parent_id(parent_id)),
                due_date=due_date,
                created_at=now,
                updated_at=now,
                completed_at=now if new_status is TaskStatus.COMPLETED else None,
            )
            self._commit(tasks=[*self._tasks, task])
            logger.debug(
                "Task added id=%s parent=%s order=%s status=%s",
                task.id,
                parent_id,
                task.order,
                task.status.value,
            )
            return task
        except Exception:
            logger.exception("add_task failed title=%r", title)
            self._error = "Failed to add task"
            return None
        finally:
            self._is_loading = False

    async def update_task(
        self,
        task_id: str,
        *,
        title: Any = _UNSET,
        description: Any = _UNSET,
        status: Any = _UNSET,
        priority: Any = _UNSET,
        tag_ids: Any = _UNSET,
        due_date: Any = _UNSET,
    ) -> Task | None:
        """
        Merge the supplied fields into a task and refresh updated_at.

        parent_id/order are not editable here; use move_task for hierarchy changes.
        """
        self._begin()
        try:
            current = self.get_task_by_id(task_id)
            if current is None:
                logger.debug("update_task: no task id=%s", task_id)
                return None

            now = self._clock()
            changes: dict[str, Any] = {}

            if title is not _UNSET:
                title = (title or "").strip()
                if not title:
                    self._reject("Task title is required.")
                    return None
                changes["title"] = title

            if description is not _UNSET:
                changes["description"] = description or None

            if status is not _UNSET:
                try:
                    new_status = TaskStatus(status)
                except ValueError as e:
                    self._reject(str(e))
                    return None
                changes["status"] = new_status
                if new_status is TaskStatus.COMPLETED:
                    if current.status is not TaskStatus.COMPLETED:
                        changes["completed_at"] = now
                else:
                    changes["completed_at"] = None

            if priority is not _UNSET:
                try:
                    changes["priority"] = TaskPriority(priority)
                except ValueError as e:
                    self._reject(str(e))
                    return None

            if tag_ids is not _UNSET:
                changes["tag_ids"] = self._known_tag_ids(tag_ids or [])

            if due_date is not _UNSET:
                changes["due_date"] = due_date

            updated = replace(current, **changes, updated_at=now)
            self._commit(tasks=[updated if t.id == task_id else t for t in self._tasks])
            logger.debug("Task updated id=%s fields=%s", task_id, sorted(changes))
            return updated
        except Exception:
            logger.exception("update_task failed id=%s", task_id)
            self._error = "Failed to update task"
            return None
        finally:
            self._is_loading = False

    async def delete_task(self, task_id: str) -> list[str]:
        """Delete a task and all of its descendants. Returns the removed ids."""
        self._begin()
        try:
            target = self.get_task_by_id(task_id)
            if target is None:
                logger.debug("delete_task: no task id=%s", task_id)
                return []

            doomed = {task_id, *self.get_descendant_ids(task_id)}
            removed = [t.id for t in self._tasks if t.id in doomed]
            remaining = [t for t in self._tasks if t.id not in doomed]
            remaining = self._resequence(remaining, target.parent_id)

            self._commit(tasks=remaining)
            logger.debug("Task deleted id=%s removed=%d", task_id, len(removed))
            return removed
        except Exception:
            logger.exception("delete_task failed id=%s", task_id)
            self._error = "Failed to delete task"
            return []
        finally:
            self._is_loading = False

    def move_task(self, task_id: str, new_parent_id: str | None, new_index: int) -> bool:
        """
        Move a task under `new_parent_id` (None = root) at sibling position `new_index`.

        Both the source and the destination sibling groups end up numbered 0..n-1.
        Rejected (returns False, state unchanged) when the target parent is unknown
        or is the task itself / one of its descendants.
        """
        try:
            task = self.get_task_by_id(task_id)
            if task is None:
                return False

            if new_parent_id is not None:
                if self.get_task_by_id(new_parent_id) is None:
                    logger.info("move_task rejected: parent %s not found", new_parent_id)
                    return False
                if self._would_cycle(task_id, new_parent_id):
                    logger.info("move_task rejected: %s under %s would form a cycle", task_id, new_parent_id)
                    return False

            old_group = [t for t in self.get_tasks_by_parent_id(task.parent_id) if t.id != task_id]
            same_group = new_parent_id == task.parent_id
            dest_group = old_group if same_group else self.get_tasks_by_parent_id(new_parent_id)

            index = max(0, min(int(new_index), len(dest_group)))

            new_orders: dict[str, int] = {}
            if not same_group:
                for i, t in enumerate(old_group):
                    new_orders[t.id] = i
            dest_ids = [t.id for t in dest_group]
            dest_ids.insert(index, task_id)
            for i, tid in enumerate(dest_ids):
                new_orders[tid] = i

            moved = replace(task, parent_id=new_parent_id, order=index, updated_at=self._clock())
            tasks: list[Task] = []
            for t in self._tasks:
                if t.id == task_id:
                    tasks.append(moved)
                elif t.id in new_orders and t.order != new_orders[t.id]:
                    tasks.append(replace(t, order=new_orders[t.id]))
                else:
                    tasks.append(t)

            self._commit(tasks=tasks)
            logger.debug("Task moved id=%s parent=%s index=%s", task_id, new_parent_id, index)
            return True
        except Exception:
            logger.exception("move_task failed id=%s", task_id)
            self._error = "Failed to move task"
            return False

    def toggle_task_status(self, task_id: str) -> Task | None:
        """completed -> todo, anything else -> completed."""
        try:
            task = self.get_task_by_id(task_id)
            if task is None:
                return None

            now = self._clock()
            if task.status is TaskStatus.COMPLETED:
                updated = replace(task, status=TaskStatus.TODO, completed_at=None, updated_at=now)
            else:
                updated = replace(task, status=TaskStatus.COMPLETED, completed_at=now, updated_at=now)

            self._commit(tasks=[updated if t.id == task_id else t for t in self._tasks])
            logger.debug("Task toggled id=%s status=%s", task_id, updated.status.value)
            return updated
        except Exception:
            logger.exception("toggle_task_status failed id=%s", task_id)
            self._error = "Failed to update task"
            return None

    # ---- tag operations ----

    async def add_tag(self, name: str, *, color: str | None = None) -> Tag | None:
        self._begin()
        try:
            name = (name or "").strip()
            if not name:
                self._reject("Tag name is required.")
                return None

            now = self._clock()
            tag = Tag(
                id=self._new_id(),
                name=name,
                color=color or None,
                user_id=self._current_user.id if self._current_user else "",
                created_at=now,
                updated_at=now,
            )
            self._commit(tags=[*self._tags, tag])
            logger.debug("Tag added id=%s name=%s", tag.id, name)
            return tag
        except Exception:
            logger.exception("add_tag failed name=%r", name)
            self._error = "Failed to add tag"
            return None
        finally:
            self._is_loading = False

    async def update_tag(self, tag_id: str, *, name: Any = _UNSET, color: Any = _UNSET) -> Tag | None:
        self._begin()
        try:
            current = self.get_tag_by_id(tag_id)
            if current is None:
                return None

            changes: dict[str, Any] = {}
            if name is not _UNSET:
                name = (name or "").strip()
                if not name:
                    self._reject("Tag name is required.")
                    return None
                changes["name"] = name
            if color is not _UNSET:
                changes["color"] = color or None

            updated = replace(current, **changes, updated_at=self._clock())
            self._commit(tags=[updated if t.id == tag_id else t for t in self._tags])
            return updated
        except Exception:
            logger.exception("update_tag failed id=%s", tag_id)
            self._error = "Failed to update tag"
            return None
        finally:
            self._is_loading = False

    async def delete_tag(self, tag_id: str) -> bool:
        """Delete a tag and strip it from every task that references it."""
        self._begin()
        try:
            if self.get_tag_by_id(tag_id) is None:
                return False

            tasks = [
                replace(t, tag_ids=[tid for tid in t.tag_ids if tid != tag_id])
                if tag_id in t.tag_ids
                else t
                for t in self._tasks
            ]
            tags = [t for t in self._tags if t.id != tag_id]
            self._commit(tasks=tasks, tags=tags)
            logger.debug("Tag deleted id=%s", tag_id)
            return True
        except Exception:
            logger.exception("delete_tag failed id=%s", tag_id)
            self._error = "Failed to delete tag"
            return False
        finally:
            self._is_loading = False

    # ---- session operations ----

    async def login(self, email: str, password: str) -> bool:
        self._begin()
        try:
            result = await self._identity.authenticate(email, password)
            if not result.ok or result.user is None:
                self._reject(result.error or "Login failed")
                return False
            self._commit(current_user=result.user)
            logger.info("User logged in id=%s", result.user.id)
            return True
        except Exception:
            logger.exception("login failed email=%s", email)
            self._error = "Login failed"
            return False
        finally:
            self._is_loading = False

    async def register(self, username: str, email: str, password: str) -> bool:
        self._begin()
        try:
            result = await self._identity.register(username, email, password)
            if not result.ok or result.user is None:
                self._reject(result.error or "Registration failed")
                return False
            self._commit(current_user=result.user)
            logger.info("User registered id=%s", result.user.id)
            return True
        except Exception:
            logger.exception("register failed email=%s", email)
            self._error = "Registration failed"
            return False
        finally:
            self._is_loading = False

    def logout(self) -> None:
        if self._current_user is not None:
            logger.info("User logged out id=%s", self._current_user.id)
        self._commit(current_user=None)

    # ---- queries ----

    def get_task_by_id(self, task_id: str) -> Task | None:
        for t in self._tasks:
            if t.id == task_id:
                return t
        return None

    def get_tag_by_id(self, tag_id: str) -> Tag | None:
        for t in self._tags:
            if t.id == tag_id:
                return t
        return None

    def get_tasks_by_parent_id(self, parent_id: str | None = None) -> list[Task]:
        return sorted((t for t in self._tasks if t.parent_id == parent_id), key=lambda t: t.order)

    def get_tasks_by_status(self, status: TaskStatus | str) -> list[Task]:
        return [t for t in self._tasks if t.status == status]

    def get_tasks_by_tag(self, tag_id: str) -> list[Task]:
        return [t for t in self._tasks if tag_id in t.tag_ids]

    def get_tags_for_task(self, task_id: str) -> list[Tag]:
        task = self.get_task_by_id(task_id)
        if task is None or not task.tag_ids:
            return []
        wanted = set(task.tag_ids)
        return [t for t in self._tags if t.id in wanted]

    def get_descendant_ids(self, task_id: str) -> list[str]:
        """Transitive children of `task_id` (breadth-first, task itself excluded)."""
        children: dict[str | None, list[str]] = defaultdict(list)
        for t in self._tasks:
            children[t.parent_id].append(t.id)

        out: list[str] = []
        seen = {task_id}
        queue = deque(children.get(task_id, []))
        while queue:
            child_id = queue.popleft()
            if child_id in seen:
                continue
            seen.add(child_id)
            out.append(child_id)
            queue.extend(children.get(child_id, []))
        return out
