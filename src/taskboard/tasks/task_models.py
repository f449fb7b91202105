# src/taskboard/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import StrEnum
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _str_to_dt(raw: Any) -> datetime | None:
    if not raw:
        return None
    if isinstance(raw, datetime):
        return raw
    try:
        value = datetime.fromisoformat(str(raw))
    except ValueError:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _str_to_date(raw: Any) -> date | None:
    if not raw:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw)
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


class TaskStatus(StrEnum):
    """Kanban column a task sits in."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def from_raw(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(raw)
        except ValueError:
            return cls.TODO


class TaskPriority(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def from_raw(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


@dataclass(slots=True)
class Task:
    """
    One node of the task hierarchy.

    The hierarchy is stored flat: a task points at its parent via parent_id
    (None for root tasks) and `order` is its zero-based position among the
    tasks sharing the same parent_id.
    """

    id: str
    title: str
    user_id: str
    status: TaskStatus
    order: int
    created_at: datetime
    updated_at: datetime

    description: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    tag_ids: list[str] = field(default_factory=list)
    parent_id: str | None = None
    due_date: date | None = None
    completed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "userId": self.user_id,
            "status": self.status.value,
            "priority": self.priority.value,
            "tagIds": list(self.tag_ids),
            "parentId": self.parent_id,
            "order": self.order,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "createdAt": _dt_to_str(self.created_at),
            "updatedAt": _dt_to_str(self.updated_at),
            "completedAt": _dt_to_str(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        task_id = str(data.get("id") or "").strip()
        title = str(data.get("title") or "").strip()
        if not task_id or not title:
            raise ValueError("task record needs id and title")

        now = utcnow()
        raw_tags = data.get("tagIds") or []
        tag_ids = [str(t) for t in raw_tags] if isinstance(raw_tags, list) else []
        parent_id = data.get("parentId")

        try:
            order = int(data.get("order") or 0)
        except (TypeError, ValueError):
            order = 0

        return cls(
            id=task_id,
            title=title,
            description=data.get("description"),
            user_id=str(data.get("userId") or ""),
            status=TaskStatus.from_raw(data.get("status")),
            priority=TaskPriority.from_raw(data.get("priority")),
            tag_ids=list(dict.fromkeys(tag_ids)),
            parent_id=str(parent_id) if parent_id else None,
            order=order,
            due_date=_str_to_date(data.get("dueDate")),
            created_at=_str_to_dt(data.get("createdAt")) or now,
            updated_at=_str_to_dt(data.get("updatedAt")) or now,
            completed_at=_str_to_dt(data.get("completedAt")),
        )


@dataclass(slots=True)
class Tag:
    id: str
    name: str
    user_id: str
    created_at: datetime
    updated_at: datetime
    color: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "userId": self.user_id,
            "createdAt": _dt_to_str(self.created_at),
            "updatedAt": _dt_to_str(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Tag:
        tag_id = str(data.get("id") or "").strip()
        name = str(data.get("name") or "").strip()
        if not tag_id or not name:
            raise ValueError("tag record needs id and name")
        now = utcnow()
        return cls(
            id=tag_id,
            name=name,
            color=data.get("color") or None,
            user_id=str(data.get("userId") or ""),
            created_at=_str_to_dt(data.get("createdAt")) or now,
            updated_at=_str_to_dt(data.get("updatedAt")) or now,
        )


@dataclass(slots=True, frozen=True)
class UserSession:
    """Signed-in user as kept by the store. Credentials are never part of it."""

    id: str
    email: str
    username: str
    is_active: bool
    created_at: datetime
    last_login_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "isActive": self.is_active,
            "createdAt": _dt_to_str(self.created_at),
            "lastLoginAt": _dt_to_str(self.last_login_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserSession:
        user_id = str(data.get("id") or "").strip()
        if not user_id:
            raise ValueError("session record needs id")
        return cls(
            id=user_id,
            email=str(data.get("email") or ""),
            username=str(data.get("username") or ""),
            is_active=bool(data.get("isActive", True)),
            created_at=_str_to_dt(data.get("createdAt")) or utcnow(),
            last_login_at=_str_to_dt(data.get("lastLoginAt")),
        )
