# src/taskboard/cli/commands.py

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import TypeVar, cast

from ..core.state import AppState
from ..tasks.task_api import board_columns, iter_task_tree, task_with_tags
from ..tasks.task_models import Tag, Task, TaskPriority, TaskStatus

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

STATUS_LABELS: dict[str, dict[TaskStatus, str]] = {
    "en": {
        TaskStatus.TODO: "To Do",
        TaskStatus.IN_PROGRESS: "In Progress",
        TaskStatus.COMPLETED: "Completed",
        TaskStatus.CANCELLED: "Cancelled",
    },
    "pt": {
        TaskStatus.TODO: "A Fazer",
        TaskStatus.IN_PROGRESS: "Em Andamento",
        TaskStatus.COMPLETED: "Concluído",
        TaskStatus.CANCELLED: "Cancelado",
    },
}

SHORT_ID = 8

_T = TypeVar("_T", Task, Tag)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _short(item_id: str) -> str:
    return item_id[:SHORT_ID]


def _label(state: AppState, status: TaskStatus) -> str:
    labels = STATUS_LABELS.get(state.locale, STATUS_LABELS["en"])
    return labels[status]


def _resolve(items: Sequence[_T], ref: str) -> tuple[_T | None, str | None]:
    """Find an item by full id, unique id prefix, or (tags only) name."""
    ref = ref.strip()
    for item in items:
        if item.id == ref:
            return item, None

    matches = [item for item in items if item.id.startswith(ref)]
    if not matches:
        matches = [item for item in items if isinstance(item, Tag) and item.name.lower() == ref.lower()]
    if len(matches) == 1:
        return matches[0], None
    if not matches:
        return None, f"Nothing matches '{ref}'."
    return None, f"'{ref}' is ambiguous ({len(matches)} matches); type more of the id."


def _store_error(state: AppState, fallback: str) -> str:
    return f"Error: {state.store.error or fallback}"


@dataclass(slots=True)
class _TaskOptions:
    title: str = ""
    priority: TaskPriority | None = None
    tag_ids: list[str] | None = None
    due_date: date | None = None
    clear_due: bool = False
    description: str | None = None


def _parse_task_options(state: AppState, words: list[str]) -> tuple[_TaskOptions, str | None]:
    """
    Split "/add" and "/edit" arguments into title and options:
      !high         priority
      #tag          tag (id prefix or name)
      @2026-01-31   due date (@none clears it on /edit)
      -- text       description (everything after the separator)
    """
    opts = _TaskOptions()
    title_words: list[str] = []

    if "--" in words:
        cut = words.index("--")
        opts.description = " ".join(words[cut + 1 :])
        words = words[:cut]

    for word in words:
        if word.startswith("!") and len(word) > 1:
            try:
                opts.priority = TaskPriority(word[1:].lower())
            except ValueError:
                return opts, f"Unknown priority: {word[1:]}"
        elif word.startswith("#") and len(word) > 1:
            tag, err = _resolve(state.store.tags, word[1:])
            if tag is None:
                return opts, err
            opts.tag_ids = [*(opts.tag_ids or []), tag.id]
        elif word.startswith("@") and len(word) > 1:
            if word[1:].lower() == "none":
                opts.clear_due = True
                continue
            try:
                opts.due_date = date.fromisoformat(word[1:])
            except ValueError:
                return opts, f"Bad due date (use YYYY-MM-DD): {word[1:]}"
        else:
            title_words.append(word)

    opts.title = " ".join(title_words)
    return opts, None


def _format_task_line(state: AppState, task: Task) -> str:
    mark = "x" if task.status is TaskStatus.COMPLETED else " "
    extras = [task.priority.value]
    if task.due_date:
        extras.append(f"due {task.due_date.isoformat()}")
    names = [t.name for t in state.store.get_tags_for_task(task.id)]
    if names:
        extras.append(" ".join(f"#{n}" for n in names))
    return f"[{mark}] {_short(task.id)} {task.title} ({', '.join(extras)})"


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_board(state: AppState, args: list[str]) -> str:
    lines: list[str] = []
    for status, tasks in board_columns(state.store).items():
        lines.append(f"== {_label(state, status)} ({len(tasks)})")
        if not tasks:
            lines.append("   (empty)")
        for task in tasks:
            lines.append(f"   {_format_task_line(state, task)}")
    return "\n".join(lines)


def cmd_tree(state: AppState, args: list[str]) -> str:
    lines = []
    for node in iter_task_tree(state.store):
        suffix = " +" if node.has_children else ""
        lines.append("  " * node.depth + _format_task_line(state, node.task) + suffix)
    return "\n".join(lines) if lines else "No tasks yet. Use /add <title>."


def _add(state: AppState, words: list[str], parent_id: str | None) -> str:
    opts, err = _parse_task_options(state, words)
    if err:
        return err
    task = asyncio.run(
        state.store.add_task(
            opts.title,
            description=opts.description,
            priority=opts.priority,
            tag_ids=opts.tag_ids,
            parent_id=parent_id,
            due_date=opts.due_date,
        )
    )
    if task is None:
        return _store_error(state, "task not added")
    return f"Added {_short(task.id)}: {task.title}"


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title> [!priority] [#tag] [@YYYY-MM-DD] [-- description]
    """
    if not args:
        return "Usage: /add <title> [!priority] [#tag] [@YYYY-MM-DD] [-- description]"
    return _add(state, args, None)


def cmd_sub(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /sub <parent> <title> [!priority] [#tag] [@YYYY-MM-DD] [-- description]"
    parent, err = _resolve(state.store.tasks, args[0])
    if parent is None:
        return err or "Parent not found."
    return _add(state, args[1:], parent.id)


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit <task> [new title] [!priority] [#tag ...] [@YYYY-MM-DD|@none] [-- description]

    Only the given parts change; #tags replace the task's tag list.
    """
    usage = "Usage: /edit <task> [title] [!priority] [#tag] [@YYYY-MM-DD|@none] [-- description]"
    if len(args) < 2:
        return usage
    task, err = _resolve(state.store.tasks, args[0])
    if task is None:
        return err or "Task not found."
    opts, err = _parse_task_options(state, args[1:])
    if err:
        return err

    changes: dict[str, object] = {}
    if opts.title:
        changes["title"] = opts.title
    if opts.priority is not None:
        changes["priority"] = opts.priority
    if opts.tag_ids is not None:
        changes["tag_ids"] = opts.tag_ids
    if opts.clear_due:
        changes["due_date"] = None
    elif opts.due_date is not None:
        changes["due_date"] = opts.due_date
    if opts.description is not None:
        changes["description"] = opts.description
    if not changes:
        return usage

    updated = asyncio.run(state.store.update_task(task.id, **changes))
    if updated is None:
        return _store_error(state, "task not updated")
    return f"Updated {_short(updated.id)}: {', '.join(sorted(changes))}"


def cmd_desc(state: AppState, args: list[str]) -> str:
    """Set a task description; with no text the description is cleared."""
    if not args:
        return "Usage: /desc <task> [text]"
    task, err = _resolve(state.store.tasks, args[0])
    if task is None:
        return err or "Task not found."
    text = " ".join(args[1:])
    updated = asyncio.run(state.store.update_task(task.id, description=text or None))
    if updated is None:
        return _store_error(state, "task not updated")
    if updated.description is None:
        return f"Cleared description of {_short(updated.id)}."
    return f"Description of {_short(updated.id)} set."


def cmd_status(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /status <task> <todo|in_progress|completed|cancelled>"
    task, err = _resolve(state.store.tasks, args[0])
    if task is None:
        return err or "Task not found."
    updated = asyncio.run(state.store.update_task(task.id, status=args[1].lower()))
    if updated is None:
        return _store_error(state, "status not changed")
    return f"{_short(updated.id)} -> {_label(state, updated.status)}"


def cmd_done(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /done <task>"
    task, err = _resolve(state.store.tasks, args[0])
    if task is None:
        return err or "Task not found."
    updated = state.store.toggle_task_status(task.id)
    if updated is None:
        return _store_error(state, "status not changed")
    return f"{_short(updated.id)} -> {_label(state, updated.status)}"


def cmd_mv(state: AppState, args: list[str]) -> str:
    """
    /mv <task> <parent|root> <index>
    """
    if len(args) != 3:
        return "Usage: /mv <task> <parent|root> <index>"
    task, err = _resolve(state.store.tasks, args[0])
    if task is None:
        return err or "Task not found."

    parent_id: str | None = None
    if args[1].lower() != "root":
        parent, err = _resolve(state.store.tasks, args[1])
        if parent is None:
            return err or "Parent not found."
        parent_id = parent.id

    try:
        index = int(args[2])
    except ValueError:
        return "Index must be an integer."

    if not state.store.move_task(task.id, parent_id, index):
        if state.store.error:
            return _store_error(state, "move failed")
        return "Move rejected (a task cannot be placed under itself or its subtasks)."
    moved = state.store.get_task_by_id(task.id)
    where = _short(parent_id) if parent_id else "root"
    return f"Moved {_short(task.id)} under {where} at position {moved.order if moved else index}."


def cmd_rm(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /rm <task>"
    task, err = _resolve(state.store.tasks, args[0])
    if task is None:
        return err or "Task not found."
    removed = asyncio.run(state.store.delete_task(task.id))
    if not removed:
        return _store_error(state, "nothing deleted")
    return f"Deleted {_short(task.id)} and {len(removed) - 1} subtask(s)."


def cmd_show(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /show <task>"
    task, err = _resolve(state.store.tasks, args[0])
    if task is None:
        return err or "Task not found."
    found = task_with_tags(state.store, task.id)
    if found is None:
        return "Task not found."
    task, tags = found
    subtasks = state.store.get_tasks_by_parent_id(task.id)
    lines = [
        f"{task.title}  [{task.id}]",
        f"  Status: {_label(state, task.status)}",
        f"  Priority: {task.priority.value}",
        f"  Parent: {task.parent_id or '-'} (position {task.order})",
        f"  Due: {task.due_date.isoformat() if task.due_date else '-'}",
        f"  Tags: {', '.join(t.name for t in tags) or '-'}",
        f"  Created: {task.created_at:%Y-%m-%d %H:%M}",
        f"  Updated: {task.updated_at:%Y-%m-%d %H:%M}",
    ]
    if task.completed_at:
        lines.append(f"  Completed: {task.completed_at:%Y-%m-%d %H:%M}")
    if task.description:
        lines.append(f"  {task.description}")
    if subtasks:
        lines.append(f"  Subtasks: {len(subtasks)}")
    return "\n".join(lines)


def cmd_tags(state: AppState, args: list[str]) -> str:
    tags = state.store.tags
    if not tags:
        return "No tags yet. Use /tag add <name> [color]."
    lines = ["Tags:"]
    for tag in tags:
        color = f" ({tag.color})" if tag.color else ""
        count = len(state.store.get_tasks_by_tag(tag.id))
        lines.append(f"  {_short(tag.id)} {tag.name}{color} - {count} task(s)")
    return "\n".join(lines)


def cmd_tag(state: AppState, args: list[str]) -> str:
    """
    /tag add <name> [color]
    /tag rename <tag> <name>
    /tag color <tag> <color>
    /tag rm <tag>
    """
    usage = "Usage: /tag add <name> [color] | rename <tag> <name> | color <tag> <color> | rm <tag>"
    if not args:
        return usage

    sub = args[0].lower()
    store = state.store

    if sub == "add" and len(args) in (2, 3):
        tag = asyncio.run(store.add_tag(args[1], color=args[2] if len(args) == 3 else None))
        if tag is None:
            return _store_error(state, "tag not added")
        return f"Added tag {_short(tag.id)}: {tag.name}"

    if sub in ("rename", "color", "rm") and len(args) >= 2:
        tag, err = _resolve(store.tags, args[1])
        if tag is None:
            return err or "Tag not found."

        if sub == "rm":
            if not asyncio.run(store.delete_tag(tag.id)):
                return _store_error(state, "tag not deleted")
            return f"Deleted tag {tag.name}."

        if len(args) < 3:
            return usage
        if sub == "rename":
            updated = asyncio.run(store.update_tag(tag.id, name=" ".join(args[2:])))
        else:
            updated = asyncio.run(store.update_tag(tag.id, color=args[2]))
        if updated is None:
            return _store_error(state, "tag not updated")
        return f"Tag {_short(updated.id)}: {updated.name} ({updated.color or 'no color'})"

    return usage


def cmd_tagtask(state: AppState, args: list[str]) -> str:
    """Toggle a tag on a task."""
    if len(args) != 2:
        return "Usage: /tagtask <task> <tag>"
    task, err = _resolve(state.store.tasks, args[0])
    if task is None:
        return err or "Task not found."
    tag, err = _resolve(state.store.tags, args[1])
    if tag is None:
        return err or "Tag not found."

    if tag.id in task.tag_ids:
        tag_ids = [tid for tid in task.tag_ids if tid != tag.id]
        verb = "Removed"
    else:
        tag_ids = [*task.tag_ids, tag.id]
        verb = "Added"
    if asyncio.run(state.store.update_task(task.id, tag_ids=tag_ids)) is None:
        return _store_error(state, "task not updated")
    return f"{verb} #{tag.name} on {_short(task.id)}."


def cmd_login(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2:
        return "Usage: /login <email> <password>"
    if emit:
        emit("Signing in...")
    # Never log the password argument.
    logger.debug("Login requested email=%s", args[0])
    if not asyncio.run(state.store.login(args[0], args[1])):
        return _store_error(state, "login failed")
    user = state.store.current_user
    return f"Signed in as {user.username if user else args[0]}."


def cmd_register(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 3:
        return "Usage: /register <username> <email> <password>"
    if emit:
        emit("Creating account...")
    if not asyncio.run(state.store.register(args[0], args[1], args[2])):
        return _store_error(state, "registration failed")
    return f"Registered and signed in as {args[0]}."


def cmd_logout(state: AppState, args: list[str]) -> str:
    if state.store.current_user is None:
        return "Not signed in."
    state.store.logout()
    return "Signed out."


def cmd_whoami(state: AppState, args: list[str]) -> str:
    user = state.store.current_user
    if user is None:
        return "Not signed in."
    return f"{user.username} <{user.email}> id={user.id}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("board", cmd_board, help_text="Show the kanban board.", aliases=["b"])
registry.register("tree", cmd_tree, help_text="Show tasks as a tree.", aliases=["t"])
registry.register("add", cmd_add, help_text="Add a task: /add <title> [!priority] [#tag] [@date] [-- description].")
registry.register("sub", cmd_sub, help_text="Add a subtask: /sub <parent> <title> ...")
registry.register(
    "edit",
    cmd_edit,
    help_text="Edit a task: /edit <task> [title] [!priority] [#tag] [@date|@none] [-- description].",
)
registry.register("desc", cmd_desc, help_text="Set or clear a description: /desc <task> [text].")
registry.register("status", cmd_status, help_text="Set status: /status <task> <status>.")
registry.register("done", cmd_done, help_text="Toggle completed: /done <task>.")
registry.register("mv", cmd_mv, help_text="Move a task: /mv <task> <parent|root> <index>.")
registry.register("rm", cmd_rm, help_text="Delete a task and its subtasks: /rm <task>.")
registry.register("show", cmd_show, help_text="Show task details: /show <task>.")
registry.register("tags", cmd_tags, help_text="List tags.")
registry.register("tag", cmd_tag, help_text="Manage tags: /tag add|rename|color|rm ...")
registry.register("tagtask", cmd_tagtask, help_text="Toggle a tag on a task: /tagtask <task> <tag>.")
registry.register("login", cmd_login, help_text="Sign in: /login <email> <password>.")
registry.register("register", cmd_register, help_text="Create account: /register <user> <email> <password>.")
registry.register("logout", cmd_logout, help_text="Sign out.")
registry.register("whoami", cmd_whoami, help_text="Show the signed-in user.")
