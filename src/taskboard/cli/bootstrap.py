# src/taskboard/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data directory exists,
- wires storage and identity into the TaskStore and hydrates it,
- hands the result to the front end as AppState.
"""

from __future__ import annotations

import logging

from ..auth.identity import LocalIdentityProvider
from ..config import get_settings
from ..core.ports import StateStorage
from ..core.state import AppState
from ..storage.state_storage import JsonFileStorage, MemoryStorage
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.state_path.parent.mkdir(parents=True, exist_ok=True)


def build_storage(settings) -> StateStorage:
    if getattr(settings, "persist", True):
        return JsonFileStorage(settings.state_path)
    logger.info("Persistence disabled; state lives in memory only.")
    return MemoryStorage()


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = TaskStore(
        build_storage(settings),
        storage_key=settings.storage_key,
        identity=LocalIdentityProvider(),
    )
    store.hydrate()

    return AppState(
        settings=settings,
        store=store,
        locale=getattr(settings, "locale", "en"),
    )
