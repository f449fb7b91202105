# src/taskboard/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the task store.

The store depends on Protocols instead of concrete implementations.
This keeps persistence and identity swappable and makes testing easier.
"""

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..auth.identity import AuthResult

StateRecord = dict[str, Any]
# Persisted layout: {"state": {"tasks": [...], "tags": [...], "currentUser": ...}, "version": 0}


class StateStorage(Protocol):
    """Durable key-value slot holding whole state records."""

    def load(self, key: str) -> StateRecord | None: ...
    def save(self, key: str, record: StateRecord) -> None: ...


class IdentityProvider(Protocol):
    """
    Who the user is.

    Implementations report success/failure explicitly through AuthResult;
    they should not raise for bad credentials.
    """

    async def authenticate(self, email: str, password: str) -> AuthResult: ...

    async def register(self, username: str, email: str, password: str) -> AuthResult: ...
