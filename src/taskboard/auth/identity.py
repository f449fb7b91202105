# src/taskboard/auth/identity.py

"""
Identity providers.

LocalIdentityProvider is an offline placeholder: there is no credential
store, so any well-formed email with a non-empty password is accepted.
A real deployment plugs its own IdentityProvider into the TaskStore.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from ..tasks.task_models import UserSession, utcnow

logger = logging.getLogger(__name__)

_USER_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_DNS, "taskboard.local")


@dataclass(slots=True, frozen=True)
class AuthResult:
    ok: bool
    user: UserSession | None = None
    error: str | None = None

    @classmethod
    def success(cls, user: UserSession) -> AuthResult:
        return cls(ok=True, user=user)

    @classmethod
    def failure(cls, message: str) -> AuthResult:
        return cls(ok=False, error=message)


def _normalize_email(email: str) -> str | None:
    email = (email or "").strip().lower()
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain:
        return None
    return email


class LocalIdentityProvider:
    """Accept-all identity provider for single-user local runs."""

    def _user_id(self, email: str) -> str:
        # Stable per email, so a re-login maps to the same owner of tasks/tags.
        return f"user-{uuid.uuid5(_USER_NAMESPACE, email).hex[:12]}"

    async def authenticate(self, email: str, password: str) -> AuthResult:
        normalized = _normalize_email(email)
        if normalized is None:
            return AuthResult.failure("Invalid email address.")
        if not password:
            return AuthResult.failure("Password is required.")

        now = utcnow()
        user = UserSession(
            id=self._user_id(normalized),
            email=normalized,
            username=normalized.split("@", 1)[0],
            is_active=True,
            created_at=now,
            last_login_at=now,
        )
        logger.debug("Local login accepted user_id=%s", user.id)
        return AuthResult.success(user)

    async def register(self, username: str, email: str, password: str) -> AuthResult:
        username = (username or "").strip()
        if not username:
            return AuthResult.failure("Username is required.")
        normalized = _normalize_email(email)
        if normalized is None:
            return AuthResult.failure("Invalid email address.")
        if not password:
            return AuthResult.failure("Password is required.")

        user = UserSession(
            id=self._user_id(normalized),
            email=normalized,
            username=username,
            is_active=True,
            created_at=utcnow(),
        )
        logger.debug("Local registration accepted user_id=%s", user.id)
        return AuthResult.success(user)
