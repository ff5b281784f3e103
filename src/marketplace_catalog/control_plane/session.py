"""Session context: who is acting.

Two states:

    ANONYMOUS --login ok--> AUTHENTICATED(principal)
    AUTHENTICATED --logout--> ANONYMOUS

A failed login leaves the state untouched. The caller creates one
:class:`Session` per login/logout cycle and passes it explicitly to every
pipeline and auth operation; there is no process-wide current user.

Only :class:`~marketplace_catalog.control_plane.auth.AuthService` moves a
session between states. It holds :attr:`Session.lock` for the whole
login/logout so concurrent logins on one session serialize.
"""

from __future__ import annotations

import threading

from marketplace_catalog.core.enums import SessionState
from marketplace_catalog.core.models import User


class Session:
    def __init__(self) -> None:
        self.lock = threading.RLock()
        self._principal: User | None = None

    @property
    def principal(self) -> User | None:
        with self.lock:
            return self._principal

    @property
    def state(self) -> SessionState:
        with self.lock:
            if self._principal is None:
                return SessionState.ANONYMOUS
            return SessionState.AUTHENTICATED

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None

    @property
    def is_admin(self) -> bool:
        principal = self.principal
        return principal is not None and principal.is_admin

    @property
    def actor_id(self) -> int | None:
        principal = self.principal
        return principal.id if principal is not None else None

    def _authenticate(self, user: User) -> None:
        with self.lock:
            self._principal = user

    def _clear(self) -> User | None:
        with self.lock:
            previous, self._principal = self._principal, None
            return previous

    def __repr__(self) -> str:
        principal = self.principal
        if principal is None:
            return "Session(anonymous)"
        return f"Session({principal.username}, role={principal.role.value})"
