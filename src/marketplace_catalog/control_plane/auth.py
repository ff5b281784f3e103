"""AuthService: registration, login and logout against the user store.

Every operation:
    1. Starts a timer (``register`` / ``login`` / ``logout``), stopped on
       success and failure paths alike
    2. Writes exactly one audit event describing the outcome
    3. Bumps an outcome counter (``<op>.success`` / ``<op>.failed``)
    4. Returns an :class:`OperationResult`; it never raises for expected
       failures

Login failures use one message whether the username or the password was
wrong, so the result cannot be used to probe for registered usernames.
"""

from __future__ import annotations

import logging

from marketplace_catalog.core.enums import AuditAction
from marketplace_catalog.core.errors import (
    BackendFailure,
    DuplicateUsername,
    IdentityNotAllowed,
    InvalidCredentials,
    NoActiveSession,
    ValidationError,
)
from marketplace_catalog.core.interfaces import IUserStore
from marketplace_catalog.core.models import User
from marketplace_catalog.observability.metrics import MetricsCollector
from marketplace_catalog.validation.gate import UserValidator

from .audit_trail import AuditTrail
from .results import OperationResult
from .session import Session

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"


class AuthService:
    def __init__(
        self,
        users: IUserStore,
        audit: AuditTrail,
        metrics: MetricsCollector,
        validator: UserValidator | None = None,
    ) -> None:
        self._users = users
        self._audit = audit
        self._metrics = metrics
        self._validator = validator or UserValidator(audit)

    # ------------------------------------------------------------------
    # Register
    # ------------------------------------------------------------------

    def register(self, candidate: User | None) -> OperationResult:
        """Create a new principal. The store assigns the id."""
        with self._metrics.timer("register"):
            try:
                try:
                    self._validator.validate(candidate)
                    if candidate.id is not None:
                        raise IdentityNotAllowed("Do not supply an id when registering")
                    if self._users.exists_by_username(candidate.username):
                        raise DuplicateUsername("Username already exists")
                    saved = self._users.save(candidate)
                except ValidationError as exc:
                    self._metrics.increment("register.failed")
                    return OperationResult.failure(exc)
                except (IdentityNotAllowed, DuplicateUsername) as exc:
                    self._audit.error(None, AuditAction.REGISTER_FAILED, str(exc))
                    self._metrics.increment("register.failed")
                    return OperationResult.failure(exc)

                self._audit.info(saved.id, AuditAction.REGISTER, "User successfully registered")
                self._metrics.increment("register.success")
                logger.info("Registered user id=%s role=%s", saved.id, saved.role.value)
                return OperationResult.success(saved)
            except BackendFailure as exc:
                return self._backend_failure("register", exc)

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    def login(self, session: Session, username: str, password: str) -> OperationResult:
        """Authenticate *session* as *username* on an exact password match."""
        with session.lock, self._metrics.timer("login"):
            try:
                user = self._users.find_by_username(username)
                if user is None or user.password != password:
                    self._audit.error(
                        None,
                        AuditAction.LOGIN_FAILED,
                        f"Invalid username or password: {username}",
                    )
                    self._metrics.increment("login.failed")
                    return OperationResult.failure(
                        InvalidCredentials(INVALID_CREDENTIALS_MESSAGE)
                    )

                self._audit.info(user.id, AuditAction.LOGIN, "User logged in")
                session._authenticate(user)
                self._metrics.increment("login.success")
                return OperationResult.success(user)
            except BackendFailure as exc:
                return self._backend_failure("login", exc)

    def logout(self, session: Session) -> OperationResult:
        """Return *session* to the anonymous state."""
        with session.lock, self._metrics.timer("logout"):
            try:
                principal = session.principal
                if principal is None:
                    self._audit.error(
                        None, AuditAction.LOGOUT_FAILED, "No user is currently logged in"
                    )
                    self._metrics.increment("logout.failed")
                    return OperationResult.failure(
                        NoActiveSession("No active user to log out")
                    )

                self._audit.info(principal.id, AuditAction.LOGOUT, "User logged out")
                session._clear()
                self._metrics.increment("logout.success")
                return OperationResult.success(principal)
            except BackendFailure as exc:
                return self._backend_failure("logout", exc)

    def _backend_failure(self, operation: str, exc: BackendFailure) -> OperationResult:
        logger.error("Backend failure during %s: %s", operation, exc, exc_info=exc)
        return OperationResult.failure(exc)
