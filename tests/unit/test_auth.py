"""Unit tests for AuthService and the session state machine."""

from __future__ import annotations

from marketplace_catalog.control_plane.auth import INVALID_CREDENTIALS_MESSAGE, AuthService
from marketplace_catalog.control_plane.session import Session
from marketplace_catalog.core.enums import AuditLevel, ErrorKind, Role, SessionState
from marketplace_catalog.core.errors import BackendFailure
from marketplace_catalog.core.models import User


def _actions(audit) -> list[str]:
    return [e.action for e in reversed(audit.get_all_events())]


class _BrokenUserStore:
    def find_by_username(self, username):
        raise BackendFailure("users table unavailable")


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class TestSession:
    def test_starts_anonymous(self, anonymous):
        assert anonymous.state == SessionState.ANONYMOUS
        assert anonymous.principal is None
        assert anonymous.actor_id is None
        assert not anonymous.is_admin

    def test_repr_hides_password(self, admin_session):
        assert "admin123" not in repr(admin_session)
        assert "admin123" not in repr(admin_session.principal)


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------

class TestRegister:
    def test_register_success(self, auth, audit, metrics):
        result = auth.register(User(username="bob", password="hunter2"))

        assert result.ok
        assert result.value.id == 1
        assert result.value.role == Role.USER
        assert _actions(audit) == ["REGISTER"]
        assert audit.get_all_events()[0].actor_id == 1
        assert metrics.get_counter("register.success") == 1
        assert metrics.get_op_count("register") == 1

    def test_admin_role_can_be_registered(self, auth):
        result = auth.register(User(username="root", password="toor", role=Role.ADMIN))
        assert result.value.is_admin

    def test_duplicate_username(self, auth, audit, metrics):
        auth.register(User(username="bob", password="hunter2"))
        result = auth.register(User(username="bob", password="different"))

        assert not result.ok
        assert result.error == ErrorKind.DUPLICATE_USERNAME
        assert result.message == "Username already exists"
        assert _actions(audit) == ["REGISTER", "REGISTER_FAILED"]
        assert metrics.get_counter("register.failed") == 1
        assert metrics.get_op_count("register") == 2

    def test_identity_supplied(self, auth, audit, memory_users):
        result = auth.register(User(id=9, username="bob", password="hunter2"))

        assert result.error == ErrorKind.IDENTITY_NOT_ALLOWED
        assert _actions(audit) == ["REGISTER_FAILED"]
        assert memory_users.count() == 0

    def test_validation_failure(self, auth, audit, memory_users):
        result = auth.register(User(username="bob", password="abc"))

        assert result.error == ErrorKind.VALIDATION_ERROR
        assert result.message == "Password must have at least 4 characters"
        assert _actions(audit) == ["VALIDATION_ERROR"]
        assert memory_users.count() == 0


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------

class TestLogin:
    def test_login_success(self, auth, audit, metrics, admin_user):
        session = Session()
        result = auth.login(session, "admin", "admin123")

        assert result.ok
        assert session.state == SessionState.AUTHENTICATED
        assert session.is_admin
        assert session.actor_id == admin_user.id
        assert _actions(audit) == ["LOGIN"]
        assert metrics.get_counter("login.success") == 1

    def test_wrong_password_and_unknown_user_look_identical(self, auth, admin_user):
        wrong_password = auth.login(Session(), "admin", "nope")
        unknown_user = auth.login(Session(), "ghost", "admin123")

        assert wrong_password.error == unknown_user.error == ErrorKind.INVALID_CREDENTIALS
        assert wrong_password.message == unknown_user.message == INVALID_CREDENTIALS_MESSAGE

    def test_failed_login_is_audited(self, auth, audit, metrics):
        auth.login(Session(), "ghost", "x")

        [event] = audit.get_all_events()
        assert event.action == "LOGIN_FAILED"
        assert event.level == AuditLevel.ERROR
        assert event.actor_id is None
        assert "ghost" in event.detail
        assert metrics.get_counter("login.failed") == 1
        assert metrics.get_op_count("login") == 1

    def test_failed_login_keeps_existing_principal(self, auth, user_session, regular_user):
        result = auth.login(user_session, "alice", "wrong")

        assert not result.ok
        assert user_session.principal == regular_user

    def test_password_match_is_exact(self, auth, regular_user):
        assert not auth.login(Session(), "alice", "ALICE123").ok
        assert not auth.login(Session(), "Alice", "alice123").ok

    def test_backend_failure_is_fatal(self, audit, metrics):
        auth = AuthService(_BrokenUserStore(), audit, metrics)
        session = Session()

        result = auth.login(session, "admin", "admin123")

        assert result.error == ErrorKind.BACKEND_FAILURE
        assert result.fatal
        assert session.state == SessionState.ANONYMOUS
        assert metrics.get_op_count("login") == 1


class TestLogout:
    def test_logout_success(self, auth, audit, admin_session, admin_user):
        result = auth.logout(admin_session)

        assert result.ok
        assert result.value == admin_user
        assert admin_session.state == SessionState.ANONYMOUS
        assert _actions(audit)[-1] == "LOGOUT"

    def test_logout_while_anonymous(self, auth, audit, metrics, anonymous):
        result = auth.logout(anonymous)

        assert result.error == ErrorKind.NO_ACTIVE_SESSION
        assert anonymous.state == SessionState.ANONYMOUS
        assert _actions(audit) == ["LOGOUT_FAILED"]
        assert metrics.get_counter("logout.failed") == 1
        assert metrics.get_op_count("logout") == 1

    def test_sessions_are_independent(self, auth, admin_session, user_session):
        auth.logout(user_session)
        assert admin_session.is_admin
        assert not user_session.is_authenticated
