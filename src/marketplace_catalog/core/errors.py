"""Custom exception hierarchy for the catalog core.

Stores and validators raise these; the pipeline and auth service convert
them into :class:`~marketplace_catalog.control_plane.results.OperationResult`
values so callers inspect an :class:`ErrorKind` instead of catching.
"""

from __future__ import annotations

from .enums import ErrorKind


class CatalogError(Exception):
    """Base exception for all catalog errors."""

    kind: ErrorKind


# --- Input ---
class ValidationError(CatalogError):
    """Entity failed a structural or business rule check."""

    kind = ErrorKind.VALIDATION_ERROR


# --- Access ---
class PermissionDenied(CatalogError):
    """Principal is absent or lacks the ADMIN role."""

    kind = ErrorKind.PERMISSION_DENIED


class InvalidCredentials(CatalogError):
    """Unknown username or wrong password (deliberately indistinguishable)."""

    kind = ErrorKind.INVALID_CREDENTIALS


class NoActiveSession(CatalogError):
    """Logout requested while the session is anonymous."""

    kind = ErrorKind.NO_ACTIVE_SESSION


# --- Storage ---
class NotFound(CatalogError):
    """Identity does not exist in the store."""

    kind = ErrorKind.NOT_FOUND


class IdentityNotAllowed(CatalogError):
    """Candidate carries an identity; identities are assigned by the store."""

    kind = ErrorKind.IDENTITY_NOT_ALLOWED


class DuplicateUsername(CatalogError):
    """Username is already registered."""

    kind = ErrorKind.DUPLICATE_USERNAME


class BackendFailure(CatalogError):
    """Storage I/O or constraint failure. Fatal; never retried."""

    kind = ErrorKind.BACKEND_FAILURE


ERRORS_BY_KIND: dict[ErrorKind, type[CatalogError]] = {
    cls.kind: cls
    for cls in (
        ValidationError,
        PermissionDenied,
        InvalidCredentials,
        NoActiveSession,
        NotFound,
        IdentityNotAllowed,
        DuplicateUsername,
        BackendFailure,
    )
}
