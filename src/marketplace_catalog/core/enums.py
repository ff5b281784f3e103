"""Enumerations used across the catalog core."""

from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class AuditLevel(str, Enum):
    INFO = "INFO"
    ERROR = "ERROR"


class AuditAction(str, Enum):
    """Symbolic action tags written to the audit trail."""

    # Catalog mutations
    ADD_PRODUCT = "ADD_PRODUCT"
    UPDATE_PRODUCT = "UPDATE_PRODUCT"
    DELETE_PRODUCT = "DELETE_PRODUCT"

    # Catalog rejections
    ACCESS_DENIED = "ACCESS_DENIED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DUPLICATE_PRODUCT_ID = "DUPLICATE_PRODUCT_ID"
    UPDATE_FAILED = "UPDATE_FAILED"
    DELETE_PRODUCT_FAILED = "DELETE_PRODUCT_FAILED"
    INVALID_PRICE_RANGE = "INVALID_PRICE_RANGE"

    # Read-only
    FILTER_PRODUCTS = "FILTER_PRODUCTS"

    # Auth
    REGISTER = "REGISTER"
    REGISTER_FAILED = "REGISTER_FAILED"
    LOGIN = "LOGIN"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    LOGOUT_FAILED = "LOGOUT_FAILED"


class ErrorKind(str, Enum):
    """Failure categories carried by :class:`OperationResult`."""

    VALIDATION_ERROR = "validation_error"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    DUPLICATE_USERNAME = "duplicate_username"
    IDENTITY_NOT_ALLOWED = "identity_not_allowed"
    INVALID_CREDENTIALS = "invalid_credentials"
    NO_ACTIVE_SESSION = "no_active_session"
    BACKEND_FAILURE = "backend_failure"  # Fatal, never retried


class SessionState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


class StorageBackend(str, Enum):
    MEMORY = "memory"
    FILE = "file"
    SQL = "sql"
