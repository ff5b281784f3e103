"""Validation gate for products and users.

Rules run in a fixed order and stop at the first violation. The violation
is written to the audit trail under ``VALIDATION_ERROR`` and then raised as
:class:`ValidationError` with the same message. Input is never coerced.
"""

from __future__ import annotations

import logging
import math

from marketplace_catalog.control_plane.audit_trail import AuditTrail
from marketplace_catalog.core.enums import AuditAction
from marketplace_catalog.core.errors import ValidationError
from marketplace_catalog.core.models import Product, User

logger = logging.getLogger(__name__)

DEFAULT_MIN_PASSWORD_LENGTH = 4


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


class _Gate:
    def __init__(self, audit: AuditTrail) -> None:
        self._audit = audit

    def _reject(self, actor_id: int | None, message: str) -> None:
        self._audit.error(actor_id, AuditAction.VALIDATION_ERROR, message)
        logger.info("Validation rejected: %s", message)
        raise ValidationError(message)


class ProductValidator(_Gate):
    """Structural and business rules for catalog entries."""

    def validate(self, product: Product | None, actor_id: int | None = None) -> None:
        if product is None:
            self._reject(actor_id, "Product cannot be null")
        if _is_blank(product.name):
            self._reject(actor_id, "Product name cannot be empty")
        if _is_blank(product.brand):
            self._reject(actor_id, "Product brand cannot be empty")
        if _is_blank(product.category):
            self._reject(actor_id, "Product category cannot be empty")
        if not math.isfinite(product.price) or product.price <= 0:
            self._reject(actor_id, "Product price must be positive")


class UserValidator(_Gate):
    """Registration rules for principals."""

    def __init__(
        self,
        audit: AuditTrail,
        min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH,
    ) -> None:
        super().__init__(audit)
        self._min_password_length = min_password_length

    def validate(self, user: User | None) -> None:
        if user is None:
            self._reject(None, "User cannot be null")
        if _is_blank(user.username):
            self._reject(user.id, "Username cannot be empty")
        if user.password is None or len(user.password) < self._min_password_length:
            self._reject(
                user.id,
                f"Password must have at least {self._min_password_length} characters",
            )
