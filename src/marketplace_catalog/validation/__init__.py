"""Validation gate: rule checks run before any entity reaches storage.

Validators:
    ProductValidator, UserValidator
"""

from marketplace_catalog.validation.gate import (
    DEFAULT_MIN_PASSWORD_LENGTH,
    ProductValidator,
    UserValidator,
)

__all__ = [
    "DEFAULT_MIN_PASSWORD_LENGTH",
    "ProductValidator",
    "UserValidator",
]
