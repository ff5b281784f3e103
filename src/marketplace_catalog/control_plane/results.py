"""Uniform result type returned by pipeline and auth operations.

Operations never raise to callers for expected failures; the failure
category is carried as an :class:`ErrorKind` so callers branch on the kind.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from marketplace_catalog.core.enums import ErrorKind
from marketplace_catalog.core.errors import ERRORS_BY_KIND, CatalogError


class OperationResult(BaseModel):
    """Outcome of a single operation.

    Attributes:
        ok: True when the operation completed.
        value: Payload on success (product, list, bool, user...).
        error: Failure category, ``None`` on success.
        message: Human-readable message; for validation failures this is
            the exact rule message that was written to the audit trail.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    ok: bool
    value: Any = None
    error: ErrorKind | None = None
    message: str = ""

    @property
    def fatal(self) -> bool:
        """Backend failures are non-recoverable; everything else is."""
        return self.error == ErrorKind.BACKEND_FAILURE

    @classmethod
    def success(cls, value: Any = None, message: str = "ok") -> OperationResult:
        return cls(ok=True, value=value, message=message)

    @classmethod
    def failure(cls, exc: CatalogError) -> OperationResult:
        return cls(ok=False, error=exc.kind, message=str(exc))

    def unwrap(self) -> Any:
        """Return the value, or raise the exception matching ``error``."""
        if self.ok:
            return self.value
        raise ERRORS_BY_KIND[self.error](self.message)
