"""Append-only audit trail.

Contract:
    - record() MUST succeed or raise (no silent drops)
    - If the repository rejects an event, it is not appended in memory
      either and BackendFailure propagates to the caller
    - Events are immutable after append
    - No delete/update operations exist
    - Ids increase by one per event; timestamps never go backwards

Persistence is delegated to an optional :class:`IAuditRepository`
(JSON lines file or SQL table). Without one, events live in memory only.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from marketplace_catalog.core.clock import IClock, WallClock
from marketplace_catalog.core.enums import AuditAction, AuditLevel
from marketplace_catalog.core.errors import BackendFailure
from marketplace_catalog.core.file_io import read_lines, safe_append_line
from marketplace_catalog.core.interfaces import IAuditRepository
from marketplace_catalog.core.models import AuditEvent
from marketplace_catalog.observability.logger import get_logger

logger = logging.getLogger(__name__)
_event_log = get_logger("marketplace_catalog.audit")


class JsonlAuditRepository:
    """Audit sink writing one JSON object per line."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def append(self, event: AuditEvent) -> None:
        try:
            safe_append_line(self._path, event.model_dump_json())
        except OSError as exc:
            raise BackendFailure(f"Audit persistence failed: {exc}") from exc

    def load_all(self) -> list[AuditEvent]:
        try:
            lines = read_lines(self._path)
        except (OSError, UnicodeDecodeError) as exc:
            raise BackendFailure(f"Could not read audit file {self._path}: {exc}") from exc
        events = []
        for line in lines:
            try:
                events.append(AuditEvent.model_validate_json(line))
            except PydanticValidationError as exc:
                logger.warning("Skipping corrupt audit line in %s: %s", self._path, exc)
        return events


class AuditTrail:
    """Append-only audit event journal shared by every component."""

    def __init__(
        self,
        repository: IAuditRepository | None = None,
        clock: IClock | None = None,
    ) -> None:
        self._repository = repository
        self._clock = clock or WallClock()
        self._lock = threading.Lock()
        self._events: list[AuditEvent] = []
        if repository is not None:
            self._events = sorted(repository.load_all(), key=lambda e: e.id)
        self._last_id = self._events[-1].id if self._events else 0

    def record(
        self,
        actor_id: int | None,
        action: AuditAction | str,
        detail: str,
        level: AuditLevel = AuditLevel.INFO,
    ) -> AuditEvent:
        """Append one event.

        Raises:
            BackendFailure: If the repository cannot persist the event.
                Callers MUST treat this as a hard stop.
        """
        tag = action.value if isinstance(action, AuditAction) else action
        with self._lock:
            timestamp = self._clock.now()
            if self._events and timestamp < self._events[-1].timestamp:
                timestamp = self._events[-1].timestamp
            event = AuditEvent(
                id=self._last_id + 1,
                timestamp=timestamp,
                actor_id=actor_id,
                action=tag,
                detail=detail,
                level=level,
            )
            if self._repository is not None:
                self._repository.append(event)
            self._events.append(event)
            self._last_id = event.id

        log = _event_log.error if level == AuditLevel.ERROR else _event_log.info
        log("audit_event", event_id=event.id, actor_id=actor_id, action=tag, detail=detail)
        return event

    def info(self, actor_id: int | None, action: AuditAction | str, detail: str) -> AuditEvent:
        return self.record(actor_id, action, detail, AuditLevel.INFO)

    def error(self, actor_id: int | None, action: AuditAction | str, detail: str) -> AuditEvent:
        return self.record(actor_id, action, detail, AuditLevel.ERROR)

    def get_all_events(self) -> list[AuditEvent]:
        """All events, newest first."""
        with self._lock:
            return list(reversed(self._events))

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
