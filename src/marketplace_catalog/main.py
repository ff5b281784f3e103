"""Application bootstrap.

Wires stores, audit trail, metrics, validators, the catalog pipeline and
the auth service from :class:`Settings`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .control_plane.audit_trail import AuditTrail
from .control_plane.auth import AuthService
from .control_plane.pipeline import CatalogPipeline
from .core.clock import IClock, WallClock
from .core.config import Settings
from .core.enums import Role
from .core.models import User
from .observability.metrics import MetricsCollector
from .storage.factory import Stores, create_stores
from .validation.gate import ProductValidator, UserValidator

logger = logging.getLogger(__name__)


@dataclass
class CatalogApp:
    settings: Settings
    stores: Stores
    audit: AuditTrail
    metrics: MetricsCollector
    pipeline: CatalogPipeline
    auth: AuthService

    def close(self) -> None:
        self.stores.close()


def build_catalog(settings: Settings, clock: IClock | None = None) -> CatalogApp:
    """Build a ready-to-use catalog. Registers the bootstrap admin if configured."""
    clock = clock or WallClock()
    stores = create_stores(settings.storage, clock=clock)
    audit = AuditTrail(repository=stores.audit, clock=clock)
    metrics = MetricsCollector()

    pipeline = CatalogPipeline(
        stores.products, audit, metrics, validator=ProductValidator(audit),
    )
    auth = AuthService(
        stores.users,
        audit,
        metrics,
        validator=UserValidator(audit, settings.auth.min_password_length),
    )
    app = CatalogApp(
        settings=settings,
        stores=stores,
        audit=audit,
        metrics=metrics,
        pipeline=pipeline,
        auth=auth,
    )

    _bootstrap_admin(app)
    return app


def _bootstrap_admin(app: CatalogApp) -> None:
    username = app.settings.auth.bootstrap_admin_username
    if not username or app.stores.users.exists_by_username(username):
        return

    result = app.auth.register(
        User(
            username=username,
            password=app.settings.auth.bootstrap_admin_password,
            role=Role.ADMIN,
        )
    )
    if result.ok:
        logger.info("Bootstrap admin %r registered", username)
    else:
        logger.warning("Bootstrap admin %r not registered: %s", username, result.message)
