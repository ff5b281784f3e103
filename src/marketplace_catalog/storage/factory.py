"""Storage factory: pick product/user/audit backends from configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.engine import Engine, make_url

from marketplace_catalog.control_plane.audit_trail import JsonlAuditRepository
from marketplace_catalog.core.clock import IClock
from marketplace_catalog.core.config import StorageConfig
from marketplace_catalog.core.enums import StorageBackend
from marketplace_catalog.core.interfaces import (
    IAuditRepository,
    IProductStore,
    IUserStore,
)

from .file_store import FileProductStore, FileUserStore
from .memory import InMemoryProductStore, InMemoryUserStore
from .sql.connection import create_all, create_engine, create_session_factory
from .sql.repos import SqlAuditRepository, SqlProductStore, SqlUserStore

logger = logging.getLogger(__name__)


@dataclass
class Stores:
    products: IProductStore
    users: IUserStore
    audit: IAuditRepository | None = None  # None keeps audit events in memory
    engine: Engine | None = None

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()


def create_stores(config: StorageConfig, clock: IClock | None = None) -> Stores:
    """Create the stores for ``config.backend``.

    - MEMORY: in-process indexes, nothing persisted
    - FILE: delimited flat files plus a JSON-lines audit file under data_dir
    - SQL: SQLAlchemy tables, created on first use
    """
    if config.backend == StorageBackend.MEMORY:
        stores = Stores(
            products=InMemoryProductStore(clock=clock),
            users=InMemoryUserStore(),
        )
    elif config.backend == StorageBackend.FILE:
        stores = Stores(
            products=FileProductStore(config.path_for(config.products_file), clock=clock),
            users=FileUserStore(config.path_for(config.users_file)),
            audit=JsonlAuditRepository(config.path_for(config.audit_file)),
        )
    else:
        _ensure_sqlite_dir(config.database_url)
        engine = create_engine(config.database_url, echo=config.echo)
        create_all(engine)
        factory = create_session_factory(engine)
        stores = Stores(
            products=SqlProductStore(factory, clock=clock),
            users=SqlUserStore(factory),
            audit=SqlAuditRepository(factory),
            engine=engine,
        )

    logger.info("Storage backend: %s", config.backend.value)
    return stores


def _ensure_sqlite_dir(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database not in (None, "", ":memory:"):
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
