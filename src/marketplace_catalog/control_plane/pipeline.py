"""CatalogPipeline: the ONLY path for catalog mutations.

Every mutation goes:
    Session (ADMIN?) -> ProductValidator -> IProductStore -> AuditTrail + Metrics

Enforces:
    1. Access check first; a missing or non-ADMIN principal is rejected with
       one ``ACCESS_DENIED`` audit event and nothing else runs
    2. Validation before the store is touched (``VALIDATION_ERROR``)
    3. Store-stage rejections write one ERROR event
       (``DUPLICATE_PRODUCT_ID`` / ``UPDATE_FAILED`` / ``DELETE_PRODUCT_FAILED``)
    4. Success writes one INFO event after the store call, bumps
       ``product.<verb>`` and refreshes the ``product.count`` gauge
    5. Backend failures are logged and returned as a fatal result, never
       retried

Filters (brand / category / price range) are open to anyone but audited
(``FILTER_PRODUCTS``) and timed.

Never raises to callers. Errors are encoded in :class:`OperationResult`.
"""

from __future__ import annotations

import logging

from marketplace_catalog.core.enums import AuditAction
from marketplace_catalog.core.errors import (
    BackendFailure,
    CatalogError,
    IdentityNotAllowed,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from marketplace_catalog.core.interfaces import IProductStore
from marketplace_catalog.core.models import Product
from marketplace_catalog.observability.metrics import MetricsCollector
from marketplace_catalog.validation.gate import ProductValidator

from .audit_trail import AuditTrail
from .results import OperationResult
from .session import Session

logger = logging.getLogger(__name__)

PRODUCT_COUNT_GAUGE = "product.count"


class CatalogPipeline:
    """Guarded access to the catalog store.

    Construction requires:
        - store: IProductStore (sole writer reference in the application)
        - audit: AuditTrail
        - metrics: MetricsCollector

    Optional:
        - validator: ProductValidator (defaults to one on the same trail)
    """

    def __init__(
        self,
        store: IProductStore,
        audit: AuditTrail,
        metrics: MetricsCollector,
        validator: ProductValidator | None = None,
    ) -> None:
        self._store = store
        self._audit = audit
        self._metrics = metrics
        self._validator = validator or ProductValidator(audit)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_product(self, session: Session, candidate: Product | None) -> OperationResult:
        try:
            actor = self._require_admin(session)
            self._validator.validate(candidate, actor)
            try:
                saved = self._store.save(candidate)
            except IdentityNotAllowed:
                self._audit.error(
                    actor,
                    AuditAction.DUPLICATE_PRODUCT_ID,
                    f"Product id={candidate.id} supplied on create",
                )
                raise

            self._audit.info(
                actor,
                AuditAction.ADD_PRODUCT,
                f"Added product id={saved.id} name={saved.name}",
            )
            self._metrics.increment("product.added")
            self._refresh_count()
            return OperationResult.success(saved)
        except BackendFailure as exc:
            return self._backend_failure("create_product", exc)
        except CatalogError as exc:
            return OperationResult.failure(exc)

    def update_product(self, session: Session, product: Product | None) -> OperationResult:
        try:
            actor = self._require_admin(session)
            self._validator.validate(product, actor)
            try:
                updated = self._store.update(product)
            except NotFound:
                self._audit.error(
                    actor,
                    AuditAction.UPDATE_FAILED,
                    f"Product with id={product.id} does not exist",
                )
                raise

            self._audit.info(
                actor,
                AuditAction.UPDATE_PRODUCT,
                f"Updated product id={updated.id} name={updated.name}",
            )
            self._metrics.increment("product.updated")
            self._refresh_count()
            return OperationResult.success(updated)
        except BackendFailure as exc:
            return self._backend_failure("update_product", exc)
        except CatalogError as exc:
            return OperationResult.failure(exc)

    def delete_product(self, session: Session, product_id: int) -> OperationResult:
        try:
            actor = self._require_admin(session)
            existing = self._store.find_by_id(product_id)
            if existing is None or not self._store.delete_by_id(product_id):
                self._audit.error(
                    actor,
                    AuditAction.DELETE_PRODUCT_FAILED,
                    f"Attempted to delete non-existing product id={product_id}",
                )
                raise NotFound(f"Product with id={product_id} does not exist")

            self._audit.info(
                actor,
                AuditAction.DELETE_PRODUCT,
                f"Deleted product id={product_id} name={existing.name}",
            )
            self._metrics.increment("product.deleted")
            self._refresh_count()
            return OperationResult.success(True)
        except BackendFailure as exc:
            return self._backend_failure("delete_product", exc)
        except CatalogError as exc:
            return OperationResult.failure(exc)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_products(self, session: Session) -> OperationResult:
        try:
            return OperationResult.success(self._store.find_all())
        except BackendFailure as exc:
            return self._backend_failure("list_products", exc)

    def find_product_by_id(self, session: Session, product_id: int) -> OperationResult:
        """Success with the product, or with ``None`` when it does not exist."""
        try:
            return OperationResult.success(self._store.find_by_id(product_id))
        except BackendFailure as exc:
            return self._backend_failure("find_product_by_id", exc)

    def count_products(self, session: Session) -> OperationResult:
        try:
            return OperationResult.success(self._refresh_count())
        except BackendFailure as exc:
            return self._backend_failure("count_products", exc)

    def find_by_brand(self, session: Session, brand: str) -> OperationResult:
        try:
            with self._metrics.timer("findByBrand"):
                products = self._store.find_by_brand(brand)
            self._audit.info(
                session.actor_id, AuditAction.FILTER_PRODUCTS, f"Filter by brand={brand}"
            )
            return OperationResult.success(products)
        except BackendFailure as exc:
            return self._backend_failure("find_by_brand", exc)

    def find_by_category(self, session: Session, category: str) -> OperationResult:
        try:
            with self._metrics.timer("findByCategory"):
                products = self._store.find_by_category(category)
            self._audit.info(
                session.actor_id, AuditAction.FILTER_PRODUCTS, f"Filter by category={category}"
            )
            return OperationResult.success(products)
        except BackendFailure as exc:
            return self._backend_failure("find_by_category", exc)

    def find_by_price_range(
        self, session: Session, min_price: float, max_price: float,
    ) -> OperationResult:
        """Inclusive on both bounds; ``min_price > max_price`` is rejected."""
        try:
            if min_price > max_price:
                self._audit.error(
                    session.actor_id,
                    AuditAction.INVALID_PRICE_RANGE,
                    f"Invalid price range [{min_price}, {max_price}]",
                )
                return OperationResult.failure(
                    ValidationError("Minimum price cannot be greater than maximum price")
                )

            with self._metrics.timer("findByPriceRange"):
                products = self._store.find_by_price_range(min_price, max_price)
            self._audit.info(
                session.actor_id,
                AuditAction.FILTER_PRODUCTS,
                f"Filter by price range=[{min_price}, {max_price}]",
            )
            return OperationResult.success(products)
        except BackendFailure as exc:
            return self._backend_failure("find_by_price_range", exc)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_admin(self, session: Session) -> int:
        """Return the acting admin's id. The principal is read exactly once."""
        principal = session.principal
        if principal is None or not principal.is_admin:
            actor = principal.id if principal is not None else None
            self._audit.error(actor, AuditAction.ACCESS_DENIED, "Admin role required")
            raise PermissionDenied("Access denied: ADMIN role required")
        return principal.id

    def _refresh_count(self) -> int:
        total = self._store.count()
        self._metrics.set_gauge(PRODUCT_COUNT_GAUGE, total)
        return total

    def _backend_failure(self, operation: str, exc: BackendFailure) -> OperationResult:
        logger.error("Backend failure during %s: %s", operation, exc, exc_info=exc)
        return OperationResult.failure(exc)
