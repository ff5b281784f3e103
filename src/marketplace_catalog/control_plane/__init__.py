"""Catalog control plane: the sole path for catalog and account side effects.

Modules:
    session: Explicit per-caller session context (anonymous / authenticated)
    audit_trail: Append-only audit event journal
    results: OperationResult returned by every guarded operation
    pipeline: CatalogPipeline (sole store accessor for mutations)
    auth: AuthService (register / login / logout)
"""
