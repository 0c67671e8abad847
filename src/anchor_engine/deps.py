"""Dependency injection singletons for Anchor-Engine."""

from anchor_engine.common.config import get_settings
from anchor_engine.common.database import DatabaseManager
from anchor_engine.anchors.service import AnchorLifecycleService
from anchor_engine.anchors.store import SqlAnchorStore
from anchor_engine.audit.service import AuditService
from anchor_engine.bulk.engine import BatchAnchoringEngine
from anchor_engine.registry.service import RegistryService
from anchor_engine.verification.resolver import VerificationResolver

_db: DatabaseManager | None = None
_store: SqlAnchorStore | None = None
_audit: AuditService | None = None
_lifecycle: AnchorLifecycleService | None = None
_batch: BatchAnchoringEngine | None = None
_resolver: VerificationResolver | None = None
_registry: RegistryService | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_anchor_store() -> SqlAnchorStore:
    global _store
    if _store is None:
        _store = SqlAnchorStore()
    return _store


def get_audit_service() -> AuditService:
    global _audit
    if _audit is None:
        _audit = AuditService(get_settings())
    return _audit


def get_lifecycle_service() -> AnchorLifecycleService:
    global _lifecycle
    if _lifecycle is None:
        _lifecycle = AnchorLifecycleService(
            get_settings(),
            get_anchor_store(),
            audit_sink=get_audit_service(),
        )
    return _lifecycle


def get_batch_engine() -> BatchAnchoringEngine:
    global _batch
    if _batch is None:
        _batch = BatchAnchoringEngine(
            get_settings(),
            get_anchor_store(),
            get_lifecycle_service(),
            get_audit_service(),
        )
    return _batch


def get_verification_resolver() -> VerificationResolver:
    global _resolver
    if _resolver is None:
        _resolver = VerificationResolver(get_lifecycle_service())
    return _resolver


def get_registry_service() -> RegistryService:
    global _registry
    if _registry is None:
        _registry = RegistryService(get_anchor_store())
    return _registry


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _store, _audit, _lifecycle, _batch, _resolver, _registry
    _db = None
    _store = None
    _audit = None
    _lifecycle = None
    _batch = None
    _resolver = None
    _registry = None
