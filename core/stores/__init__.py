"""Persistence ports and their PostgreSQL implementations."""

from core.stores.ports import (
    AttributeStore,
    AttributeValueStore,
    AuditSink,
    CatalogUnitOfWork,
    RelationStore,
)
from core.stores.postgres_stores import (
    PostgresAttributeStore,
    PostgresAttributeValueStore,
    PostgresRelationStore,
)
from core.stores.unit_of_work import PostgresUnitOfWork, postgres_uow_factory
