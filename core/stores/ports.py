"""Persistence ports the catalog and reconciler depend on.

No business rules live behind these interfaces. Stores stamp created_at and
updated_at themselves; callers never pass timestamps.
"""

from types import TracebackType
from typing import Any, Protocol, runtime_checkable

from core.audit import AuditAction
from core.models import (
    AttributeDefinition,
    AttributeDefinitionCreate,
    AttributeValue,
    AttributeValueCreate,
    Binding,
    BindingCreate,
    BindingScope,
)
from utils.request_context import RequestContext


@runtime_checkable
class AttributeStore(Protocol):
    """Attribute definition records."""

    def insert(self, data: AttributeDefinitionCreate) -> AttributeDefinition: ...

    def update(self, attribute_id: int, fields: dict[str, Any]) -> AttributeDefinition: ...

    def delete(self, attribute_id: int) -> bool: ...

    def find_by_id(self, attribute_id: int) -> AttributeDefinition | None: ...

    def find_by_ids(self, attribute_ids: list[int]) -> list[AttributeDefinition]: ...

    def find_by_name(self, name: str) -> AttributeDefinition | None: ...

    def list_all(self) -> list[AttributeDefinition]: ...


@runtime_checkable
class AttributeValueStore(Protocol):
    """Attribute value records, always owned by one definition."""

    def insert(self, attribute_id: int, data: AttributeValueCreate) -> AttributeValue: ...

    def delete(self, value_id: int) -> bool: ...

    def delete_by_attribute(self, attribute_id: int) -> int: ...

    def find_by_id(self, value_id: int) -> AttributeValue | None: ...

    def list_by_attribute(self, attribute_id: int) -> list[AttributeValue]: ...

    def list_by_attributes(self, attribute_ids: list[int]) -> list[AttributeValue]: ...


@runtime_checkable
class RelationStore(Protocol):
    """Binding records keyed by (scope, entity id, attribute id)."""

    def find_by_entity_and_attributes(
        self,
        scope: BindingScope,
        entity_id: int,
        attribute_ids: list[int],
    ) -> list[Binding]: ...

    def list_by_entity(self, scope: BindingScope, entity_id: int) -> list[Binding]: ...

    def batch_insert(self, bindings: list[BindingCreate]) -> list[Binding]: ...

    def batch_delete(self, binding_ids: list[int]) -> int: ...

    def find_by_attribute(self, attribute_id: int, limit: int) -> list[Binding]: ...

    def exists_for_value(self, value_id: int) -> bool: ...

    def exists_in_scope(self, attribute_id: int, scope: BindingScope) -> bool: ...

    def has_multiple_per_entity(self, attribute_id: int) -> bool:
        """True when some entity holds more than one binding for the attribute."""
        ...


@runtime_checkable
class AuditSink(Protocol):
    """Where audit entries go; AuditLogger in production."""

    def log_change(
        self,
        ctx: RequestContext,
        entity_type: str,
        entity_id: int | str,
        action: AuditAction,
        changes: dict[str, Any],
    ) -> None: ...


@runtime_checkable
class CatalogUnitOfWork(Protocol):
    """
    One transaction around the catalog stores.

    Leaving the with-block without commit(), or with an exception, rolls
    everything back.
    """

    attributes: AttributeStore
    values: AttributeValueStore
    relations: RelationStore
    audit: AuditSink

    def __enter__(self) -> "CatalogUnitOfWork": ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def lock_entity(self, scope: BindingScope, entity_id: int) -> None:
        """Block until no other transaction holds this entity's lock."""
        ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
