"""
Attribute catalog service.

Owns attribute definitions and their enumerated values: name uniqueness,
the kind/input rules, value ownership and deletion safety. Bindings are
never written here; the catalog only reads them to refuse unsafe deletes.
"""

import logging
from typing import Callable

from core.audit import AuditAction, compute_changes
from core.config import CatalogConfig
from core.event_bus import EventBus
from core.events import AttributeDefined, AttributeDeleted, AttributeUpdated
from core.exceptions import (
    AttributeNotFoundError,
    AttributeStillReferencedError,
    AttributeValueNotFoundError,
    AttributeValueStillReferencedError,
    DuplicateNameError,
    InvalidAttributeDefinitionError,
)
from core.models import (
    AttributeDefinition,
    AttributeDefinitionCreate,
    AttributeDefinitionUpdate,
    AttributeKind,
    AttributeValue,
    AttributeValueCreate,
    BindingScope,
    InputKind,
    check_kind_rules,
)
from core.stores.ports import CatalogUnitOfWork
from utils.request_context import RequestContext

logger = logging.getLogger(__name__)


class AttributeCatalog:
    """Service for attribute definition and value operations."""

    def __init__(
        self,
        uow_factory: Callable[[RequestContext], CatalogUnitOfWork],
        event_bus: EventBus | None = None,
        config: CatalogConfig | None = None,
    ):
        self.uow_factory = uow_factory
        self.event_bus = event_bus
        self.config = config or CatalogConfig()

    def _publish(self, event) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(event)

    def _check_name(self, uow: CatalogUnitOfWork, name: str, current_id: int | None = None) -> None:
        if len(name) > self.config.max_name_length:
            raise InvalidAttributeDefinitionError(
                f"Attribute name exceeds {self.config.max_name_length} characters"
            )
        existing = uow.attributes.find_by_name(name)
        if existing is not None and existing.id != current_id:
            raise DuplicateNameError(name)

    @staticmethod
    def _require(uow: CatalogUnitOfWork, attribute_id: int) -> AttributeDefinition:
        attribute = uow.attributes.find_by_id(attribute_id)
        if attribute is None:
            logger.error(f"Attribute not found, id: {attribute_id}")
            raise AttributeNotFoundError(attribute_id)
        return attribute

    def define_attribute(
        self,
        ctx: RequestContext,
        data: AttributeDefinitionCreate,
    ) -> AttributeDefinition:
        """
        Define a new attribute, with its initial values if any.

        Args:
            ctx: Acting user
            data: Definition data

        Returns:
            Stored definition with its values loaded.

        Raises:
            DuplicateNameError: Name already in use
            InvalidAttributeDefinitionError: Name longer than configured
        """
        with self.uow_factory(ctx) as uow:
            self._check_name(uow, data.name)

            attribute = uow.attributes.insert(data)
            values = [uow.values.insert(attribute.id, v) for v in data.values]
            attribute = attribute.model_copy(update={"values": values})

            uow.audit.log_change(
                ctx,
                entity_type="attribute",
                entity_id=attribute.id,
                action=AuditAction.CREATE,
                changes={"created": attribute.model_dump(mode="json")},
            )
            uow.commit()

        logger.info(f"Attribute defined, id: {attribute.id}, name: {attribute.name}")
        self._publish(AttributeDefined(attribute=attribute, request_id=ctx.request_id))
        return attribute

    def update_attribute(
        self,
        ctx: RequestContext,
        attribute_id: int,
        patch: AttributeDefinitionUpdate,
    ) -> AttributeDefinition:
        """
        Apply the non-null fields of patch.

        Returns:
            Updated definition (unchanged definition if patch changes nothing)

        Raises:
            AttributeNotFoundError: Unknown id
            DuplicateNameError: New name already in use
            InvalidAttributeDefinitionError: Merged state breaks kind rules, or
                existing bindings would no longer fit it
        """
        with self.uow_factory(ctx) as uow:
            current = self._require(uow, attribute_id)

            updates = {
                field: value
                for field, value in patch.model_dump(exclude_none=True).items()
                if getattr(current, field) != value
            }
            if not updates:
                logger.info(f"No attribute field changed, id: {attribute_id}, name: {current.name}")
                return current

            if "name" in updates:
                self._check_name(uow, updates["name"], current_id=attribute_id)

            merged = current.model_copy(update=updates)
            has_values = bool(uow.values.list_by_attribute(attribute_id))
            problem = check_kind_rules(merged.attribute_kind, merged.input_kind, has_values)
            if problem:
                raise InvalidAttributeDefinitionError(problem)
            self._check_bound_switch(uow, current, merged)

            updated = uow.attributes.update(attribute_id, updates)

            changes = compute_changes(
                current.model_dump(mode="json", exclude={"values"}),
                updated.model_dump(mode="json", exclude={"values"}),
            )
            uow.audit.log_change(
                ctx,
                entity_type="attribute",
                entity_id=attribute_id,
                action=AuditAction.UPDATE,
                changes=changes,
            )
            uow.commit()

        logger.info(f"Attribute updated, id: {attribute_id}, fields: {sorted(changes)}")
        self._publish(AttributeUpdated(attribute=updated, changes=changes, request_id=ctx.request_id))
        return updated

    @staticmethod
    def _check_bound_switch(
        uow: CatalogUnitOfWork,
        current: AttributeDefinition,
        merged: AttributeDefinition,
    ) -> None:
        """Refuse kind changes that existing bindings could no longer satisfy."""
        attribute_id = current.id
        if merged.is_selectable != current.is_selectable and uow.relations.find_by_attribute(attribute_id, 1):
            # Existing bindings hold the other representation
            raise InvalidAttributeDefinitionError(
                f"Attribute {attribute_id} has bindings; cannot switch between FREE_TEXT and selectable"
            )
        if (
            current.input_kind == InputKind.MULTI_SELECT
            and merged.input_kind == InputKind.SINGLE_SELECT
            and uow.relations.has_multiple_per_entity(attribute_id)
        ):
            raise InvalidAttributeDefinitionError(
                f"Attribute {attribute_id} has entities with several values; cannot become SINGLE_SELECT"
            )
        if (
            current.attribute_kind == AttributeKind.SKU
            and merged.attribute_kind != AttributeKind.SKU
            and uow.relations.exists_in_scope(attribute_id, BindingScope.SKU)
        ):
            raise InvalidAttributeDefinitionError(
                f"Attribute {attribute_id} is bound to SKUs; cannot stop being a SKU attribute"
            )

    def delete_attribute(self, ctx: RequestContext, attribute_id: int) -> None:
        """
        Delete a definition and the values it owns.

        Raises:
            AttributeNotFoundError: Unknown id
            AttributeStillReferencedError: Bindings still use the attribute
        """
        with self.uow_factory(ctx) as uow:
            attribute = self._require(uow, attribute_id)

            references = uow.relations.find_by_attribute(
                attribute_id, self.config.reference_sample_limit
            )
            if references:
                entity_ids = sorted({b.entity_id for b in references})
                logger.error(
                    f"Attribute {attribute_id} is referenced, can not delete, entity ids: {entity_ids}"
                )
                raise AttributeStillReferencedError(attribute_id, entity_ids)

            values = uow.values.list_by_attribute(attribute_id)
            removed = uow.values.delete_by_attribute(attribute_id)
            if removed != len(values):
                raise RuntimeError(
                    f"Deleted {removed} values of attribute {attribute_id}, expected {len(values)}"
                )
            uow.attributes.delete(attribute_id)

            snapshot = attribute.model_copy(update={"values": values})
            uow.audit.log_change(
                ctx,
                entity_type="attribute",
                entity_id=attribute_id,
                action=AuditAction.DELETE,
                changes={"deleted": snapshot.model_dump(mode="json")},
            )
            uow.commit()

        logger.info(f"Attribute deleted, id: {attribute_id}, values removed: {removed}")
        self._publish(AttributeDeleted(attribute=snapshot, request_id=ctx.request_id))

    def get_attribute(self, attribute_id: int) -> AttributeDefinition:
        """
        Get a definition without its values.

        Raises:
            AttributeNotFoundError: Unknown id
        """
        with self.uow_factory(RequestContext.system()) as uow:
            return self._require(uow, attribute_id)

    def get_attribute_with_values(self, attribute_id: int) -> AttributeDefinition:
        """
        Get a definition with its owned values, best first.

        Free-text attributes come back with an empty values list.
        """
        with self.uow_factory(RequestContext.system()) as uow:
            attribute = self._require(uow, attribute_id)
            if not attribute.is_selectable:
                return attribute
            values = uow.values.list_by_attribute(attribute_id)
        return attribute.model_copy(update={"values": values})

    def list_attributes(self) -> list[AttributeDefinition]:
        """All definitions, highest sort_score first, then creation order."""
        with self.uow_factory(RequestContext.system()) as uow:
            return uow.attributes.list_all()

    def list_values(self, attribute_id: int) -> list[AttributeValue]:
        """
        Values owned by an attribute, highest sort_score first, ties by id.

        Raises:
            AttributeNotFoundError: Unknown id
        """
        return self.get_attribute_with_values(attribute_id).values

    def get_attribute_value(self, value_id: int) -> AttributeValue:
        """
        Get one attribute value.

        Raises:
            AttributeValueNotFoundError: Unknown id
        """
        with self.uow_factory(RequestContext.system()) as uow:
            value = uow.values.find_by_id(value_id)
        if value is None:
            logger.error(f"Attribute value not found, id: {value_id}")
            raise AttributeValueNotFoundError(value_id)
        return value

    def add_value(
        self,
        ctx: RequestContext,
        attribute_id: int,
        data: AttributeValueCreate,
    ) -> AttributeValue:
        """
        Add an admissible value to a selectable attribute.

        Raises:
            AttributeNotFoundError: Unknown attribute
            InvalidAttributeDefinitionError: Attribute is FREE_TEXT
        """
        with self.uow_factory(ctx) as uow:
            attribute = self._require(uow, attribute_id)
            if not attribute.is_selectable:
                raise InvalidAttributeDefinitionError(
                    f"Attribute {attribute_id} is FREE_TEXT and cannot own values"
                )

            value = uow.values.insert(attribute_id, data)

            uow.audit.log_change(
                ctx,
                entity_type="attribute_value",
                entity_id=value.id,
                action=AuditAction.CREATE,
                changes={"created": value.model_dump(mode="json")},
            )
            uow.commit()

        logger.info(f"Attribute value added, id: {value.id}, attribute id: {attribute_id}")
        return value

    def remove_value(self, ctx: RequestContext, attribute_id: int, value_id: int) -> None:
        """
        Remove a value from its owning attribute.

        Raises:
            AttributeNotFoundError: Unknown attribute
            AttributeValueNotFoundError: Value missing or owned by another attribute
            AttributeValueStillReferencedError: Bindings still use the value
        """
        with self.uow_factory(ctx) as uow:
            self._require(uow, attribute_id)

            value = uow.values.find_by_id(value_id)
            if value is None or value.attribute_id != attribute_id:
                raise AttributeValueNotFoundError(value_id, attribute_id)

            if uow.relations.exists_for_value(value_id):
                logger.error(f"Attribute value {value_id} is referenced, can not delete")
                raise AttributeValueStillReferencedError(value_id)

            uow.values.delete(value_id)

            uow.audit.log_change(
                ctx,
                entity_type="attribute_value",
                entity_id=value_id,
                action=AuditAction.DELETE,
                changes={"deleted": value.model_dump(mode="json")},
            )
            uow.commit()

        logger.info(f"Attribute value removed, id: {value_id}, attribute id: {attribute_id}")
