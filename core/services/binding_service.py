"""
Binding reconciliation service.

Given an entity and the full list of attribute assignments the caller wants
it to have, validate every assignment, diff against what is stored and apply
only the inserts and deletes needed, all in one transaction.

The desired list is authoritative for exactly the attribute ids it mentions.
Bindings for attributes that do not appear in the call are never read for
the diff and never touched. Within a mentioned attribute the stored rows are
replaced by the desired set: rows with an identical key stay (keeping their
created_at), new keys are inserted and stale keys are deleted. Running the
same call twice writes nothing the second time.
"""

import logging
from typing import Callable, NamedTuple

from core.audit import AuditAction
from core.event_bus import EventBus
from core.events import BindingsReconciled
from core.exceptions import AttributeNotFoundError, BindingValidationError
from core.models import (
    AttributeAssignment,
    AttributeDefinition,
    Binding,
    BindingCreate,
    BindingKey,
    BindingScope,
    ReconcileResult,
)
from core.stores.ports import CatalogUnitOfWork
from core.validation import validate_all
from utils.request_context import RequestContext

logger = logging.getLogger(__name__)


class BindingDiff(NamedTuple):
    """Writes needed to turn the current rows into the desired set."""

    to_insert: list[BindingCreate]
    to_delete: list[Binding]
    unchanged: list[Binding]


def diff_bindings(desired: list[BindingCreate], current: list[Binding]) -> BindingDiff:
    """
    Compare desired and stored bindings by (attribute_id, value_id, free_text).

    Set semantics on both sides: duplicate desired entries collapse, and a
    duplicated stored row keeps its oldest copy and deletes the rest.
    """
    wanted: dict[BindingKey, BindingCreate] = {}
    for binding in desired:
        wanted.setdefault(binding.key, binding)

    kept: dict[BindingKey, Binding] = {}
    to_delete = []
    for binding in sorted(current, key=lambda b: b.id):
        if binding.key in wanted and binding.key not in kept:
            kept[binding.key] = binding
        else:
            to_delete.append(binding)

    to_insert = [b for key, b in wanted.items() if key not in kept]
    return BindingDiff(to_insert, to_delete, list(kept.values()))


def _to_binding(
    scope: BindingScope,
    entity_id: int,
    assignment: AttributeAssignment,
    definition: AttributeDefinition,
) -> BindingCreate | None:
    """Resolved row for a validated assignment; None for a clear request.

    Free text is stored stripped, so surrounding whitespace never makes a
    new key.
    """
    if assignment.is_empty:
        return None
    if definition.is_selectable:
        return BindingCreate(
            scope=scope,
            entity_id=entity_id,
            attribute_id=assignment.attribute_id,
            value_id=assignment.value_id,
        )
    return BindingCreate(
        scope=scope,
        entity_id=entity_id,
        attribute_id=assignment.attribute_id,
        free_text=assignment.free_text.strip(),
    )


class BindingReconciler:
    """Service that keeps an entity's bindings equal to a desired set."""

    def __init__(
        self,
        uow_factory: Callable[[RequestContext], CatalogUnitOfWork],
        event_bus: EventBus | None = None,
    ):
        self.uow_factory = uow_factory
        self.event_bus = event_bus

    def reconcile(
        self,
        ctx: RequestContext,
        scope: BindingScope,
        entity_id: int,
        assignments: list[AttributeAssignment],
    ) -> ReconcileResult:
        """
        Make the entity's bindings for the mentioned attributes match assignments.

        Args:
            ctx: Acting user
            scope: PRODUCT or SKU; SKU only accepts SKU-kind attributes
            entity_id: Product or SKU id
            assignments: Desired assignments. An assignment with neither a
                value nor text clears that attribute unless it is required.

        Returns:
            What was inserted, deleted and left alone.

        Raises:
            AttributeNotFoundError: Any referenced attribute is missing
            BindingValidationError: One or more assignments are invalid;
                carries every violation
        """
        result = ReconcileResult(scope=scope, entity_id=entity_id)
        if not assignments:
            logger.info(f"No attribute assignments for {scope.value} {entity_id}, nothing to do")
            return result

        attribute_ids = sorted({a.attribute_id for a in assignments})

        with self.uow_factory(ctx) as uow:
            uow.lock_entity(scope, entity_id)

            definitions = {d.id: d for d in uow.attributes.find_by_ids(attribute_ids)}
            missing = [i for i in attribute_ids if i not in definitions]
            if missing:
                logger.warning(f"Reconcile {scope.value} {entity_id} references unknown attributes {missing}")
                raise AttributeNotFoundError(missing)

            owned_value_ids: dict[int, set[int]] = {}
            selectable_ids = [i for i in attribute_ids if definitions[i].is_selectable]
            for value in uow.values.list_by_attributes(selectable_ids):
                owned_value_ids.setdefault(value.attribute_id, set()).add(value.id)

            violations = validate_all(assignments, definitions, scope, owned_value_ids)
            if violations:
                logger.warning(
                    f"Rejected reconcile of {scope.value} {entity_id}: "
                    f"{len(violations)} violation(s) on attributes "
                    f"{sorted({v.attribute_id for v in violations})}"
                )
                raise BindingValidationError(violations)

            desired = []
            for assignment in assignments:
                binding = _to_binding(scope, entity_id, assignment, definitions[assignment.attribute_id])
                if binding is not None:
                    desired.append(binding)
            current = uow.relations.find_by_entity_and_attributes(scope, entity_id, attribute_ids)
            diff = diff_bindings(desired, current)

            if not diff.to_insert and not diff.to_delete:
                logger.info(f"Bindings of {scope.value} {entity_id} already up to date")
                return result.model_copy(update={"unchanged": diff.unchanged})

            uow.relations.batch_delete([b.id for b in diff.to_delete])
            uow.relations.batch_insert(diff.to_insert)

            result = result.model_copy(update={
                "inserted": diff.to_insert,
                "deleted": diff.to_delete,
                "unchanged": diff.unchanged,
            })
            uow.audit.log_change(
                ctx,
                entity_type="binding",
                entity_id=f"{scope.value}:{entity_id}",
                action=AuditAction.RECONCILE,
                changes={
                    "attribute_ids": attribute_ids,
                    "inserted": [b.model_dump(mode="json") for b in diff.to_insert],
                    "deleted": [b.model_dump(mode="json") for b in diff.to_delete],
                },
            )
            uow.commit()

        logger.info(
            f"Reconciled {scope.value} {entity_id}: {len(result.inserted)} inserted, "
            f"{len(result.deleted)} deleted, {len(result.unchanged)} unchanged"
        )
        if self.event_bus is not None:
            self.event_bus.publish(BindingsReconciled(result=result, request_id=ctx.request_id))
        return result

    def list_bindings(self, scope: BindingScope, entity_id: int) -> list[Binding]:
        """Every binding stored for an entity, grouped by attribute."""
        with self.uow_factory(RequestContext.system()) as uow:
            return uow.relations.list_by_entity(scope, entity_id)
