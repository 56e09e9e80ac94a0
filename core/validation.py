"""
Validation engine for desired attribute assignments.

Pure and stateless: every function here takes the assignment, the attribute
definition and the ids of the values that definition owns, and returns a
result. Nothing touches the database.

Rules per assignment, first violation wins:

1. SKU-scoped reconciliation only accepts attributes of kind SKU.
2. Selectable attributes need a value_id owned by the attribute and no text.
3. Free-text attributes take no value_id.
4. Required attributes need a value_id or non-blank text.

Across assignments, a single-valued attribute (SINGLE_SELECT or FREE_TEXT)
may resolve to at most one binding per entity.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import assert_never

from core.exceptions import Violation, ViolationKind
from core.models import (
    AttributeAssignment,
    AttributeDefinition,
    AttributeKind,
    BindingScope,
    InputKind,
)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome for one assignment: valid, or exactly one violation."""

    violation: Violation | None = None

    @property
    def is_valid(self) -> bool:
        return self.violation is None


VALID = ValidationResult()


def _reject(
    kind: ViolationKind,
    assignment: AttributeAssignment,
    message: str,
) -> ValidationResult:
    return ValidationResult(
        Violation(
            kind=kind,
            attribute_id=assignment.attribute_id,
            value_id=assignment.value_id,
            message=message,
        )
    )


def _check_selectable(
    assignment: AttributeAssignment,
    definition: AttributeDefinition,
    owned_value_ids: set[int],
) -> ValidationResult:
    if assignment.has_text:
        return _reject(
            ViolationKind.INVALID_INPUT_FOR_SELECT_TYPE,
            assignment,
            f"'{definition.name}' is {definition.input_kind.value}; pick a value instead of free text",
        )
    if assignment.value_id is None:
        if definition.required:
            return _reject(
                ViolationKind.REQUIRED_VALUE_EMPTY,
                assignment,
                f"'{definition.name}' is required",
            )
        return VALID
    if assignment.value_id not in owned_value_ids:
        return _reject(
            ViolationKind.ATTRIBUTE_VALUE_NOT_FOUND,
            assignment,
            f"Value {assignment.value_id} does not belong to '{definition.name}'",
        )
    return VALID


def _check_free_text(
    assignment: AttributeAssignment,
    definition: AttributeDefinition,
) -> ValidationResult:
    if assignment.value_id is not None:
        return _reject(
            ViolationKind.INVALID_INPUT_FOR_FREE_TEXT,
            assignment,
            f"'{definition.name}' is FREE_TEXT; value ids are not accepted",
        )
    if definition.required and not assignment.has_text:
        return _reject(
            ViolationKind.REQUIRED_VALUE_EMPTY,
            assignment,
            f"'{definition.name}' is required",
        )
    return VALID


def validate(
    assignment: AttributeAssignment,
    definition: AttributeDefinition,
    scope: BindingScope,
    owned_value_ids: set[int],
) -> ValidationResult:
    """
    Check one assignment against its attribute definition.

    Args:
        assignment: Desired assignment
        definition: Definition for assignment.attribute_id
        scope: Whether a product or a SKU is being reconciled
        owned_value_ids: Ids of the values owned by the definition

    Returns:
        VALID, or a ValidationResult carrying the first violation found.
    """
    if scope == BindingScope.SKU and definition.attribute_kind != AttributeKind.SKU:
        return _reject(
            ViolationKind.ATTRIBUTE_TYPE_NOT_SKU,
            assignment,
            f"'{definition.name}' is {definition.attribute_kind.value}, not a SKU attribute",
        )

    match definition.input_kind:
        case InputKind.SINGLE_SELECT | InputKind.MULTI_SELECT:
            return _check_selectable(assignment, definition, owned_value_ids)
        case InputKind.FREE_TEXT:
            return _check_free_text(assignment, definition)
        case _:
            assert_never(definition.input_kind)


def _check_cardinality(
    assignments: Iterable[AttributeAssignment],
    definitions: Mapping[int, AttributeDefinition],
) -> list[Violation]:
    """Single-valued attributes may not receive two different values in one call."""
    seen: dict[int, set[tuple]] = {}
    for assignment in assignments:
        if assignment.is_empty:
            continue
        text = assignment.free_text.strip() if assignment.has_text else None
        seen.setdefault(assignment.attribute_id, set()).add((assignment.value_id, text))

    violations = []
    for attribute_id, keys in seen.items():
        definition = definitions[attribute_id]
        if definition.input_kind == InputKind.MULTI_SELECT or len(keys) < 2:
            continue
        violations.append(
            Violation(
                kind=ViolationKind.MULTIPLE_VALUES_NOT_ALLOWED,
                attribute_id=attribute_id,
                message=f"'{definition.name}' accepts a single value, got {len(keys)}",
            )
        )
    return violations


def validate_all(
    assignments: list[AttributeAssignment],
    definitions: Mapping[int, AttributeDefinition],
    scope: BindingScope,
    owned_value_ids: Mapping[int, set[int]],
) -> list[Violation]:
    """
    Validate every assignment and collect all violations.

    Every assignment is evaluated even after an earlier one failed. The
    cardinality check only looks at assignments that passed on their own,
    so a bad value is reported once rather than twice.

    Args:
        assignments: Desired assignments for one entity
        definitions: Definitions keyed by attribute id; must cover every
            attribute_id in assignments
        scope: Whether a product or a SKU is being reconciled
        owned_value_ids: Owned value ids keyed by attribute id

    Returns:
        List of violations, empty when the whole set is valid.
    """
    violations = []
    passed = []
    for assignment in assignments:
        result = validate(
            assignment,
            definitions[assignment.attribute_id],
            scope,
            owned_value_ids.get(assignment.attribute_id, set()),
        )
        if result.is_valid:
            passed.append(assignment)
        else:
            violations.append(result.violation)

    violations.extend(_check_cardinality(passed, definitions))
    return violations
