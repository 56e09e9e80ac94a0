"""
Typed exceptions for catalog and reconciliation failures.

Every business rejection is a CatalogError carrying a machine-readable code.
Database errors are not wrapped here; they propagate as psycopg2 errors after
the unit of work has rolled back, so callers can tell "you asked for
something invalid" from "the infrastructure failed".
"""

from dataclasses import dataclass
from enum import Enum


class CatalogError(Exception):
    """Base class for catalog business rule violations."""

    code = "CATALOG_ERROR"


class AttributeNotFoundError(CatalogError):
    """One or more referenced attribute definitions do not exist."""

    code = "ATTRIBUTE_NOT_FOUND"

    def __init__(self, attribute_ids: int | list[int]):
        if isinstance(attribute_ids, int):
            attribute_ids = [attribute_ids]
        self.attribute_ids = sorted(attribute_ids)
        ids = ", ".join(str(i) for i in self.attribute_ids)
        super().__init__(f"Attribute not found: {ids}")


class AttributeValueNotFoundError(CatalogError):
    """Value does not exist, or is not owned by the stated attribute."""

    code = "ATTRIBUTE_VALUE_NOT_FOUND"

    def __init__(self, value_id: int, attribute_id: int | None = None):
        self.value_id = value_id
        self.attribute_id = attribute_id
        if attribute_id is None:
            message = f"Attribute value {value_id} not found"
        else:
            message = f"Attribute value {value_id} not found for attribute {attribute_id}"
        super().__init__(message)


class DuplicateNameError(CatalogError):
    """Attribute name already in use."""

    code = "ATTRIBUTE_NAME_DUPLICATED"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Attribute name '{name}' already exists")


class AttributeStillReferencedError(CatalogError):
    """
    Attribute cannot be deleted while bindings reference it.

    entity_ids is a sample (bounded by CatalogConfig.reference_sample_limit),
    not the full list.
    """

    code = "ATTRIBUTE_IS_REFERENCED"

    def __init__(self, attribute_id: int, entity_ids: list[int] | None = None):
        self.attribute_id = attribute_id
        self.entity_ids = entity_ids or []
        super().__init__(f"Attribute {attribute_id} is still referenced by bindings")


class AttributeValueStillReferencedError(CatalogError):
    """Attribute value cannot be removed while bindings reference it."""

    code = "ATTRIBUTE_VALUE_IS_REFERENCED"

    def __init__(self, value_id: int):
        self.value_id = value_id
        super().__init__(f"Attribute value {value_id} is still referenced by bindings")


class InvalidAttributeDefinitionError(CatalogError):
    """A definition change would break the kind/input rules."""

    code = "INVALID_ATTRIBUTE_DEFINITION"


class ViolationKind(str, Enum):
    """Why a single desired assignment was rejected."""

    ATTRIBUTE_TYPE_NOT_SKU = "ATTRIBUTE_TYPE_NOT_SKU"
    INVALID_INPUT_FOR_SELECT_TYPE = "INVALID_INPUT_FOR_SELECT_TYPE"
    INVALID_INPUT_FOR_FREE_TEXT = "INVALID_INPUT_FOR_FREE_TEXT"
    ATTRIBUTE_VALUE_NOT_FOUND = "ATTRIBUTE_VALUE_NOT_FOUND"
    REQUIRED_VALUE_EMPTY = "REQUIRED_VALUE_EMPTY"
    MULTIPLE_VALUES_NOT_ALLOWED = "MULTIPLE_VALUES_NOT_ALLOWED"


@dataclass(frozen=True)
class Violation:
    """One rejected assignment, localized to its attribute."""

    kind: ViolationKind
    attribute_id: int
    message: str
    value_id: int | None = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "attribute_id": self.attribute_id,
            "value_id": self.value_id,
            "message": self.message,
        }


class BindingValidationError(CatalogError):
    """
    Aggregate rejection of a reconciliation call.

    Carries every violation found across the submitted assignments so the
    caller can fix them all in one round trip. Nothing was written.
    """

    code = "BINDING_VALIDATION_FAILED"

    def __init__(self, violations: list[Violation]):
        self.violations = list(violations)
        summary = "; ".join(
            f"attribute {v.attribute_id}: {v.kind.value}" for v in self.violations
        )
        super().__init__(f"{len(self.violations)} invalid assignment(s): {summary}")

    @property
    def kinds(self) -> set[ViolationKind]:
        return {v.kind for v in self.violations}

    def for_attribute(self, attribute_id: int) -> list[Violation]:
        return [v for v in self.violations if v.attribute_id == attribute_id]
