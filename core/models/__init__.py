"""Core domain models."""

from core.models.attribute import (
    AttributeKind,
    InputKind,
    AttributeDefinition,
    AttributeDefinitionCreate,
    AttributeDefinitionUpdate,
    AttributeValue,
    AttributeValueCreate,
    check_kind_rules,
)
from core.models.binding import (
    AttributeAssignment,
    Binding,
    BindingCreate,
    BindingKey,
    BindingScope,
    ReconcileResult,
)

__all__ = [
    # Attribute
    "AttributeKind", "InputKind",
    "AttributeDefinition", "AttributeDefinitionCreate", "AttributeDefinitionUpdate",
    "AttributeValue", "AttributeValueCreate", "check_kind_rules",
    # Binding
    "AttributeAssignment", "Binding", "BindingCreate", "BindingKey",
    "BindingScope", "ReconcileResult",
]
