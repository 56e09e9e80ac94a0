"""Binding domain models.

A binding is the persisted fact "entity X has attribute Y set to Z", where Z
is either a value owned by Y (selectable attributes) or free text.
"""

from datetime import datetime
from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, Field, model_validator


class BindingScope(str, Enum):
    """Which kind of entity a binding describes."""

    PRODUCT = "PRODUCT"
    SKU = "SKU"


class BindingKey(NamedTuple):
    """Identity used when diffing desired against persisted bindings."""

    attribute_id: int
    value_id: int | None
    free_text: str | None


class AttributeAssignment(BaseModel):
    """
    One desired assignment submitted for reconciliation.

    Both value_id and free_text are optional here; which one must be present
    depends on the attribute's input kind and is checked by the validation
    engine, not by this model.
    """

    attribute_id: int = Field(..., ge=1)
    value_id: int | None = Field(None, ge=1)
    free_text: str | None = Field(None, max_length=255)

    @property
    def has_text(self) -> bool:
        return self.free_text is not None and bool(self.free_text.strip())

    @property
    def is_empty(self) -> bool:
        """Neither a value nor non-blank text was supplied."""
        return self.value_id is None and not self.has_text


class BindingCreate(BaseModel):
    """A resolved binding ready to insert."""

    scope: BindingScope
    entity_id: int
    attribute_id: int
    value_id: int | None = None
    free_text: str | None = None

    @model_validator(mode="after")
    def validate_exactly_one(self) -> "BindingCreate":
        """Exactly one of value_id and free_text is populated."""
        if (self.value_id is None) == (self.free_text is None):
            raise ValueError("Binding needs exactly one of value_id or free_text")
        return self

    @property
    def key(self) -> BindingKey:
        return BindingKey(self.attribute_id, self.value_id, self.free_text)


class Binding(BaseModel):
    """Full binding as stored."""

    id: int
    scope: BindingScope
    entity_id: int
    attribute_id: int
    value_id: int | None
    free_text: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def key(self) -> BindingKey:
        return BindingKey(self.attribute_id, self.value_id, self.free_text)


class ReconcileResult(BaseModel):
    """What one reconciliation call changed."""

    scope: BindingScope
    entity_id: int
    inserted: list[BindingCreate] = Field(default_factory=list)
    deleted: list[Binding] = Field(default_factory=list)
    unchanged: list[Binding] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.deleted)
