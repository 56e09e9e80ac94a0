"""Attribute definition and attribute value domain models.

An attribute definition declares one describable property (e.g. "Color")
and how values are captured for it. Selectable attributes own an ordered
list of admissible values; free-text attributes own none.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class AttributeKind(str, Enum):
    """What the attribute describes."""

    SKU = "SKU"      # Distinguishes SKUs of one product (size, color)
    SALE = "SALE"    # Shown at sale time, not a SKU axis
    OTHER = "OTHER"  # Descriptive only


class InputKind(str, Enum):
    """How a value is captured for the attribute."""

    FREE_TEXT = "FREE_TEXT"
    SINGLE_SELECT = "SINGLE_SELECT"
    MULTI_SELECT = "MULTI_SELECT"

    @property
    def is_selectable(self) -> bool:
        return self is not InputKind.FREE_TEXT


def check_kind_rules(
    attribute_kind: AttributeKind,
    input_kind: InputKind,
    has_values: bool = False,
) -> str | None:
    """
    Return a message if the kind/input combination is not allowed.

    Shared by the create model and the catalog's update path, which has to
    check the merged (stored + patch) state.
    """
    if attribute_kind == AttributeKind.SKU and input_kind == InputKind.FREE_TEXT:
        return "SKU attributes must be selectable, not FREE_TEXT"
    if input_kind == InputKind.FREE_TEXT and has_values:
        return "FREE_TEXT attributes cannot own values"
    return None


class AttributeValueCreate(BaseModel):
    """Data required to add a value to a selectable attribute."""

    value: str = Field(..., min_length=1, max_length=255)
    sort_score: int = 0


class AttributeValue(BaseModel):
    """Full attribute value as stored."""

    id: int
    attribute_id: int
    value: str
    sort_score: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AttributeDefinitionCreate(BaseModel):
    """Data required to define an attribute, optionally with initial values."""

    name: str = Field(..., min_length=1, max_length=64)
    sort_score: int = 0
    visible: bool = True
    attribute_kind: AttributeKind
    input_kind: InputKind
    required: bool = False
    searchable: bool = False
    values: list[AttributeValueCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_kinds(self) -> "AttributeDefinitionCreate":
        """Reject SKU free-text attributes and values on free-text attributes."""
        if not self.name.strip():
            raise ValueError("name must not be blank")
        problem = check_kind_rules(self.attribute_kind, self.input_kind, bool(self.values))
        if problem:
            raise ValueError(problem)
        return self


class AttributeDefinitionUpdate(BaseModel):
    """Fields that can be changed on a definition. None means leave unchanged."""

    name: str | None = Field(None, min_length=1, max_length=64)
    sort_score: int | None = None
    visible: bool | None = None
    attribute_kind: AttributeKind | None = None
    input_kind: InputKind | None = None
    required: bool | None = None
    searchable: bool | None = None


class AttributeDefinition(BaseModel):
    """Full attribute definition as stored."""

    id: int
    name: str
    sort_score: int
    visible: bool
    attribute_kind: AttributeKind
    input_kind: InputKind
    required: bool
    searchable: bool
    created_at: datetime
    updated_at: datetime
    # Only populated by AttributeCatalog.get_attribute_with_values
    values: list[AttributeValue] = Field(default_factory=list)

    model_config = {"from_attributes": True}

    @property
    def is_selectable(self) -> bool:
        return self.input_kind.is_selectable
