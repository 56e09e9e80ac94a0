"""
Domain events for the attribute catalog.

Immutable event objects published after a catalog change has committed.
The entity-management side subscribes (e.g. to refresh a search projection
when an entity's bindings change) without the catalog knowing who listens.

Event Categories:
- AttributeEvent: definition lifecycle (defined, updated, deleted)
- BindingEvent: an entity's bindings were reconciled

Events carry the full domain object so handlers don't need to re-fetch state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class CatalogEvent:
    """Base class for all catalog domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)
    request_id: str | None = None


# =============================================================================
# ATTRIBUTE EVENTS
# =============================================================================


@dataclass(frozen=True)
class AttributeEvent(CatalogEvent):
    """Events related to attribute definition lifecycle."""
    pass


@dataclass(frozen=True)
class AttributeDefined(AttributeEvent):
    """A new attribute definition was created."""
    attribute: Any = None  # AttributeDefinition


@dataclass(frozen=True)
class AttributeUpdated(AttributeEvent):
    """An attribute definition changed."""
    attribute: Any = None
    changes: dict = field(default_factory=dict)


@dataclass(frozen=True)
class AttributeDeleted(AttributeEvent):
    """An attribute definition and its values were deleted."""
    attribute: Any = None


# =============================================================================
# BINDING EVENTS
# =============================================================================


@dataclass(frozen=True)
class BindingEvent(CatalogEvent):
    """Events related to entity bindings."""
    pass


@dataclass(frozen=True)
class BindingsReconciled(BindingEvent):
    """
    An entity's bindings changed.

    Only published when the reconciliation inserted or deleted rows; an
    idempotent repeat call publishes nothing.
    """
    result: Any = None  # ReconcileResult
