"""
Audit trail for catalog changes.

Every definition, value and binding change is logged here, inside the same
transaction as the change itself, so an audit row exists exactly when the
change committed. The log is append-only and attributed to the user from the
RequestContext that made the call.
"""

from enum import Enum
from typing import Any

from psycopg2.extras import Json

from utils.request_context import RequestContext
from utils.timezone import now_utc


class AuditAction(Enum):
    """Type of change made to an entity."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    RECONCILE = "reconcile"


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Compute changes between two entity states.

    Args:
        old: Previous state of entity
        new: New state of entity
        exclude_fields: Fields to ignore (defaults to {"updated_at"})

    Returns:
        Dict of {field: {"old": old_val, "new": new_val}} for changed fields.
        Empty dict if no changes.
    """
    exclude = exclude_fields or {"updated_at"}
    changes = {}

    for key in sorted(set(old) | set(new)):
        if key in exclude:
            continue
        if old.get(key) != new.get(key):
            changes[key] = {"old": old.get(key), "new": new.get(key)}

    return changes


class AuditLogger:
    """
    Writes audit rows through whatever executor it was built with.

    Built with a PostgresTransaction by PostgresUnitOfWork, so entries share
    the transaction of the change they describe.

    IMPORTANT: pass model_dump(mode="json") output in changes, never models.

    Usage:
        uow.audit.log_change(
            ctx,
            entity_type="attribute",
            entity_id=attribute.id,
            action=AuditAction.CREATE,
            changes={"created": attribute.model_dump(mode="json")}
        )
    """

    def __init__(self, db):
        self.db = db

    def log_change(
        self,
        ctx: RequestContext,
        entity_type: str,
        entity_id: int | str,
        action: AuditAction,
        changes: dict[str, Any],
    ) -> None:
        """
        Log an entity change.

        Args:
            ctx: Request context of the acting user
            entity_type: "attribute", "attribute_value" or "binding"
            entity_id: Id of the entity; "<scope>:<id>" for binding sets
            action: The action performed
            changes: The changes made (format depends on action)

        Changes format by action:
        - CREATE: {"created": {full entity data}}
        - UPDATE: {"field": {"old": old_val, "new": new_val}, ...}
        - DELETE: {"deleted": {full entity data at deletion}}
        - RECONCILE: {"inserted": [...], "deleted": [...]}
        """
        self.db.execute(
            """
            INSERT INTO audit_log (user_id, request_id, entity_type, entity_id, action, changes, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (
                ctx.user_id,
                ctx.request_id,
                entity_type,
                str(entity_id),
                action.value,
                Json(changes),
                now_utc()
            )
        )

    def get_entity_history(
        self,
        entity_type: str,
        entity_id: int | str
    ) -> list[dict[str, Any]]:
        """
        Get full audit history for an entity, newest first.
        """
        return self.db.execute(
            """
            SELECT id, user_id, request_id, entity_type, entity_id, action, changes, created_at
            FROM audit_log
            WHERE entity_type = %s AND entity_id = %s
            ORDER BY created_at DESC, id DESC
            """,
            (entity_type, str(entity_id))
        )
