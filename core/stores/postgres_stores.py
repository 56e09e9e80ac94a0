"""
PostgreSQL implementations of the catalog stores.

Each store wraps an executor (PostgresTransaction inside a unit of work,
or PostgresClient for one-off reads) and speaks plain SQL against the tables
in schema/catalog.sql. Where a database constraint is itself the business
rule (unique name, referenced rows), the psycopg2 error is translated into
the matching CatalogError; every other database error propagates.
"""

import logging
from typing import Any

from psycopg2 import errors as pg_errors

from core.exceptions import (
    AttributeStillReferencedError,
    AttributeValueStillReferencedError,
    DuplicateNameError,
)
from core.models import (
    AttributeDefinition,
    AttributeDefinitionCreate,
    AttributeValue,
    AttributeValueCreate,
    Binding,
    BindingCreate,
    BindingScope,
)
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_ATTRIBUTE_COLUMNS = {
    "name", "sort_score", "visible", "attribute_kind",
    "input_kind", "required", "searchable",
}

# Definitions and values sort the same way: higher score first, then
# creation order.
_ORDER = "ORDER BY sort_score DESC, id ASC"


class PostgresAttributeStore:
    """attribute_definitions table."""

    def __init__(self, db):
        self.db = db

    def insert(self, data: AttributeDefinitionCreate) -> AttributeDefinition:
        now = now_utc()
        try:
            row = self.db.execute_returning(
                """
                INSERT INTO attribute_definitions (
                    name, sort_score, visible, attribute_kind, input_kind,
                    required, searchable, created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s, %s,
                    %s, %s, %s, %s
                )
                RETURNING *
                """,
                (
                    data.name, data.sort_score, data.visible,
                    data.attribute_kind.value, data.input_kind.value,
                    data.required, data.searchable, now, now
                )
            )[0]
        except pg_errors.UniqueViolation as e:
            raise DuplicateNameError(data.name) from e
        return AttributeDefinition.model_validate(row)

    def update(self, attribute_id: int, fields: dict[str, Any]) -> AttributeDefinition:
        unknown = set(fields) - _ATTRIBUTE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown attribute columns: {sorted(unknown)}")

        set_parts = []
        params = []
        for column, value in fields.items():
            set_parts.append(f"{column} = %s")
            params.append(getattr(value, "value", value))
        set_parts.append("updated_at = %s")
        params.append(now_utc())
        params.append(attribute_id)

        try:
            row = self.db.execute_returning(
                f"""
                UPDATE attribute_definitions
                SET {', '.join(set_parts)}
                WHERE id = %s
                RETURNING *
                """,
                tuple(params)
            )[0]
        except pg_errors.UniqueViolation as e:
            raise DuplicateNameError(fields.get("name", "")) from e
        return AttributeDefinition.model_validate(row)

    def delete(self, attribute_id: int) -> bool:
        try:
            rows = self.db.execute_returning(
                "DELETE FROM attribute_definitions WHERE id = %s RETURNING id",
                (attribute_id,)
            )
        except pg_errors.ForeignKeyViolation as e:
            # A binding was written after the reference check ran
            raise AttributeStillReferencedError(attribute_id) from e
        return bool(rows)

    def find_by_id(self, attribute_id: int) -> AttributeDefinition | None:
        row = self.db.execute_single(
            "SELECT * FROM attribute_definitions WHERE id = %s",
            (attribute_id,)
        )
        return AttributeDefinition.model_validate(row) if row else None

    def find_by_ids(self, attribute_ids: list[int]) -> list[AttributeDefinition]:
        if not attribute_ids:
            return []
        rows = self.db.execute(
            f"SELECT * FROM attribute_definitions WHERE id = ANY(%s) {_ORDER}",
            (list(attribute_ids),)
        )
        return [AttributeDefinition.model_validate(row) for row in rows]

    def find_by_name(self, name: str) -> AttributeDefinition | None:
        row = self.db.execute_single(
            "SELECT * FROM attribute_definitions WHERE name = %s",
            (name,)
        )
        return AttributeDefinition.model_validate(row) if row else None

    def list_all(self) -> list[AttributeDefinition]:
        rows = self.db.execute(f"SELECT * FROM attribute_definitions {_ORDER}")
        return [AttributeDefinition.model_validate(row) for row in rows]


class PostgresAttributeValueStore:
    """attribute_values table."""

    def __init__(self, db):
        self.db = db

    def insert(self, attribute_id: int, data: AttributeValueCreate) -> AttributeValue:
        now = now_utc()
        row = self.db.execute_returning(
            """
            INSERT INTO attribute_values (attribute_id, value, sort_score, created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING *
            """,
            (attribute_id, data.value, data.sort_score, now, now)
        )[0]
        return AttributeValue.model_validate(row)

    def delete(self, value_id: int) -> bool:
        try:
            rows = self.db.execute_returning(
                "DELETE FROM attribute_values WHERE id = %s RETURNING id",
                (value_id,)
            )
        except pg_errors.ForeignKeyViolation as e:
            raise AttributeValueStillReferencedError(value_id) from e
        return bool(rows)

    def delete_by_attribute(self, attribute_id: int) -> int:
        try:
            rows = self.db.execute_returning(
                "DELETE FROM attribute_values WHERE attribute_id = %s RETURNING id",
                (attribute_id,)
            )
        except pg_errors.ForeignKeyViolation as e:
            raise AttributeStillReferencedError(attribute_id) from e
        return len(rows)

    def find_by_id(self, value_id: int) -> AttributeValue | None:
        row = self.db.execute_single(
            "SELECT * FROM attribute_values WHERE id = %s",
            (value_id,)
        )
        return AttributeValue.model_validate(row) if row else None

    def list_by_attribute(self, attribute_id: int) -> list[AttributeValue]:
        rows = self.db.execute(
            f"SELECT * FROM attribute_values WHERE attribute_id = %s {_ORDER}",
            (attribute_id,)
        )
        return [AttributeValue.model_validate(row) for row in rows]

    def list_by_attributes(self, attribute_ids: list[int]) -> list[AttributeValue]:
        if not attribute_ids:
            return []
        rows = self.db.execute(
            f"SELECT * FROM attribute_values WHERE attribute_id = ANY(%s) {_ORDER}",
            (list(attribute_ids),)
        )
        return [AttributeValue.model_validate(row) for row in rows]


class PostgresRelationStore:
    """attribute_bindings table."""

    def __init__(self, db):
        self.db = db

    def find_by_entity_and_attributes(
        self,
        scope: BindingScope,
        entity_id: int,
        attribute_ids: list[int],
    ) -> list[Binding]:
        if not attribute_ids:
            return []
        rows = self.db.execute(
            """
            SELECT * FROM attribute_bindings
            WHERE scope = %s AND entity_id = %s AND attribute_id = ANY(%s)
            ORDER BY id ASC
            """,
            (scope.value, entity_id, list(attribute_ids))
        )
        return [Binding.model_validate(row) for row in rows]

    def list_by_entity(self, scope: BindingScope, entity_id: int) -> list[Binding]:
        rows = self.db.execute(
            """
            SELECT * FROM attribute_bindings
            WHERE scope = %s AND entity_id = %s
            ORDER BY attribute_id ASC, id ASC
            """,
            (scope.value, entity_id)
        )
        return [Binding.model_validate(row) for row in rows]

    def batch_insert(self, bindings: list[BindingCreate]) -> list[Binding]:
        if not bindings:
            return []
        now = now_utc()
        rows = self.db.execute_values(
            """
            INSERT INTO attribute_bindings (
                scope, entity_id, attribute_id, value_id, free_text, created_at, updated_at
            ) VALUES %s
            RETURNING *
            """,
            [
                (b.scope.value, b.entity_id, b.attribute_id, b.value_id, b.free_text, now, now)
                for b in bindings
            ]
        )
        if len(rows) != len(bindings):
            logger.error(f"Binding insert returned {len(rows)} rows for {len(bindings)} bindings")
            raise RuntimeError("Binding batch insert did not insert every row")
        return [Binding.model_validate(row) for row in rows]

    def batch_delete(self, binding_ids: list[int]) -> int:
        if not binding_ids:
            return 0
        rows = self.db.execute_returning(
            "DELETE FROM attribute_bindings WHERE id = ANY(%s) RETURNING id",
            (list(binding_ids),)
        )
        if len(rows) != len(binding_ids):
            logger.error(f"Binding delete removed {len(rows)} rows, expected {len(binding_ids)}")
            raise RuntimeError("Binding batch delete did not remove every row")
        return len(rows)

    def find_by_attribute(self, attribute_id: int, limit: int) -> list[Binding]:
        rows = self.db.execute(
            "SELECT * FROM attribute_bindings WHERE attribute_id = %s ORDER BY id ASC LIMIT %s",
            (attribute_id, limit)
        )
        return [Binding.model_validate(row) for row in rows]

    def exists_for_value(self, value_id: int) -> bool:
        return bool(self.db.execute_scalar(
            "SELECT EXISTS (SELECT 1 FROM attribute_bindings WHERE value_id = %s)",
            (value_id,)
        ))

    def exists_in_scope(self, attribute_id: int, scope: BindingScope) -> bool:
        return bool(self.db.execute_scalar(
            "SELECT EXISTS (SELECT 1 FROM attribute_bindings WHERE attribute_id = %s AND scope = %s)",
            (attribute_id, scope.value)
        ))

    def has_multiple_per_entity(self, attribute_id: int) -> bool:
        return bool(self.db.execute_scalar(
            """
            SELECT EXISTS (
                SELECT 1 FROM attribute_bindings
                WHERE attribute_id = %s
                GROUP BY scope, entity_id
                HAVING count(*) > 1
            )
            """,
            (attribute_id,)
        ))
