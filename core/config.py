"""Catalog configuration."""

from pydantic import BaseModel, Field


class CatalogConfig(BaseModel):
    """
    Tunables for the attribute catalog and binding reconciler.

    Defaults match the column sizes in schema/catalog.sql. Raising a length
    limit here without widening the column just moves the failure into
    Postgres.
    """

    # Attribute definitions
    max_name_length: int = Field(
        default=64,
        description="Maximum attribute name length",
        ge=1,
        le=64,
    )

    # Deletion safety
    reference_sample_limit: int = Field(
        default=10,
        description="How many referencing entities to report when a delete is refused",
        ge=1,
        le=100,
    )

    # Reconciliation
    entity_lock_namespace: int = Field(
        default=4201,
        description="First key of the advisory lock that serializes reconciliation per entity",
    )

    # Connection pool
    pool_min_connections: int = Field(default=2, ge=1)
    pool_max_connections: int = Field(default=20, ge=1, le=200)
    connect_timeout_seconds: int = Field(
        default=30,
        description="Seconds to wait for a new database connection",
        ge=1,
    )
