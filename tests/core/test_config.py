"""Tests for CatalogConfig."""

import pytest
from pydantic import ValidationError

from core.config import CatalogConfig


class TestCatalogConfig:

    def test_defaults(self):
        config = CatalogConfig()

        assert config.max_name_length == 64
        assert config.reference_sample_limit == 10
        assert config.pool_min_connections <= config.pool_max_connections

    def test_name_limit_cannot_exceed_column(self):
        with pytest.raises(ValidationError):
            CatalogConfig(max_name_length=65)

    def test_reference_sample_limit_bounds_report(self, uow_factory, ctx, reconciler, color):
        """Only the configured number of entities is reported on a refused delete."""
        from core.exceptions import AttributeStillReferencedError
        from core.models import AttributeAssignment, BindingScope
        from core.services.catalog_service import AttributeCatalog

        for entity_id in (3, 1, 2):
            reconciler.reconcile(ctx, BindingScope.SKU, entity_id, [
                AttributeAssignment(attribute_id=color.id, value_id=color.values[0].id)
            ])
        catalog = AttributeCatalog(uow_factory, config=CatalogConfig(reference_sample_limit=2))

        with pytest.raises(AttributeStillReferencedError) as exc:
            catalog.delete_attribute(ctx, color.id)

        assert exc.value.entity_ids == [1, 3]
