"""Tests for catalog exceptions."""

from core.exceptions import (
    AttributeNotFoundError,
    AttributeStillReferencedError,
    AttributeValueNotFoundError,
    BindingValidationError,
    CatalogError,
    DuplicateNameError,
    Violation,
    ViolationKind,
)


class TestCatalogErrors:

    def test_all_are_catalog_errors(self):
        for error in (
            AttributeNotFoundError(1),
            AttributeValueNotFoundError(2),
            DuplicateNameError("Color"),
            AttributeStillReferencedError(3),
        ):
            assert isinstance(error, CatalogError)

    def test_not_found_ids_sorted(self):
        """A single id or a list both end up as a sorted list."""
        assert AttributeNotFoundError(4).attribute_ids == [4]
        assert AttributeNotFoundError([9, 2]).attribute_ids == [2, 9]
        assert "2, 9" in str(AttributeNotFoundError([9, 2]))

    def test_codes(self):
        assert DuplicateNameError("Color").code == "ATTRIBUTE_NAME_DUPLICATED"
        assert AttributeStillReferencedError(1).code == "ATTRIBUTE_IS_REFERENCED"

    def test_referenced_defaults_to_no_sample(self):
        assert AttributeStillReferencedError(1).entity_ids == []


class TestBindingValidationError:

    def _violations(self):
        return [
            Violation(ViolationKind.REQUIRED_VALUE_EMPTY, 7, "'Size' is required"),
            Violation(ViolationKind.ATTRIBUTE_VALUE_NOT_FOUND, 9, "bad value", value_id=90),
        ]

    def test_message_lists_each_violation(self):
        error = BindingValidationError(self._violations())

        assert str(error).startswith("2 invalid assignment(s)")
        assert "attribute 7: REQUIRED_VALUE_EMPTY" in str(error)
        assert "attribute 9: ATTRIBUTE_VALUE_NOT_FOUND" in str(error)

    def test_for_attribute(self):
        error = BindingValidationError(self._violations())

        assert [v.kind for v in error.for_attribute(9)] == [ViolationKind.ATTRIBUTE_VALUE_NOT_FOUND]
        assert error.for_attribute(1) == []

    def test_violation_to_dict(self):
        assert self._violations()[1].to_dict() == {
            "kind": "ATTRIBUTE_VALUE_NOT_FOUND",
            "attribute_id": 9,
            "value_id": 90,
            "message": "bad value",
        }
