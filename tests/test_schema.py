"""
Tests for schema validation.
"""

import pytest

from facultyrank.errors import ValidationError
from facultyrank.schema import (
    application_id_errors,
    batch_errors,
    validate_application_id,
    validate_batch_ids,
    validate_scopus_id,
)


class TestApplicationId:
    """Test application id validation."""

    @pytest.mark.parametrize("value,expected", [
        (5, 5),
        ("7", 7),
        (" 8 ", 8),
    ])
    def test_valid(self, value, expected):
        assert validate_application_id(value) == expected

    @pytest.mark.parametrize("value", [0, -1, "abc", "", None, 1.5, True, "-3", "²", "1²", "①"])
    def test_invalid(self, value):
        assert application_id_errors(value) != []
        with pytest.raises(ValidationError, match="positive integer"):
            validate_application_id(value)


class TestBatchIds:
    """Test batch validation."""

    def test_valid_batch(self):
        assert validate_batch_ids([1, "2", 3], max_size=50) == [1, 2, 3]

    def test_empty_batch(self):
        assert batch_errors([], max_size=50) == ["applicationIds must be a non-empty array"]

    def test_not_a_list(self):
        with pytest.raises(ValidationError, match="non-empty array"):
            validate_batch_ids("1,2", max_size=50)

    def test_too_many(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_batch_ids(list(range(1, 52)), max_size=50)

        assert exc_info.value.errors == ["Maximum 50 applications can be processed in batch, got 51"]

    def test_collects_every_error(self):
        errors = batch_errors(["1", "x", 0], max_size=50)
        assert len(errors) == 2

    def test_superscript_id_rejected(self):
        with pytest.raises(ValidationError, match="positive integer"):
            validate_batch_ids(["1", "²"], max_size=50)


class TestScopusId:
    @pytest.mark.parametrize("value", ["57190000001", "5719000000", 57190000001, " 57190000001 "])
    def test_valid(self, value):
        assert validate_scopus_id(value) == str(value).strip()

    @pytest.mark.parametrize("value", ["123", "571900000012", "5719000000a", "", None])
    def test_invalid(self, value):
        with pytest.raises(ValidationError, match="Invalid Scopus ID format"):
            validate_scopus_id(value)
