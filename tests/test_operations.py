"""
Tests for CRUD operation classification.
"""

import pytest

from data_crud.services.operations import READ_OPERATIONS, WRITE_OPERATIONS, CrudOperation


class TestCrudOperation:
    @pytest.mark.parametrize("operation", list(CrudOperation))
    def test_exactly_one_classification(self, operation):
        """Every operation is either read-only or write-only, never both."""
        assert operation.is_read_only != operation.is_write_only

    @pytest.mark.parametrize(
        "operation",
        [CrudOperation.CREATE, CrudOperation.UPDATE, CrudOperation.DELETE],
    )
    def test_write_operations(self, operation):
        assert operation.write is True
        assert operation.read is False
        assert operation.is_write_only

    @pytest.mark.parametrize(
        "operation",
        [CrudOperation.PAGE, CrudOperation.FIND, CrudOperation.COUNT, CrudOperation.EXISTS],
    )
    def test_read_operations(self, operation):
        assert operation.read is True
        assert operation.write is False
        assert operation.is_read_only

    def test_operation_sets_partition_all_kinds(self):
        assert READ_OPERATIONS | WRITE_OPERATIONS == set(CrudOperation)
        assert not READ_OPERATIONS & WRITE_OPERATIONS

    def test_str_is_value(self):
        assert str(CrudOperation.EXISTS) == "EXISTS"
        assert CrudOperation("PAGE") is CrudOperation.PAGE
