import pyarrow as pa
import pytest

from datawrangle.compute import (
    DuplicateColumn,
    IncompatibleBind,
    PyArrowTableDataSource,
    RowCountMismatch,
)
from datawrangle.compute.binding import BindColsNode, BindRowsNode


def _source(**columns):
    return PyArrowTableDataSource(pa.record_batch(columns))


def test_bind_rows_same_columns():
    node = BindRowsNode([_source(a=[1, 2], b=["x", "y"]), _source(a=[3], b=["z"])])
    result = next(node.batches())
    assert result.to_pydict() == {"a": [1, 2, 3], "b": ["x", "y", "z"]}


def test_bind_rows_union_of_columns():
    node = BindRowsNode([_source(a=["x"], b=[2]), _source(a=["y"]), _source(c=[True])])
    result = next(node.batches())
    assert result.schema.names == ["a", "b", "c"]
    assert result.to_pylist() == [
        {"a": "x", "b": 2, "c": None},
        {"a": "y", "b": None, "c": None},
        {"a": None, "b": None, "c": True},
    ]


def test_bind_rows_incompatible_types():
    node = BindRowsNode([_source(price=[1, 2]), _source(price=["cheap"])])
    with pytest.raises(IncompatibleBind):
        next(node.batches())


def test_bind_rows_with_id():
    node = BindRowsNode([_source(a=[1, 2]), _source(a=[3])], id="source")
    result = next(node.batches())
    assert result.to_pydict() == {"source": [0, 0, 1], "a": [1, 2, 3]}


def test_bind_rows_id_already_exists():
    node = BindRowsNode([_source(a=[1]), _source(a=[2])], id="a")
    with pytest.raises(DuplicateColumn):
        next(node.batches())


def test_bind_rows_empty_tables():
    empty = PyArrowTableDataSource(pa.record_batch({"a": pa.array([], type=pa.int64())}))
    result = next(BindRowsNode([empty, empty]).batches())
    assert result.num_rows == 0
    assert result.schema.names == ["a"]


def test_bind_cols():
    node = BindColsNode([_source(a=[1, 2]), _source(b=["x", "y"], c=[True, False])])
    result = next(node.batches())
    assert result.to_pydict() == {"a": [1, 2], "b": ["x", "y"], "c": [True, False]}


def test_bind_cols_different_row_counts():
    node = BindColsNode([_source(a=[1, 2]), _source(b=["x"])])
    with pytest.raises(RowCountMismatch):
        next(node.batches())


def test_bind_cols_duplicate_names():
    node = BindColsNode([_source(a=[1, 2]), _source(a=[3, 4])])
    with pytest.raises(DuplicateColumn):
        next(node.batches())


def test_bind_str():
    node = BindColsNode([_source(a=[1])])
    assert str(node) == "BindColsNode([PyArrowTableDataSource(columns=['a'], rows=1)])"
