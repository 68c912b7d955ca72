import pyarrow as pa
import pytest

from datawrangle.compute import (
    AmbiguousPivot,
    DuplicateColumn,
    PyArrowTableDataSource,
    TypeMismatch,
    starts_with,
)
from datawrangle.compute.reshape import PivotLongerNode, PivotWiderNode

WIDE_DATA = pa.record_batch(
    {
        "plot_id": [1, 2, 3],
        "DM": [40, 12, None],
        "NL": [35, 20, 8],
    }
)


def _run(node):
    batches = list(node.batches())
    assert len(batches) == 1
    return batches[0]


def test_pivot_longer():
    node = PivotLongerNode(["DM", "NL"], "species", "weight", PyArrowTableDataSource(WIDE_DATA))
    result = _run(node)
    assert result.to_pydict() == {
        "plot_id": [1, 1, 2, 2, 3, 3],
        "species": ["DM", "NL", "DM", "NL", "DM", "NL"],
        "weight": [40, 35, 12, 20, None, 8],
    }


def test_pivot_longer_drop_missing_values():
    node = PivotLongerNode(
        ["DM", "NL"],
        "species",
        "weight",
        PyArrowTableDataSource(WIDE_DATA),
        values_drop_na=True,
    )
    result = _run(node)
    assert result.num_rows == 5
    assert None not in result.column("weight").to_pylist()


def test_pivot_longer_selector_and_prefix():
    data = pa.record_batch({"id": [1], "w_2001": [10], "w_2002": [12]})
    node = PivotLongerNode(
        [starts_with("w_")],
        "year",
        "weight",
        PyArrowTableDataSource(data),
        names_prefix="w_",
    )
    assert _run(node).to_pylist() == [
        {"id": 1, "year": "2001", "weight": 10},
        {"id": 1, "year": "2002", "weight": 12},
    ]


def test_pivot_longer_explicit_id_columns():
    node = PivotLongerNode(
        ["DM"], "species", "weight", PyArrowTableDataSource(WIDE_DATA), id_columns=["plot_id"]
    )
    assert _run(node).schema.names == ["plot_id", "species", "weight"]


def test_pivot_longer_null_typed_column():
    data = pa.record_batch({"id": [1], "a": pa.array([None]), "b": [1.5]})
    node = PivotLongerNode(["a", "b"], "name", "value", PyArrowTableDataSource(data))
    result = _run(node)
    assert result.column("value").type == pa.float64()
    assert result.column("value").to_pylist() == [None, 1.5]


def test_pivot_longer_mixed_types():
    data = pa.record_batch({"id": [1], "a": [1], "b": ["x"]})
    node = PivotLongerNode(["a", "b"], "name", "value", PyArrowTableDataSource(data))
    with pytest.raises(TypeMismatch):
        _run(node)


def test_pivot_longer_no_matching_columns():
    node = PivotLongerNode(
        [starts_with("zz")], "name", "value", PyArrowTableDataSource(WIDE_DATA)
    )
    with pytest.raises(ValueError):
        _run(node)


def test_pivot_longer_name_collision():
    node = PivotLongerNode(["DM"], "plot_id", "weight", PyArrowTableDataSource(WIDE_DATA))
    with pytest.raises(DuplicateColumn):
        _run(node)


def test_pivot_wider():
    data = pa.record_batch(
        {
            "plot_id": [1, 1, 2, 3],
            "species": ["DM", "NL", "NL", None],
            "weight": [40, 35, 20, 8],
        }
    )
    node = PivotWiderNode("species", "weight", PyArrowTableDataSource(data))
    assert _run(node).to_pydict() == {
        "plot_id": [1, 2, 3],
        "DM": [40, None, None],
        "NL": [35, 20, None],
        "NA": [None, None, 8],
    }


def test_pivot_wider_fill_and_prefix():
    data = pa.record_batch(
        {"plot_id": [1, 1, 2], "species": ["DM", "NL", "NL"], "weight": [40, 35, 20]}
    )
    node = PivotWiderNode(
        "species",
        "weight",
        PyArrowTableDataSource(data),
        values_fill=0,
        names_prefix="w_",
    )
    assert _run(node).to_pydict() == {
        "plot_id": [1, 2],
        "w_DM": [40, 0],
        "w_NL": [35, 20],
    }


def test_pivot_wider_duplicated_cells():
    data = pa.record_batch(
        {"plot_id": [1, 1], "species": ["DM", "DM"], "weight": [40, 35]}
    )
    node = PivotWiderNode("species", "weight", PyArrowTableDataSource(data))
    with pytest.raises(AmbiguousPivot):
        _run(node)


def test_pivot_wider_explicit_id_columns():
    data = pa.record_batch(
        {
            "plot_id": [1, 1, 2],
            "record_id": [10, 11, 12],
            "species": ["DM", "NL", "DM"],
            "weight": [40, 35, 20],
        }
    )
    node = PivotWiderNode(
        "species", "weight", PyArrowTableDataSource(data), id_columns=["plot_id"]
    )
    assert _run(node).to_pydict() == {"plot_id": [1, 2], "DM": [40, 20], "NL": [35, None]}


def test_pivot_round_trip():
    longer = PivotLongerNode(["DM", "NL"], "name", "value", PyArrowTableDataSource(WIDE_DATA))
    wider = PivotWiderNode("name", "value", longer)
    assert _run(wider).equals(WIDE_DATA)


@pytest.mark.parametrize(
    "data",
    [
        pa.record_batch({"a": [1, 2], "b": [3, 4]}),
        pa.record_batch({"plot_id": [1, 1], "a": [1, 2], "b": [3, 4]}),
    ],
)
def test_pivot_round_trip_requires_unique_identifiers(data):
    longer = PivotLongerNode(["a", "b"], "name", "value", PyArrowTableDataSource(data))
    with pytest.raises(AmbiguousPivot):
        _run(PivotWiderNode("name", "value", longer))
