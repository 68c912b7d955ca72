import pyarrow as pa
import pytest

from datawrangle.compute.base import materialize
from datawrangle.compute.datasources import PyArrowTableDataSource

# Mock data for testing
MOCK_PYARROW_TABLE = pa.table({"col1": [1, 4, 7], "col2": [2, 5, 8], "col3": [3, 6, 9]})


@pytest.mark.parametrize(
    "data, expected_str",
    [
        (
            MOCK_PYARROW_TABLE,
            "PyArrowTableDataSource(columns=['col1', 'col2', 'col3'], rows=3)",
        ),
        (
            MOCK_PYARROW_TABLE.to_batches()[0],
            "PyArrowTableDataSource(columns=['col1', 'col2', 'col3'], rows=3)",
        ),
    ],
)
def test_init_and_str(data, expected_str):
    data_source = PyArrowTableDataSource(data)
    assert str(data_source) == expected_str


@pytest.mark.parametrize(
    "data",
    [
        MOCK_PYARROW_TABLE,
        MOCK_PYARROW_TABLE.to_batches()[0],
        pa.concat_tables([MOCK_PYARROW_TABLE.slice(0, 1), MOCK_PYARROW_TABLE.slice(1)]),
    ],
)
def test_batches(data):
    data_source = PyArrowTableDataSource(data)
    batches = list(data_source.batches())
    assert len(batches) == 1
    assert batches[0].equals(MOCK_PYARROW_TABLE.to_batches()[0])


def test_empty_table_emits_empty_batch():
    empty = pa.table({"col1": pa.array([], type=pa.int64())})
    batches = list(PyArrowTableDataSource(empty).batches())
    assert len(batches) == 1
    assert batches[0].num_rows == 0
    assert batches[0].schema == empty.schema


def test_poll_schema():
    data_source = PyArrowTableDataSource(MOCK_PYARROW_TABLE)
    assert data_source.poll_schema() == MOCK_PYARROW_TABLE.schema


def test_materialize_combines_batches():
    class MultipleBatches(PyArrowTableDataSource):
        def batches(self):
            yield from self.table.to_batches(max_chunksize=1)

    batch = materialize(MultipleBatches(MOCK_PYARROW_TABLE))
    assert batch.num_rows == 3
    assert batch.column("col1").to_pylist() == [1, 4, 7]
