"""Query Plan nodes that provide data

The datasource nodes are the leaves of a query plan,
they provide the data, in the format accepted by the compute
engine, for the next nodes in the plan to consume.

Loading data from files or databases is not a concern
of the engine, the data is expected to be already
available in memory as a :class:`pyarrow.Table` or
:class:`pyarrow.RecordBatch`, and any Arrow reader
(like :func:`pyarrow.csv.read_csv`) can be used to load it.
"""

from abc import abstractmethod

import pyarrow as pa

from .base import QueryPlanNode, table_to_batch


class DataSourceNode(QueryPlanNode):
    """Base class for nodes that provide data."""

    @abstractmethod
    def poll_schema(self) -> pa.Schema:
        """Poll the schema of the data source without loading its content."""
        ...


class PyArrowTableDataSource(DataSourceNode):
    """Load data from an in-memory pyarrow.Table or pyarrow.RecordBatch.

    Given a :class:`pyarrow.Table` or `pyarrow.RecordBatch` object,
    allow to use its data in a query plan.

    The data is always emitted as a single batch,
    tables made of multiple chunks are combined.
    """

    def __init__(self, table: pa.Table | pa.RecordBatch) -> None:
        """
        :param table: The table or recordbatch with the data to read.
        """
        self.table = table
        self.is_recordbatch = isinstance(table, pa.RecordBatch)

    def __str__(self) -> str:
        return f"PyArrowTableDataSource(columns={self.table.schema.names}, rows={self.table.num_rows})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Emit the data contained in the Table for consumption by other node."""
        if self.is_recordbatch:
            yield self.table
        else:
            yield table_to_batch(self.table)

    def poll_schema(self) -> pa.Schema:
        """Poll the schema of the Table."""
        return self.table.schema
