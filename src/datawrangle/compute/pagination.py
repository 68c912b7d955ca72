"""Support limiting or skipping data in a query plan.

Implements nodes whose purpose is to slice the data
emitted by a query plan. Discarding the rows that
are not part of the selected slice of data.
"""

from typing import Iterator

import pyarrow as pa

from .base import QueryPlanNode, materialize


class PaginateNode(QueryPlanNode):
    """Emit only one page of the received data.

    Given a starting index and a length, only emit
    length rows after the starting index is reached.

    For example if ``offset=1`` and ``length=1``
    only the second row will be emitted::

        0: skip because < offset
        1: emit
        2: skip because > length=1 and one row was already emitted.

    A page past the end of the data is empty,
    a page that crosses the end is truncated.

    >>> import pyarrow as pa
    >>> from datawrangle.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    >>> next(PaginateNode(1, 2, PyArrowTableDataSource(data)).batches()).to_pydict()
    {'values': [2, 3]}
    """

    def __init__(self, offset: int, length: int, child: QueryPlanNode) -> None:
        """
        :param offset: From which row to take data, first row is 0.
        :param length: How many rows to take after offset was reached.
        :param child: the node from which to consume the rows.
        """
        if offset < 0 or length < 0:
            raise ValueError("Offset and length must not be negative")
        self.offset = offset
        self.length = length
        self.end = offset + length
        self.child = child

    def __str__(self) -> str:
        return f"PaginateNode({self.offset}:{self.end}, {self.child})"

    def batches(self) -> Iterator[pa.RecordBatch]:
        """Apply the pagination to the child node and emit the rows.

        The child data is gathered in a single batch,
        which is then sliced. Slicing is a zero-copy operation,
        so the emitted rows share memory with the child data.
        """
        batch = materialize(self.child)
        yield batch.slice(min(self.offset, batch.num_rows), self.length)
