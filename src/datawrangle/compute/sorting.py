"""Query plan nodes that perform sorting of data.

When computing ranks or looking for most significant
values, it's often necessary to sort the data based
on one or more columns.

Sorting is stable: rows that compare equal on all
the sorting keys keep the order they had before sorting.
Missing values are always placed after the other values,
regardless of the sorting direction.

This module implements the sorting capabilities.
"""

from typing import Iterator

import pyarrow as pa
import pyarrow.compute as pc

from .base import QueryPlanNode, materialize
from .errors import TypeMismatch
from .expressions import ARROW_TYPE_ERRORS
from .grouping import check_columns

SortKey = str | tuple[str, str]


def desc(column: str) -> tuple[str, str]:
    """Sort by ``column`` in descending order.

    >>> desc("weight")
    ('weight', 'descending')
    """
    return (column, "descending")


def asc(column: str) -> tuple[str, str]:
    """Sort by ``column`` in ascending order."""
    return (column, "ascending")


def parse_sort_keys(keys: list[SortKey]) -> tuple[list[str], list[bool]]:
    """Convert sorting keys to the columns and descending flags of SortNode.

    Each key can be a column name, sorted in ascending order,
    or a ``(column, "ascending" | "descending")`` tuple.

    >>> parse_sort_keys(["year", desc("weight")])
    (['year', 'weight'], [False, True])
    """
    columns, descending = [], []
    for key in keys:
        if isinstance(key, str):
            column, direction = key, "ascending"
        else:
            column, direction = key
        if direction not in ("ascending", "descending"):
            raise ValueError(f"Invalid sorting direction {direction!r} for {column}")
        columns.append(column)
        descending.append(direction == "descending")
    return columns, descending


class SortNode(QueryPlanNode):
    """Sort data in-memory based on one or more columns.

    The node expects a list of columns and a list of
    sort directions. The data will be sorted based on
    the columns in the order they are provided.

    The sort directions are used to specify if the
    sorting should be ascending or descending.

    >>> import pyarrow as pa
    >>> from datawrangle.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"values": [1, None, 3, 4, 5]})
    >>> # Sort the data in descending order
    >>> sort = SortNode(["values"], [True], PyArrowTableDataSource(data))
    >>> next(sort.batches()).column("values").to_pylist()
    [5, 4, 3, 1, None]
    """

    def __init__(
        self, keys: list[str], descending: list[bool], child: QueryPlanNode
    ) -> None:
        """
        :param keys: The columns to sort by in the order they should be sorted.
        :param descending: If each columns should be sorted in a descending order.
        :param child: The node emitting the data to be sorted.
        """
        if len(keys) != len(descending):
            raise ValueError("Keys and descending must have the same length")

        self.sorting = list(
            zip(keys, ("descending" if desc else "ascending" for desc in descending))
        )
        self.child = child

    def __str__(self) -> str:
        return f"SortNode(sorting={self.sorting}, {self.child})"

    def batches(self) -> Iterator[pa.RecordBatch]:
        """Sort the data emitted by the child node.

        Batches provided by child node are accumulated
        until they are all loaded in memory, than they
        are merged and sorted as an unique batch.
        """
        batch = materialize(self.child)
        if not self.sorting:
            yield batch
            return

        check_columns(batch, [key for key, _ in self.sorting])
        try:
            # Nulls are placed at the end by default, whatever the order.
            indices = pc.sort_indices(batch, sort_keys=self.sorting)
        except ARROW_TYPE_ERRORS as e:
            raise TypeMismatch(f"Unable to sort by {self.sorting}: {e}") from e
        yield batch.take(indices)
