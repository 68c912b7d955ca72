"""Query plan nodes that implement filtering of rows.

A common request in queries is to filter the data to
pick only the rows that respect a specific filter.
An example is the ``WHERE`` condition in SQL queries.

Predicates follow three valued logic, a row can be
true, false or missing (for example ``weight > 30`` when
the weight is unknown). Rows where the predicate is
missing are treated like rows where it is false,
and thus discarded.

This module implements the basic filtering capabilities
and the removal of duplicate rows.
"""

from typing import Iterator

import pyarrow as pa

from .base import QueryPlanNode
from .expressions import Expression, evaluate_as_mask
from .grouping import apply_per_group, group_rows, key_tuples
from .selectors import ColumnSelector, resolve_columns


class FilterNode(QueryPlanNode):
    """Filter data based on a predicate expression.

    The filter expects an expression that when applied
    to the batch of data being filtered returns ``true``
    or ``false`` for each row in the data to mark which
    rows have to be preserved and which rows have to be discarded.

    >>> import pyarrow as pa
    >>> from datawrangle.compute import col, PyArrowTableDataSource
    >>> data = pa.record_batch({"values": [1, 2, None, 4, 5]})
    >>> predicate = col("values") > 3
    >>> # predicate is a function that returns true for values greater than 3
    >>> predicate.apply(data).to_pylist()
    [False, False, None, True, True]
    >>> next(FilterNode(predicate, PyArrowTableDataSource(data)).batches()).to_pydict()
    {'values': [4, 5]}

    When ``group_by`` is provided, the predicate is evaluated
    separately for each group, so that for example comparing
    a value with the mean of the column compares it with the
    mean of its group.
    """

    def __init__(
        self,
        expression: Expression,
        child: QueryPlanNode,
        group_by: list[str] | None = None,
    ) -> None:
        """
        :param expression: The predicate expression to filter with.
        :param child: The node emitting the data to be filtered.
        :param group_by: Evaluate the predicate within groups of these columns.
        """
        self.expression = expression
        self.child = child
        self.group_by = group_by or []

    def __str__(self) -> str:
        grouping = f", group_by={self.group_by}" if self.group_by else ""
        return f"FilterNode(filter={self.expression}{grouping}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Apply the filtering to the child node.

        For each recordbatch yielded by the child node,
        apply the expression and get back a mask
        (an array of only true/false/missing values).

        Based on the mask filter the rows of the batch
        and return only those matching the filter.
        """
        for batch in self.child.batches():
            if self.group_by:
                groups = group_rows(batch, self.group_by)
                mask = apply_per_group(
                    batch, groups, lambda b: evaluate_as_mask(b, self.expression)
                )
            else:
                mask = evaluate_as_mask(batch, self.expression)
            yield batch.filter(mask, null_selection_behavior="drop")


class DistinctNode(QueryPlanNode):
    """Keep only the first row for each distinct combination of values.

    Only the columns considered for the comparison are kept,
    when no columns are provided all columns are compared.
    Missing values are considered equal to each other.

    >>> import pyarrow as pa
    >>> from datawrangle.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"plot": [1, 2, 1, 1], "sex": ["F", "F", "F", "M"]})
    >>> next(DistinctNode(["plot", "sex"], PyArrowTableDataSource(data)).batches()).to_pylist()
    [{'plot': 1, 'sex': 'F'}, {'plot': 2, 'sex': 'F'}, {'plot': 1, 'sex': 'M'}]
    """

    def __init__(
        self, columns: list[str | ColumnSelector] | None, child: QueryPlanNode
    ) -> None:
        """
        :param columns: The columns to compare, ``None`` or ``[]`` for all columns.
        :param child: The node emitting the data.
        """
        self.columns = columns or []
        self.child = child

    def __str__(self) -> str:
        return f"DistinctNode(columns={self.columns}, {self.child})"

    def batches(self) -> Iterator[pa.RecordBatch]:
        for batch in self.child.batches():
            names = batch.schema.names
            columns = resolve_columns(names, self.columns) if self.columns else names
            seen = set()
            first_rows = []
            for rowidx, key in enumerate(key_tuples(batch, columns)):
                if key not in seen:
                    seen.add(key)
                    first_rows.append(rowidx)
            indices = pa.array(first_rows, type=pa.int64())
            yield pa.RecordBatch.from_arrays(
                [batch.column(name).take(indices) for name in columns], names=columns
            )
