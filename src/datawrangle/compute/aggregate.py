"""Query plan nodes that aggregations.

Frequently when analysing data is necessary
to compute statistics like the min, max, average, etc...
of the data stored in datasets.

The aggregate node is in charge of computing
those aggregations and projecting them as new
columns in a query pipeline.

Typically the aggregate node will group the data
by a set of columns and then compute the aggregations

For example, given the following data::

    city, shop, n_employees
    New York, Shop A, 10
    New York, Shop B, 15
    Los Angeles, Shop C, 8
    Los Angeles, Shop D, 12
    New York, Shop E, 20

We could group by city and compute the sum of the employees
to get::

    city, total_employees
    Los Angeles, 20
    New York, 45

Aggregations are expressions too: applied to a batch
they return a single :class:`pyarrow.Scalar`.
This means they can also be used in filters and projections,
where their value is repeated for every row.
For example ``col("weight") > mean("weight")`` selects the rows
above the average weight.

Missing values are not ignored unless requested:
the sum of a column with a missing value is missing,
``SumAggregation("weight", skip_missing=True)``
instead sums only the known values.
"""

import abc
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from .base import ColumnRef, Expression, QueryPlanNode, materialize
from .errors import TypeMismatch
from .expressions import ARROW_TYPE_ERRORS, apply_expression_if_needed, evaluate_as_array
from .grouping import group_rows

__all__ = (
    "AggregateNode",
    "Aggregation",
    "SumAggregation",
    "MinAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "MedianAggregation",
    "StdDevAggregation",
    "CountAggregation",
    "CountDistinctAggregation",
    "RowCountAggregation",
)


class AggregateNode(QueryPlanNode):
    """Group data and compute aggregations.

    Produces one row for each distinct value of the keys,
    containing the keys followed by the aggregations.
    Groups are sorted by their keys, and missing keys
    form a group of their own which is placed last.
    Without keys, the whole data is aggregated in a single row.

    >>> import pyarrow as pa
    >>> from datawrangle.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({
    ...    'city': pa.array(['New York', 'New York', 'Los Angeles', 'Los Angeles', 'New York']),
    ...    'shop': pa.array(['Shop A', 'Shop B', 'Shop C', 'Shop D', 'Shop E']),
    ...    'n_employees': pa.array([10, 15, 8, 12, 20])
    ... })
    >>> aggregate = AggregateNode(["city"], {"total_employees": SumAggregation("n_employees")}, PyArrowTableDataSource(data))
    >>> next(aggregate.batches()).to_pydict()
    {'city': ['Los Angeles', 'New York'], 'total_employees': [20, 45]}
    """

    def __init__(
        self,
        keys: list[str],
        aggregations: dict[str, Expression],
        child: QueryPlanNode,
    ) -> None:
        """
        :param keys: The columns to group by.
        :param aggregations: The aggregations to compute in the form of {"new_col_name": Aggregation}.
                             Any expression that produces a single value can be used.
        :param child: The child node that will provide the data to aggregate.
        """
        self.keys = keys
        self.aggregations = aggregations
        self.child = child

    def __str__(self) -> str:
        return f"AggregateNode(keys={self.keys}, aggregations={self.aggregations}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Group the data of the child node and aggregate each group.

        All the data of the child node is accumulated in memory,
        then rows are partitioned by the key values
        and each aggregation is computed on the rows of each group.
        """
        batch = materialize(self.child)
        groups = group_rows(batch, self.keys)

        names: list[str] = list(self.keys)
        columns: list[pa.Array] = []
        if groups.key_batch is not None:
            columns.extend(groups.key_batch.column(key) for key in self.keys)

        group_batches = [
            batch.take(pa.array(indices, type=pa.int64())) for indices in groups.indices
        ]
        for name, aggregation in self.aggregations.items():
            if group_batches:
                column = self._to_array(
                    [aggregated_value(group_batch, aggregation) for group_batch in group_batches]
                )
            else:
                # No groups, the type comes from aggregating no rows.
                empty = aggregated_value(batch.slice(0, 0), aggregation)
                column = pa.array([], type=empty.type)
            if name in names:
                columns[names.index(name)] = column
            else:
                names.append(name)
                columns.append(column)

        yield pa.RecordBatch.from_arrays(columns, names=names)

    @staticmethod
    def _to_array(scalars: list[pa.Scalar]) -> pa.Array:
        """Build a column out of the values aggregated for each group.

        The type of the column is the type of the first
        value that is not missing, so that a group
        with a missing aggregation doesn't change the column type.
        """
        target = next(
            (s.type for s in scalars if not pa.types.is_null(s.type)), pa.null()
        )
        return pa.array([s.as_py() for s in scalars], type=target)


def aggregated_value(batch: pa.RecordBatch, expression: Expression | Any) -> pa.Scalar:
    """Apply an aggregation expression and make sure it produced a single value."""
    value = apply_expression_if_needed(batch, expression)
    if isinstance(value, pa.ChunkedArray):
        value = value.combine_chunks()
    if isinstance(value, pa.Array):
        if len(value) != 1:
            raise TypeMismatch(
                f"Aggregation {expression} produced {len(value)} values instead of one"
            )
        value = value[0]
    if not isinstance(value, pa.Scalar):
        value = pa.scalar(value)
    return value


class Aggregation(Expression):
    """Base class for aggregations.

    Every aggregation reduces a column, or the result of an
    expression, to a single value. Subclasses only have to
    implement ``_aggregate`` which receives the values to reduce.
    """

    def __init__(self, column: str | Expression, skip_missing: bool = False) -> None:
        """
        :param column: The name of the column to aggregate or an expression.
        :param skip_missing: Ignore missing values instead of
                             producing a missing result.
        """
        self.column = column
        self.skip_missing = skip_missing

    def __str__(self) -> str:
        column = self.column.name if isinstance(self.column, ColumnRef) else self.column
        return f"{self.__class__.__name__}({column})"

    def apply(self, batch: pa.RecordBatch) -> pa.Scalar:
        source = ColumnRef(self.column) if isinstance(self.column, str) else self.column
        values = evaluate_as_array(batch, source)
        try:
            return self._aggregate(values)
        except ARROW_TYPE_ERRORS as e:
            raise TypeMismatch(f"Unable to compute {self}: {e}") from e

    @abc.abstractmethod
    def _aggregate(self, values: pa.Array) -> pa.Scalar: ...


class SumAggregation(Aggregation):
    """Compute the sum of an aggregated column.

    The sum of no values is ``0``.
    """

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.sum(values, skip_nulls=self.skip_missing, min_count=0)


class MinAggregation(Aggregation):
    """Compute the min of an aggregated column."""

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.min(values, skip_nulls=self.skip_missing)


class MaxAggregation(Aggregation):
    """Compute the max of an aggregated column."""

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.max(values, skip_nulls=self.skip_missing)


class MeanAggregation(Aggregation):
    """Compute the mean of an aggregated column."""

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.mean(values, skip_nulls=self.skip_missing)


class MedianAggregation(Aggregation):
    """Compute the median of an aggregated column.

    Interpolates between the two central values
    when the number of values is even.
    """

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        if not self.skip_missing and values.null_count:
            return pa.scalar(None, type=pa.float64())
        quantiles = pc.quantile(values, q=0.5, skip_nulls=True)
        if len(quantiles) == 0:
            return pa.scalar(None, type=pa.float64())
        return quantiles[0]


class StdDevAggregation(Aggregation):
    """Compute the sample standard deviation of an aggregated column."""

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.stddev(values, ddof=1, skip_nulls=self.skip_missing)


class CountAggregation(Aggregation):
    """Count the values of an aggregated column that are not missing."""

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.count(values, mode="only_valid")


class CountDistinctAggregation(Aggregation):
    """Count the distinct values of an aggregated column that are not missing."""

    def _aggregate(self, values: pa.Array) -> pa.Scalar:
        return pc.count_distinct(values, mode="only_valid")


class RowCountAggregation(Expression):
    """Count the rows, regardless of their content."""

    def apply(self, batch: pa.RecordBatch) -> pa.Scalar:
        return pa.scalar(batch.num_rows, type=pa.int64())

    def __str__(self) -> str:
        return "RowCountAggregation()"


def n() -> RowCountAggregation:
    """The number of rows of the current group."""
    return RowCountAggregation()


n_distinct = CountDistinctAggregation
mean = MeanAggregation
median = MedianAggregation
sd = StdDevAggregation
