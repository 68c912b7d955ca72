"""Query plan nodes that combine multiple tables.

Data frequently comes split in multiple tables:
rows collected in different years, or columns
computed by different steps of an analysis.

:class:`BindRowsNode` stacks the rows of multiple tables,
:class:`BindColsNode` puts side by side the columns
of tables that have the same number of rows.

>>> import pyarrow as pa
>>> from datawrangle.compute import PyArrowTableDataSource
>>> first = PyArrowTableDataSource(pa.record_batch({"a": ["x"], "b": [2]}))
>>> second = PyArrowTableDataSource(pa.record_batch({"a": ["y"]}))
>>> next(BindRowsNode([first, second]).batches()).to_pylist()
[{'a': 'x', 'b': 2}, {'a': 'y', 'b': None}]
"""

import pyarrow as pa

from .base import QueryPlanNode, materialize, table_to_batch
from .errors import DuplicateColumn, IncompatibleBind, RowCountMismatch


class BindRowsNode(QueryPlanNode):
    """Stack the rows of multiple tables.

    The result has all the columns that appear in at least
    one of the tables, in order of appearance. Rows coming
    from a table that lacks a column get a missing value for it.

    Each column has a single type, so the same column having
    different types in two tables is reported as
    :class:`IncompatibleBind` instead of converting the values.
    """

    def __init__(self, children: list[QueryPlanNode], id: str | None = None) -> None:
        """
        :param children: The nodes emitting the tables to stack.
        :param id: If provided, name of a column added in front of the others
                   with the position of the table each row comes from.
        """
        self.children = children
        self.id = id

    def __str__(self) -> str:
        children = ", ".join(map(str, self.children))
        return f"BindRowsNode(id={self.id}, [{children}])"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        batches = [materialize(child) for child in self.children]
        if self.id is not None:
            for batch in batches:
                if self.id in batch.schema.names:
                    raise DuplicateColumn(f"Column {self.id!r} already exists")

        try:
            combined = pa.concat_tables(
                [pa.Table.from_batches([batch]) for batch in batches],
                promote_options="default",
            )
        except (pa.ArrowInvalid, pa.ArrowTypeError) as e:
            raise IncompatibleBind(f"Unable to bind rows: {e}") from e
        result = table_to_batch(combined)

        if self.id is not None:
            source = pa.array(
                [position for position, batch in enumerate(batches) for _ in range(batch.num_rows)],
                type=pa.int64(),
            )
            result = pa.RecordBatch.from_arrays(
                [source, *result.columns], names=[self.id, *result.schema.names]
            )
        yield result


class BindColsNode(QueryPlanNode):
    """Put side by side the columns of multiple tables.

    All tables must have the same number of rows and
    no column name can appear in more than one table.
    """

    def __init__(self, children: list[QueryPlanNode]) -> None:
        """
        :param children: The nodes emitting the tables to combine.
        """
        self.children = children

    def __str__(self) -> str:
        children = ", ".join(map(str, self.children))
        return f"BindColsNode([{children}])"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        batches = [materialize(child) for child in self.children]
        row_counts = {batch.num_rows for batch in batches}
        if len(row_counts) > 1:
            raise RowCountMismatch(
                f"Unable to bind columns of tables with different number of rows: "
                f"{[batch.num_rows for batch in batches]}"
            )

        names: list[str] = []
        columns: list[pa.Array] = []
        for batch in batches:
            for name, column in zip(batch.schema.names, batch.columns):
                if name in names:
                    raise DuplicateColumn(f"Column {name!r} exists in multiple tables")
                names.append(name)
                columns.append(column)
        yield pa.RecordBatch.from_arrays(columns, names=names)
