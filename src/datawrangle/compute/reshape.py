"""Query plan nodes that reshape data between wide and long layouts.

The same data can be laid out in a wide format, with one
column for each category::

    plot_id, DM, NL
    1,       40, 35
    2,       12, null

or in a long format, with one row for each category::

    plot_id, species, weight
    1,       DM,      40
    1,       NL,      35
    2,       DM,      12
    2,       NL,      null

:class:`PivotLongerNode` converts from the wide layout to the long one,
:class:`PivotWiderNode` from the long layout to the wide one.
The two operations are the inverse of each other, pivoting
a table longer and then wider gives back the original table.
"""

import pyarrow as pa
import pyarrow.compute as pc

from .base import QueryPlanNode, materialize
from .errors import AmbiguousPivot, DuplicateColumn, TypeMismatch
from .expressions import ARROW_TYPE_ERRORS, align_types
from .grouping import check_columns, key_tuples
from .selectors import ColumnSelector, resolve_columns


class PivotLongerNode(QueryPlanNode):
    """Stack multiple columns in a pair of name and value columns.

    Each row of the input produces one row for each
    stacked column, containing the identifier columns,
    the name of the stacked column and its value.

    >>> import pyarrow as pa
    >>> from datawrangle.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"plot_id": [1, 2], "DM": [40, 12], "NL": [35, None]})
    >>> node = PivotLongerNode(["DM", "NL"], "species", "weight", PyArrowTableDataSource(data))
    >>> next(node.batches()).to_pydict()
    {'plot_id': [1, 1, 2, 2], 'species': ['DM', 'NL', 'DM', 'NL'], 'weight': [40, 35, 12, None]}
    """

    def __init__(
        self,
        columns: list[str | ColumnSelector],
        names_to: str,
        values_to: str,
        child: QueryPlanNode,
        id_columns: list[str | ColumnSelector] | None = None,
        names_prefix: str | None = None,
        values_drop_na: bool = False,
    ) -> None:
        """
        :param columns: The columns to stack, names or selectors.
        :param names_to: Name of the column that will contain the stacked column names.
        :param values_to: Name of the column that will contain the stacked values.
        :param child: The node emitting the data.
        :param id_columns: The columns identifying each row, by default
                           all the columns that are not stacked.
        :param names_prefix: Removed from the start of the stacked column names.
        :param values_drop_na: Drop the rows where the stacked value is missing.
        """
        self.columns = columns
        self.names_to = names_to
        self.values_to = values_to
        self.child = child
        self.id_columns = id_columns
        self.names_prefix = names_prefix
        self.values_drop_na = values_drop_na

    def __str__(self) -> str:
        return (
            f"PivotLongerNode(columns={self.columns}, names_to={self.names_to}, "
            f"values_to={self.values_to}, {self.child})"
        )

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        batch = materialize(self.child)
        names = batch.schema.names
        stacked = resolve_columns(names, self.columns)
        if not stacked:
            raise ValueError(f"No columns to pivot matched {self.columns}")
        if self.id_columns is None:
            ids = [name for name in names if name not in stacked]
        else:
            ids = resolve_columns(names, self.id_columns)
            if set(ids) & set(stacked):
                raise ValueError(f"Columns {set(ids) & set(stacked)} are both identifiers and pivoted")

        output_names = ids + [self.names_to, self.values_to]
        if len(set(output_names)) != len(output_names):
            raise DuplicateColumn(f"Pivoting would produce duplicate columns {output_names}")

        arrays = align_types(*(batch.column(name) for name in stacked))
        if len({array.type for array in arrays}) > 1:
            types = {name: str(array.type) for name, array in zip(stacked, arrays)}
            raise TypeMismatch(f"Unable to pivot columns of different types: {types}")

        num_rows, num_stacked = batch.num_rows, len(stacked)
        labels = [self._strip_prefix(name) for name in stacked]
        row_indices = pa.array(
            [rowidx for rowidx in range(num_rows) for _ in range(num_stacked)],
            type=pa.int64(),
        )
        # Stacked columns are concatenated one after the other,
        # so the value of row r in column c is at c * num_rows + r.
        value_indices = pa.array(
            [c * num_rows + r for r in range(num_rows) for c in range(num_stacked)],
            type=pa.int64(),
        )
        columns = [batch.column(name).take(row_indices) for name in ids]
        columns.append(pa.array(labels * num_rows, type=pa.string()))
        columns.append(pa.concat_arrays(arrays).take(value_indices))
        result = pa.RecordBatch.from_arrays(columns, names=output_names)

        if self.values_drop_na:
            result = result.filter(pc.is_valid(result.column(self.values_to)))
        yield result

    def _strip_prefix(self, name: str) -> str:
        if self.names_prefix and name.startswith(self.names_prefix):
            return name[len(self.names_prefix):]
        return name


class PivotWiderNode(QueryPlanNode):
    """Spread a pair of name and value columns in one column for each name.

    Rows sharing the same identifier columns are collapsed
    in a single row, in order of first appearance. Each distinct value
    of the names column becomes a new column, in order of first appearance,
    containing the values for that name.
    Combinations of identifiers and names that never appear get
    ``values_fill``, by default a missing value.

    Each combination of identifiers and name must appear at most once,
    otherwise :class:`AmbiguousPivot` is raised. So widening back
    a table stacked by :class:`PivotLongerNode` only works when its
    identifier columns are unique for each original row: with
    repeated identifiers, or no identifier column left at all,
    the stacked rows can't be told apart.

    >>> import pyarrow as pa
    >>> from datawrangle.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({
    ...     "plot_id": [1, 1, 2],
    ...     "species": ["DM", "NL", "DM"],
    ...     "weight": [40, 35, 12],
    ... })
    >>> node = PivotWiderNode("species", "weight", PyArrowTableDataSource(data))
    >>> next(node.batches()).to_pydict()
    {'plot_id': [1, 2], 'DM': [40, 12], 'NL': [35, None]}
    """

    def __init__(
        self,
        names_from: str,
        values_from: str,
        child: QueryPlanNode,
        id_columns: list[str | ColumnSelector] | None = None,
        values_fill: object = None,
        names_prefix: str = "",
    ) -> None:
        """
        :param names_from: The column whose values become the new column names.
        :param values_from: The column whose values fill the new columns.
        :param child: The node emitting the data.
        :param id_columns: The columns identifying each output row, by default
                           all the columns except ``names_from`` and ``values_from``.
        :param values_fill: Value for the cells with no value.
        :param names_prefix: Added to the start of the new column names.
        """
        self.names_from = names_from
        self.values_from = values_from
        self.child = child
        self.id_columns = id_columns
        self.values_fill = values_fill
        self.names_prefix = names_prefix

    def __str__(self) -> str:
        return (
            f"PivotWiderNode(names_from={self.names_from}, "
            f"values_from={self.values_from}, {self.child})"
        )

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        batch = materialize(self.child)
        names = batch.schema.names
        check_columns(batch, [self.names_from, self.values_from])
        if self.id_columns is None:
            ids = [n for n in names if n not in (self.names_from, self.values_from)]
        else:
            ids = resolve_columns(names, self.id_columns)

        id_rows = key_tuples(batch, ids)
        name_values = batch.column(self.names_from).to_pylist()

        positions: dict[tuple, int] = {}
        first_rows: list[int] = []
        labels: list[str] = []
        cells: dict[tuple[int, str], int] = {}
        for rowidx, (key, name) in enumerate(zip(id_rows, name_values)):
            position = positions.get(key)
            if position is None:
                position = positions[key] = len(first_rows)
                first_rows.append(rowidx)
            label = self.names_prefix + ("NA" if name is None else str(name))
            if label not in labels:
                labels.append(label)
            if (position, label) in cells:
                raise AmbiguousPivot(
                    f"Multiple values for {dict(zip(ids, key))} and {self.names_from}={name!r}"
                )
            cells[(position, label)] = rowidx

        output_names = ids + labels
        if len(set(output_names)) != len(output_names):
            raise DuplicateColumn(f"Pivoting would produce duplicate columns {output_names}")

        first_indices = pa.array(first_rows, type=pa.int64())
        columns = [batch.column(name).take(first_indices) for name in ids]
        values = batch.column(self.values_from)
        for label in labels:
            indices = pa.array(
                [cells.get((position, label)) for position in range(len(first_rows))],
                type=pa.int64(),
            )
            column = values.take(indices)
            if self.values_fill is not None:
                try:
                    column = pc.fill_null(column, self.values_fill)
                except ARROW_TYPE_ERRORS as e:
                    raise TypeMismatch(f"Invalid values_fill {self.values_fill!r}: {e}") from e
            columns.append(column)
        yield pa.RecordBatch.from_arrays(columns, names=output_names)
