"""Query plan nodes that implement projection of columns.

A common request when wrangling data is to select specific columns
and project new columns based on expressions.
An example is the ``SELECT`` clause in SQL queries or
the ``select`` and ``mutate`` verbs of dataframe libraries.

This module implements the basic projection capabilities
and the renaming of columns.
"""

from typing import Iterator

import pyarrow as pa

from .base import QueryPlanNode
from .errors import DuplicateColumn, UnknownColumn
from .expressions import Expression, evaluate_as_array
from .grouping import apply_per_group, group_rows
from .selectors import ColumnSelector, resolve_columns


def set_column(batch: pa.RecordBatch, name: str, values: pa.Array) -> pa.RecordBatch:
    """Replace the column with the given name, or append it if missing."""
    names = batch.schema.names
    columns = list(batch.columns)
    if name in names:
        columns[names.index(name)] = values
    else:
        names.append(name)
        columns.append(values)
    return pa.RecordBatch.from_arrays(columns, names=names)


class ProjectNode(QueryPlanNode):
    """Project data by selecting specific columns and computing expressions.

    The projection expects a list of column names (or selectors)
    to select and a dictionary of column names and expressions
    to project new columns.

    Expressions are computed in order, so each expression
    can refer to the columns computed by the previous ones.
    Projecting a column that already exists replaces it
    in its current position.

    When ``group_by`` is provided, the expressions are
    computed separately for each group of rows, so that
    aggregations and window functions only see the rows
    of the group.

    >>> import pyarrow as pa
    >>> from datawrangle.compute import col, PyArrowTableDataSource
    >>> data = pa.record_batch({"a": [1, 2, 3], "b": [4, 5, 6]})
    >>> node = ProjectNode(["a"], {"ab_sum": col("a") + col("b")},
    ...                    PyArrowTableDataSource(data))
    >>> next(node.batches()).to_pydict()
    {'a': [1, 2, 3], 'ab_sum': [5, 7, 9]}
    """

    def __init__(
        self,
        select: list[str | ColumnSelector] | None,
        project: dict[str, Expression] | None,
        child: QueryPlanNode,
        group_by: list[str] | None = None,
    ) -> None:
        """
        :param select: The list of column names to select.
                       ``None`` means select all columns.
                       ``[]`` means select only the projected columns.
        :param project: The dict {name: Expression} to project new columns.
        :param child: The node emitting the data to be projected.
        :param group_by: Compute the expressions within groups of these columns.
        """
        self.select = select
        self.project = project or {}
        self.child = child
        self.group_by = group_by or []

    def __str__(self) -> str:
        grouping = f", group_by={self.group_by}" if self.group_by else ""
        return f"ProjectNode(select={self.select}, project={self.project}{grouping}, child={self.child})"

    def batches(self) -> Iterator[pa.RecordBatch]:
        """Apply the projection to the child node.

        For each recordbatch yielded by the child node,
        sequentially apply the expressions to project new columns
        and then select the requested columns.

        The selection has to happen after the projection,
        as the expressions might depend on columns that
        are not selected.
        """
        for batch in self.child.batches():
            if self.select is None:
                restrict_columns = None
            else:
                restrict_columns = resolve_columns(batch.schema.names, self.select)

            groups = group_rows(batch, self.group_by) if self.group_by else None
            for name, expr in self.project.items():
                if groups is None:
                    values = evaluate_as_array(batch, expr)
                else:
                    values = apply_per_group(
                        batch, groups, lambda b, e=expr: evaluate_as_array(b, e)
                    )
                batch = set_column(batch, name, values)
                if groups is not None and name in self.group_by:
                    # The rows of each group changed with the key.
                    groups = group_rows(batch, self.group_by)

            if restrict_columns is not None:
                keep = restrict_columns + [
                    name for name in self.project if name not in restrict_columns
                ]
                batch = pa.RecordBatch.from_arrays(
                    [batch.column(name) for name in keep], names=keep
                )

            yield batch


class RenameNode(QueryPlanNode):
    """Rename columns keeping their position.

    >>> import pyarrow as pa
    >>> from datawrangle.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"wgt": [1, 2], "sex": ["F", "M"]})
    >>> next(RenameNode({"weight": "wgt"}, PyArrowTableDataSource(data)).batches()).schema.names
    ['weight', 'sex']
    """

    def __init__(self, renames: dict[str, str], child: QueryPlanNode) -> None:
        """
        :param renames: The ``{new_name: old_name}`` dictionary of renames.
        :param child: The node emitting the data.
        """
        self.renames = renames
        self.child = child

    def __str__(self) -> str:
        return f"RenameNode({self.renames}, {self.child})"

    def batches(self) -> Iterator[pa.RecordBatch]:
        new_names = {old: new for new, old in self.renames.items()}
        for batch in self.child.batches():
            names = batch.schema.names
            for old in new_names:
                if old not in names:
                    raise UnknownColumn(old, names)
            renamed = [new_names.get(name, name) for name in names]
            if len(set(renamed)) != len(renamed):
                raise DuplicateColumn(f"Renaming would produce duplicate columns: {renamed}")
            yield pa.RecordBatch.from_arrays(batch.columns, names=renamed)
