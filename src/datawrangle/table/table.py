"""The Table object itself."""

import functools
import operator
from typing import Any, Callable, Iterable, Self

import pyarrow as pa

from ..compute import (
    AggregateNode,
    BindColsNode,
    BindRowsNode,
    DistinctNode,
    DuplicateColumn,
    FilterNode,
    JoinNode,
    PaginateNode,
    PivotLongerNode,
    PivotWiderNode,
    ProjectNode,
    PyArrowTableDataSource,
    RenameNode,
    RowCountMismatch,
    SortNode,
    TypeMismatch,
    UnknownColumn,
    col,
    n,
)
from ..compute.base import Expression, QueryPlanNode, materialize, table_to_batch
from ..compute.expressions import ARROW_TYPE_ERRORS
from ..compute.selectors import ColumnSelector, resolve_columns
from ..compute.sorting import SortKey, parse_sort_keys
from ..utils.tabulate import tabulate

JoinBy = str | list[str] | dict[str, str] | list[tuple[str, str]] | None


class Table:
    """Data structure that handles data in rows and columns.

    The Table object represents in-memory data and
    the transformations that can be performed over it.

    Tables are immutable, every transformation returns a new Table
    and leaves the original one untouched, so that each step of
    a pipeline can be reused as the starting point of another one.

    Transformations are eager: each method builds a query plan
    over the data of the table and executes it immediately,
    which means that invalid operations fail at the method
    that caused them.

    >>> from datawrangle.compute import col
    >>> surveys = Table({"species_id": ["DM", "NL", "DM"], "weight": [40, 150, None]})
    >>> surveys.filter(col("weight") < 100).to_pylist()
    [{'species_id': 'DM', 'weight': 40}]
    >>> surveys.num_rows
    3
    """

    def __init__(self, data: "Table | pa.Table | pa.RecordBatch | dict") -> None:
        """
        :param data: The content of the table, a `pyarrow.Table`,
                     a `pyarrow.RecordBatch`, another Table or
                     a ``{column_name: values}`` dictionary.
        """
        if isinstance(data, Table):
            batch = data._batch
        elif isinstance(data, pa.RecordBatch):
            batch = data
        elif isinstance(data, pa.Table):
            batch = table_to_batch(data)
        elif isinstance(data, dict):
            batch = self._from_dict(data)
        else:
            raise ValueError(
                "Invalid input, expected a Table, pyarrow.Table, pyarrow.RecordBatch or dict"
            )

        names = batch.schema.names
        if len(set(names)) != len(names):
            raise DuplicateColumn(f"Duplicate column names in {names}")
        self._batch = batch

    @staticmethod
    def _from_dict(data: dict) -> pa.RecordBatch:
        lengths = {name: len(values) for name, values in data.items()}
        if len(set(lengths.values())) > 1:
            raise RowCountMismatch(f"Columns have different lengths: {lengths}")
        try:
            return pa.RecordBatch.from_pydict(data)
        except ARROW_TYPE_ERRORS as e:
            raise TypeMismatch(f"Unable to build a table from the data: {e}") from e

    @classmethod
    def from_pydict(cls, data: dict[str, list]) -> Self:
        """Create a Table out of a ``{column_name: values}`` dictionary."""
        return cls(data)

    @classmethod
    def from_pylist(cls, rows: list[dict[str, Any]]) -> Self:
        """Create a Table out of a list of rows.

        The columns are all the keys found in the rows, in order
        of appearance, rows that lack a key get a missing value.

        >>> Table.from_pylist([{"a": 1}, {"a": 2, "b": "x"}]).to_pydict()
        {'a': [1, 2], 'b': [None, 'x']}
        """
        names: list[str] = []
        for row in rows:
            names.extend(key for key in row if key not in names)
        return cls({name: [row.get(name) for row in rows] for name in names})

    # Inspection

    @property
    def column_names(self) -> list[str]:
        """The names of the columns, in order."""
        return self._batch.schema.names

    @property
    def schema(self) -> pa.Schema:
        """The names and types of the columns."""
        return self._batch.schema

    @property
    def num_rows(self) -> int:
        return self._batch.num_rows

    @property
    def num_columns(self) -> int:
        return self._batch.num_columns

    def __len__(self) -> int:
        return self._batch.num_rows

    def equals(self, other: "Table") -> bool:
        """If the two tables have the same columns, types and values."""
        if not isinstance(other, Table):
            return False
        return self._batch.equals(other._batch)

    def __eq__(self, other: object) -> bool:
        return self.equals(other)

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"Table: {self.num_rows} rows x {self.num_columns} columns\n"
            f"{tabulate(self._batch)}"
        )

    # Output

    def to_arrow(self) -> pa.Table:
        """The data of the table as a `pyarrow.Table`"""
        return pa.Table.from_batches([self._batch])

    def to_batch(self) -> pa.RecordBatch:
        """The data of the table as a `pyarrow.RecordBatch`"""
        return self._batch

    def to_pylist(self) -> list[dict[str, Any]]:
        """The rows of the table as dictionaries, missing values are ``None``."""
        return self._batch.to_pylist()

    def to_pydict(self) -> dict[str, list]:
        """The columns of the table as lists, missing values are ``None``."""
        return self._batch.to_pydict()

    def pull(self, column: str) -> list:
        """Extract the values of a single column as a list.

        >>> Table({"a": [1, None, 3]}).pull("a")
        [1, None, 3]
        """
        if column not in self.column_names:
            raise UnknownColumn(column, self.column_names)
        return self._batch.column(column).to_pylist()

    # Verbs

    def _source(self) -> PyArrowTableDataSource:
        return PyArrowTableDataSource(self._batch)

    def _run(self, node: QueryPlanNode) -> Self:
        return self.__class__(materialize(node))

    def select(self, *columns: str | ColumnSelector) -> Self:
        """Keep only some columns, in the requested order.

        Columns can be provided by name or through selectors,
        negated selectors drop the columns they match:

        >>> from datawrangle.compute import ends_with
        >>> t = Table({"record_id": [1], "species_id": ["DM"], "weight": [40]})
        >>> t.select("weight", ends_with("_id")).column_names
        ['weight', 'record_id', 'species_id']
        >>> t.select(~ends_with("_id")).column_names
        ['weight']
        """
        return self._run(ProjectNode(list(columns), None, self._source()))

    def rename(self, mapping: dict[str, str] | None = None, **renames: str) -> Self:
        """Rename columns, provided as ``new_name="old_name"``.

        Renamed columns keep their position.
        """
        renames = {**(mapping or {}), **renames}
        return self._run(RenameNode(renames, self._source()))

    def filter(self, *predicates: Expression) -> Self:
        """Keep only the rows for which all predicates are true.

        Rows where a predicate is missing are discarded too.
        """
        if not predicates:
            return self
        predicate = functools.reduce(operator.and_, predicates)
        return self._run(FilterNode(predicate, self._source()))

    def mutate(
        self, assignments: dict[str, Expression | Any] | None = None, **columns: Expression | Any
    ) -> Self:
        """Compute new columns, or replace existing ones.

        Columns are computed in order, so each one can refer
        to those computed before it.

        >>> from datawrangle.compute import col
        >>> Table({"x": [1, 2]}).mutate(y=col("x") * 2, z=col("y") + 1).to_pydict()
        {'x': [1, 2], 'y': [2, 4], 'z': [3, 5]}

        :param assignments: ``{name: expression}`` for names that are
                            not valid Python identifiers.
        """
        project = {**(assignments or {}), **columns}
        return self._run(ProjectNode(None, project, self._source()))

    def transmute(
        self, assignments: dict[str, Expression | Any] | None = None, **columns: Expression | Any
    ) -> Self:
        """Like :meth:`mutate`, but keep only the computed columns."""
        project = {**(assignments or {}), **columns}
        return self._run(ProjectNode([], project, self._source()))

    def arrange(self, *keys: SortKey) -> Self:
        """Sort the rows by one or more columns.

        Keys are column names, sorted ascending, or the result
        of :func:`datawrangle.compute.desc`. Missing values are
        placed last and rows with equal keys keep their order.

        >>> from datawrangle.compute import desc
        >>> t = Table({"g": ["a", "b", "a"], "x": [1, 2, 3]})
        >>> t.arrange(desc("g")).pull("x")
        [2, 1, 3]
        """
        columns, descending = parse_sort_keys(list(keys))
        return self._run(SortNode(columns, descending, self._source()))

    def group_by(self, *keys: str | ColumnSelector) -> "GroupedTable":
        """Group the rows that share the same values for the keys.

        Returns a :class:`GroupedTable` on which aggregations
        and window functions are computed group by group.
        """
        from .grouped import GroupedTable

        return GroupedTable(self, resolve_columns(self.column_names, keys))

    def summarize(
        self, aggregations: dict[str, Expression] | None = None, **columns: Expression
    ) -> Self:
        """Reduce the whole table to a single row of aggregations.

        >>> from datawrangle.compute import n, SumAggregation
        >>> Table({"x": [1, 2, 3]}).summarize(n=n(), total=SumAggregation("x")).to_pylist()
        [{'n': 3, 'total': 6}]
        """
        aggregations = {**(aggregations or {}), **columns}
        return self._run(AggregateNode([], aggregations, self._source()))

    summarise = summarize

    def count(self, *columns: str, name: str = "n", sort: bool = False) -> Self:
        """Count the rows for each distinct value of the columns.

        :param name: The name of the column with the counts.
        :param sort: Put the largest groups first.
        """
        if not columns:
            return self.tally(name=name)
        return self.group_by(*columns).count(name=name, sort=sort)

    def tally(self, name: str = "n") -> Self:
        """Count the rows of the table."""
        return self.summarize({name: n()})

    def distinct(self, *columns: str | ColumnSelector) -> Self:
        """Keep the first row for each distinct combination of the columns.

        Only the compared columns are kept, all columns
        are compared when none is provided.
        """
        return self._run(DistinctNode(list(columns), self._source()))

    def drop_na(self, *columns: str | ColumnSelector) -> Self:
        """Discard the rows with a missing value in any of the columns.

        All columns are checked when none is provided.

        >>> Table({"a": [1, None, 3], "b": ["x", "y", None]}).drop_na("a").pull("a")
        [1, 3]
        """
        names = resolve_columns(self.column_names, columns) if columns else self.column_names
        return self.filter(*(col(name).is_valid() for name in names))

    def head(self, n: int = 5) -> Self:
        """The first ``n`` rows."""
        return self.slice(0, n)

    def slice(self, offset: int, length: int | None = None) -> Self:
        """The rows starting at ``offset``, up to ``length`` of them."""
        if length is None:
            length = max(self.num_rows - offset, 0)
        return self._run(PaginateNode(offset, length, self._source()))

    def pipe(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Invoke ``func(table, *args, **kwargs)``.

        Allows to use custom functions as steps of a chain of methods.
        """
        return func(self, *args, **kwargs)

    # Joins

    def _join(
        self,
        other: "Table",
        by: JoinBy,
        how: str,
        suffixes: tuple[str, str] = ("", "_right"),
        na_matches: str = "na",
    ) -> Self:
        other = other if isinstance(other, Table) else Table(other)
        left_keys, right_keys = _join_keys(self, other, by)
        return self._run(
            JoinNode(
                left_keys,
                right_keys,
                self._source(),
                other._source(),
                how=how,
                suffixes=suffixes,
                na_matches=na_matches,
            )
        )

    def inner_join(
        self, other: "Table", by: JoinBy = None, suffixes: tuple[str, str] = ("", "_right"),
        na_matches: str = "na",
    ) -> Self:
        """Combine the rows of the two tables that have matching keys.

        ``by`` can be a column name, a list of column names,
        a ``{left_name: right_name}`` dictionary or a list
        of ``(left_name, right_name)`` pairs. When not provided
        the tables are joined on all the columns they share.

        >>> people = Table({"id": [1, 2, 3], "name": ["Alice", "Bob", "Charlie"]})
        >>> ages = Table({"person": [3, 2], "age": [25, 30]})
        >>> people.inner_join(ages, by={"id": "person"}).to_pylist()
        [{'id': 2, 'name': 'Bob', 'age': 30}, {'id': 3, 'name': 'Charlie', 'age': 25}]
        """
        return self._join(other, by, "inner", suffixes, na_matches)

    def left_join(
        self, other: "Table", by: JoinBy = None, suffixes: tuple[str, str] = ("", "_right"),
        na_matches: str = "na",
    ) -> Self:
        """Keep all rows of this table, adding the matching rows of ``other``."""
        return self._join(other, by, "left", suffixes, na_matches)

    def right_join(
        self, other: "Table", by: JoinBy = None, suffixes: tuple[str, str] = ("", "_right"),
        na_matches: str = "na",
    ) -> Self:
        """Keep all rows of ``other``, adding the matching rows of this table."""
        return self._join(other, by, "right", suffixes, na_matches)

    def full_join(
        self, other: "Table", by: JoinBy = None, suffixes: tuple[str, str] = ("", "_right"),
        na_matches: str = "na",
    ) -> Self:
        """Keep all rows of both tables, combining those that match."""
        return self._join(other, by, "full", suffixes, na_matches)

    def semi_join(self, other: "Table", by: JoinBy = None, na_matches: str = "na") -> Self:
        """Keep the rows of this table that have a match in ``other``."""
        return self._join(other, by, "semi", na_matches=na_matches)

    def anti_join(self, other: "Table", by: JoinBy = None, na_matches: str = "na") -> Self:
        """Keep the rows of this table that have no match in ``other``."""
        return self._join(other, by, "anti", na_matches=na_matches)

    # Combining and reshaping

    def bind_rows(self, *others: "Table", id: str | None = None) -> Self:
        """Append the rows of other tables after the rows of this one."""
        return bind_rows(self, *others, id=id)

    def bind_cols(self, *others: "Table") -> Self:
        """Append the columns of other tables after the columns of this one."""
        return bind_cols(self, *others)

    def pivot_longer(
        self,
        columns: str | ColumnSelector | Iterable[str | ColumnSelector],
        names_to: str = "name",
        values_to: str = "value",
        *,
        id_columns: list[str | ColumnSelector] | None = None,
        names_prefix: str | None = None,
        values_drop_na: bool = False,
    ) -> Self:
        """Stack columns into a column of names and a column of values.

        >>> wide = Table({"plot_id": [1, 2], "DM": [40, 12], "NL": [35, None]})
        >>> wide.pivot_longer(["DM", "NL"], "species", "weight", values_drop_na=True).to_pydict()
        {'plot_id': [1, 1, 2], 'species': ['DM', 'NL', 'DM'], 'weight': [40, 35, 12]}
        """
        return self._run(
            PivotLongerNode(
                _as_list(columns),
                names_to,
                values_to,
                self._source(),
                id_columns=id_columns,
                names_prefix=names_prefix,
                values_drop_na=values_drop_na,
            )
        )

    def pivot_wider(
        self,
        names_from: str = "name",
        values_from: str = "value",
        *,
        id_columns: list[str | ColumnSelector] | None = None,
        values_fill: Any = None,
        names_prefix: str = "",
    ) -> Self:
        """Spread a column of names and a column of values into multiple columns.

        >>> long = Table({"plot_id": [1, 1, 2], "species": ["DM", "NL", "DM"], "weight": [40, 35, 12]})
        >>> long.pivot_wider("species", "weight", values_fill=0).to_pydict()
        {'plot_id': [1, 2], 'DM': [40, 12], 'NL': [35, 0]}
        """
        return self._run(
            PivotWiderNode(
                names_from,
                values_from,
                self._source(),
                id_columns=id_columns,
                values_fill=values_fill,
                names_prefix=names_prefix,
            )
        )


def _as_list(columns: Any) -> list:
    if isinstance(columns, (str, ColumnSelector)):
        return [columns]
    return list(columns)


def _join_keys(left: Table, right: Table, by: JoinBy) -> tuple[list[str], list[str]]:
    """Convert the ``by`` argument of joins to the left and right key columns."""
    if by is None:
        common = [name for name in left.column_names if name in right.column_names]
        if not common:
            raise ValueError("The tables have no columns in common, provide the join keys")
        return common, common
    if isinstance(by, str):
        return [by], [by]
    if isinstance(by, dict):
        return list(by.keys()), list(by.values())

    left_keys, right_keys = [], []
    for key in by:
        if isinstance(key, str):
            left_keys.append(key)
            right_keys.append(key)
        else:
            left_key, right_key = key
            left_keys.append(left_key)
            right_keys.append(right_key)
    return left_keys, right_keys


def bind_rows(*tables: Table | pa.Table | dict, id: str | None = None) -> Table:
    """Stack the rows of multiple tables.

    The result has all the columns found in the tables,
    rows of tables that lack a column get a missing value.

    >>> bind_rows({"a": ["x"], "b": [2]}, {"a": ["y"]}).to_pylist()
    [{'a': 'x', 'b': 2}, {'a': 'y', 'b': None}]

    :param id: Name of a column to add with the position
               of the table each row comes from.
    """
    tables = [table if isinstance(table, Table) else Table(table) for table in tables]
    if not tables:
        raise ValueError("bind_rows requires at least one table")
    node = BindRowsNode([table._source() for table in tables], id=id)
    return tables[0]._run(node)


def bind_cols(*tables: Table | pa.Table | dict) -> Table:
    """Put side by side the columns of tables with the same number of rows."""
    tables = [table if isinstance(table, Table) else Table(table) for table in tables]
    if not tables:
        raise ValueError("bind_cols requires at least one table")
    node = BindColsNode([table._source() for table in tables])
    return tables[0]._run(node)


__all__ = ("Table", "bind_rows", "bind_cols")
