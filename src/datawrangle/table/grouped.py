"""Tables whose rows are partitioned in groups."""

import functools
import operator
from typing import Any, Self

from ..compute import AggregateNode, FilterNode, ProjectNode, n
from ..compute.base import Expression
from ..compute.grouping import Groups, check_columns, group_rows
from ..compute.selectors import ColumnSelector, resolve_columns
from ..compute.sorting import SortKey, desc
from ..utils.tabulate import tabulate
from .table import Table


class GroupedTable:
    """A Table whose rows are grouped by the values of some key columns.

    Grouping doesn't change the data, it changes how
    the following operations are computed:

    * :meth:`summarize` produces one row for each group.
    * :meth:`mutate` and :meth:`filter` compute aggregations and
      window functions within each group, so for example
      ``row_number()`` restarts from 1 in each group.

    >>> from datawrangle.compute import row_number
    >>> surveys = Table({"plot_id": [1, 2, 1, 2, 2], "weight": [40, 35, 12, 8, 20]})
    >>> surveys.group_by("plot_id").mutate(nth=row_number()).pull("nth")
    [1, 1, 2, 2, 3]

    The groups are recorded as part of the GroupedTable, so
    operations that keep the rows return a new GroupedTable
    while :meth:`summarize` and :meth:`ungroup` return a plain :class:`Table`.
    """

    def __init__(self, table: Table, keys: list[str]) -> None:
        """
        :param table: The data being grouped.
        :param keys: The columns to group by.
        """
        if not keys:
            raise ValueError("Grouping requires at least one column")
        check_columns(table.to_batch(), keys)
        self.table = table
        self.keys = list(keys)

    @functools.cached_property
    def groups(self) -> Groups:
        """The partition of the rows, groups are sorted by their keys."""
        return group_rows(self.table.to_batch(), self.keys)

    @property
    def n_groups(self) -> int:
        """How many distinct groups there are."""
        return len(self.groups)

    def group_keys(self) -> Table:
        """A table with the keys of each group, one row for each group."""
        return Table(self.groups.key_batch)

    @property
    def column_names(self) -> list[str]:
        return self.table.column_names

    @property
    def num_rows(self) -> int:
        return self.table.num_rows

    def __len__(self) -> int:
        return self.table.num_rows

    def __repr__(self) -> str:
        return (
            f"GroupedTable: {self.num_rows} rows x {self.table.num_columns} columns, "
            f"groups: {', '.join(self.keys)} [{self.n_groups}]\n"
            f"{tabulate(self.table.to_batch())}"
        )

    def ungroup(self) -> Table:
        """Discard the grouping and return the plain table."""
        return self.table

    def to_pylist(self) -> list[dict[str, Any]]:
        return self.table.to_pylist()

    def to_pydict(self) -> dict[str, list]:
        return self.table.to_pydict()

    def pull(self, column: str) -> list:
        return self.table.pull(column)

    def _regroup(self, table: Table) -> Self:
        return self.__class__(table, self.keys)

    def _source(self):
        return self.table._source()

    def summarize(
        self, aggregations: dict[str, Expression] | None = None, **columns: Expression
    ) -> Table:
        """Compute aggregations for each group.

        The result has one row for each group, with the key
        columns followed by the aggregations. Groups are sorted
        by their keys and rows with a missing key form a group
        that is placed last.

        >>> from datawrangle.compute import n
        >>> t = Table({"g": [1, 1, 2], "x": [3, 4, 1]})
        >>> t.group_by("g").summarize(n=n()).to_pylist()
        [{'g': 1, 'n': 2}, {'g': 2, 'n': 1}]
        """
        aggregations = {**(aggregations or {}), **columns}
        return self.table._run(AggregateNode(self.keys, aggregations, self._source()))

    summarise = summarize

    def tally(self, name: str = "n", sort: bool = False) -> Table:
        """Count the rows of each group.

        :param name: The name of the column with the counts.
        :param sort: Put the largest groups first.
        """
        result = self.summarize({name: n()})
        if sort:
            result = result.arrange(desc(name))
        return result

    def count(self, *columns: str, name: str = "n", sort: bool = False) -> Table:
        """Count the rows for each group and distinct value of the columns."""
        keys = self.keys + [c for c in columns if c not in self.keys]
        return GroupedTable(self.table, keys).tally(name=name, sort=sort)

    def mutate(
        self, assignments: dict[str, Expression | Any] | None = None, **columns: Expression | Any
    ) -> Self:
        """Compute new columns, evaluating expressions within each group.

        Aggregations are computed on the rows of the group,
        so ``col("weight") - mean("weight")`` gives the difference
        from the mean of the group. Rows keep their original order.
        """
        project = {**(assignments or {}), **columns}
        node = ProjectNode(None, project, self._source(), group_by=self.keys)
        return self._regroup(self.table._run(node))

    def transmute(
        self, assignments: dict[str, Expression | Any] | None = None, **columns: Expression | Any
    ) -> Self:
        """Like :meth:`mutate`, but keep only the keys and the computed columns."""
        project = {**(assignments or {}), **columns}
        node = ProjectNode(list(self.keys), project, self._source(), group_by=self.keys)
        return self._regroup(self.table._run(node))

    def filter(self, *predicates: Expression) -> Self:
        """Keep the rows for which all predicates are true within their group.

        >>> from datawrangle.compute import col, MaxAggregation
        >>> t = Table({"g": ["a", "b", "a", "b"], "x": [1, 5, 3, 2]})
        >>> t.group_by("g").filter(col("x") == MaxAggregation("x")).pull("x")
        [5, 3]
        """
        if not predicates:
            return self
        predicate = functools.reduce(operator.and_, predicates)
        node = FilterNode(predicate, self._source(), group_by=self.keys)
        return self._regroup(self.table._run(node))

    def select(self, *columns: str | ColumnSelector) -> Self:
        """Keep only some columns, the grouping keys are always kept."""
        selected = resolve_columns(self.column_names, columns)
        missing_keys = [key for key in self.keys if key not in selected]
        return self._regroup(self.table.select(*missing_keys, *selected))

    def arrange(self, *keys: SortKey) -> Self:
        """Sort all the rows, ignoring the groups."""
        return self._regroup(self.table.arrange(*keys))
