"""Table API built on top of the datawrangle compute engine.

Building query plans by hand is verbose, most analyses are instead
written as a chain of "verbs", each one taking a table and
returning a new table::

    surveys -> filter -> group_by -> summarize -> arrange

The :class:`Table` object provides those verbs as methods,
each of them builds the query plan nodes necessary to perform
the operation, executes them and wraps the result in a new Table.

>>> from datawrangle.table import Table
>>> from datawrangle.compute import col, desc, n, MaxAggregation
>>> surveys = Table({
...     "plot_id": [1, 1, 2, 2, 2],
...     "species_id": ["DM", "NL", "DM", "DM", None],
...     "weight": [40, 150, 35, None, 12],
... })
>>> (surveys
...     .filter(col("weight").is_valid())
...     .group_by("species_id")
...     .summarize(n=n(), heaviest=MaxAggregation("weight"))
...     .arrange(desc("heaviest"))
...     .to_pylist())
[{'species_id': 'NL', 'n': 1, 'heaviest': 150},
 {'species_id': 'DM', 'n': 2, 'heaviest': 40},
 {'species_id': None, 'n': 1, 'heaviest': 12}]

Grouping creates a :class:`GroupedTable`, on which aggregations
and window functions are computed separately for each group.
"""

from .grouped import GroupedTable
from .table import Table, bind_cols, bind_rows

__all__ = ("Table", "GroupedTable", "bind_rows", "bind_cols")
