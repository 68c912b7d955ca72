"""The datawrangle Compute Engine

The compute engine defines the in-memory
format for query plans and the plan nodes
supported.

The compute engine is tightly bound to Apache Arrow,
thus the engine will expect to always deal with
:class:`pyarrow.RecordBatch` and emit a new RecordBatch
as the result of the node execution.

This allows to easily build compute pipelines like::

    (RecordBatch)-->Node1--(RecordBatch)-->Node2--(RecordBatch)-->...

The query plan nodes themselves are in charge of their execution,
this keeps the behavior near to the node and thus makes easy to
know how a Node is actually executed without having to look around too much.

Building a query plan requires to combine the nodes that we want
to be executed starting with one or more ``DataSource`` nodes as the
leafs node of a query:

>>> import pyarrow as pa
>>> from datawrangle.compute import col, PyArrowTableDataSource, FilterNode
>>> data = pa.table({
...    "animals": pa.array(["Flamingo", "Horse", "Brittle stars", "Centipede"]),
...    "n_legs": pa.array([2, 4, 5, 100])
... })
>>> query = FilterNode(col("n_legs") >= 5, child=PyArrowTableDataSource(data))
>>> for batch in query.batches():
...     print(batch.to_pydict())
{'animals': ['Brittle stars', 'Centipede'], 'n_legs': [5, 100]}

Most users won't build query plans by hand, but will use
the :class:`datawrangle.table.Table` API, which builds and runs
the query plans for each operation.
"""

from .aggregate import (
    AggregateNode,
    Aggregation,
    CountAggregation,
    CountDistinctAggregation,
    MaxAggregation,
    MeanAggregation,
    MedianAggregation,
    MinAggregation,
    RowCountAggregation,
    StdDevAggregation,
    SumAggregation,
    mean,
    median,
    n,
    n_distinct,
    sd,
)
from .base import ColumnRef, Expression, Literal, QueryPlanNode, col, lit, materialize
from .binding import BindColsNode, BindRowsNode
from .datasources import PyArrowTableDataSource
from .errors import (
    AmbiguousPivot,
    ComputeError,
    DuplicateColumn,
    IncompatibleBind,
    RowCountMismatch,
    TypeMismatch,
    UnknownColumn,
)
from .expressions import FunctionCallExpression
from .filtering import DistinctNode, FilterNode
from .join import JOIN_KINDS, JoinNode
from .pagination import PaginateNode
from .reshape import PivotLongerNode, PivotWiderNode
from .selection import ProjectNode, RenameNode
from .selectors import (
    ColumnSelector,
    contains,
    ends_with,
    everything,
    matches,
    one_of,
    starts_with,
)
from .sorting import SortNode, asc, desc
from .window import (
    case_when,
    cume_dist,
    dense_rank,
    if_else,
    lag,
    lead,
    min_rank,
    ntile,
    percent_rank,
    recode,
    row_number,
)

__all__ = (
    "PyArrowTableDataSource",
    "QueryPlanNode",
    "materialize",
    "FilterNode",
    "DistinctNode",
    "FunctionCallExpression",
    "Expression",
    "col",
    "lit",
    "ColumnRef",
    "Literal",
    "PaginateNode",
    "SortNode",
    "asc",
    "desc",
    "ProjectNode",
    "RenameNode",
    "AggregateNode",
    "Aggregation",
    "CountAggregation",
    "CountDistinctAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "MedianAggregation",
    "MinAggregation",
    "RowCountAggregation",
    "StdDevAggregation",
    "SumAggregation",
    "n",
    "n_distinct",
    "mean",
    "median",
    "sd",
    "JoinNode",
    "JOIN_KINDS",
    "BindRowsNode",
    "BindColsNode",
    "PivotLongerNode",
    "PivotWiderNode",
    "ColumnSelector",
    "starts_with",
    "ends_with",
    "contains",
    "matches",
    "one_of",
    "everything",
    "row_number",
    "min_rank",
    "dense_rank",
    "percent_rank",
    "cume_dist",
    "ntile",
    "lag",
    "lead",
    "if_else",
    "case_when",
    "recode",
    "ComputeError",
    "UnknownColumn",
    "TypeMismatch",
    "RowCountMismatch",
    "DuplicateColumn",
    "IncompatibleBind",
    "AmbiguousPivot",
)
