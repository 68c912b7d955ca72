"""Base classes and interfaces for Compute Engine

This module defines the base components that are
necessary to represent a query plan and execute it.
"""

import abc
from typing import Any, Iterator

import pyarrow as pa
import pyarrow.compute as pc

from .errors import UnknownColumn


class QueryPlanNode(abc.ABC):
    """A node of a query execution plan.

    The Query plan is represented as a tree
    of nodes. Each node is a step in the execution
    and all previous steps are children of the
    last one.

    For example a simple plan might involve
    loading data and filtering it::

        PyArrowTableDataSource -> FilterNode(filter)

    That would be a plan where the last step
    is filtering, and the data source is a child
    of the filter node.

    The number of children can be variable, some
    nodes like for example Joins, will accept two
    child nodes that have to be joined together.

    Each Node accepts :class:`pyarrow.RecordBatch`
    data as its input and emits a new
    :class:`pyarrow.RecordBatch` as its output.
    The nodes shipped with the engine always emit
    exactly one batch, even when it contains no rows,
    so that the schema of the result is always known.

    For example a simple node that takes data
    and just forwards it as is after printing
    its content can be implemented as::

        class DebugDataNode(QueryPlanNode):
            def __init__(self, child):
                self.child = child

            def batches(self):
                for b in self.child.batches():
                    print(b)
                    yield b

            def __str__(self):
                return f"DebugDataNode()"
    """

    RecordBatchesGenerator = Iterator[pa.RecordBatch]

    @abc.abstractmethod
    def batches(self) -> Iterator[pa.RecordBatch]:
        """Emits the batches for the next node.

        Each QueryPlan node is expected to be able to
        generate data that has to be provided to the next
        node in the plan.

        Usually this happens by consuming data from its
        child nodes, transforming it somehow, and yielding
        it back to the next consumer.
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the node."""
        ...


class Expression(abc.ABC):
    """Expression to apply to a RecordBatch.

    Expressions are some form of operation that
    has to be applied to the data of a :class:`pyarrow.RecordBatch`
    to create new data.

    Typical example of expressions are: A + B
    which is expected to sum column A of the RecordBatch
    to column B of the RecordBatch and return the result.

    As our engine is Column Major, applying an expression
    usually results in a new column, thus in a
    :class:`pyarrow.Array` that contains the data
    for that column. Aggregations instead return
    a single :class:`pyarrow.Scalar` which is broadcast
    when it has to be used as a column.

    Expressions support the Python operators, so
    ``col("a") + col("b")`` builds the expression that
    sums the two columns and ``col("a") > 3`` builds
    a predicate. Comparison and boolean operators
    follow three valued logic: comparing a missing value
    gives a missing result.
    """

    @abc.abstractmethod
    def apply(self, batch: pa.RecordBatch) -> pa.Array | pa.Scalar:
        """Apply the expression to a RecordBatch.

        Expression classes must implement this method
        to dictate what will happen when an expression
        is applied.

        Suppose want to implement a ``SumExpression`` class
        that might look like::

            class SumExpression(Expression):
                def __init__(self, leftcol, rightcol):
                    self.lcol = lcol  # left column name
                    self.rcol = rcol  # right column name

                def apply(self, batch):
                    return pyarrow.compute.add(
                        batch[self.lcol],
                        batch[self.rcol]
                    )
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the expression."""
        ...

    def __repr__(self) -> str:
        return str(self)

    def _call(self, func: callable, *args: Any) -> "Expression":
        # expressions.py depends on this module, so import it lazily.
        from .expressions import FunctionCallExpression

        return FunctionCallExpression(func, *args)

    def __add__(self, other: Any) -> "Expression":
        return self._call(pc.add, self, other)

    def __radd__(self, other: Any) -> "Expression":
        return self._call(pc.add, other, self)

    def __sub__(self, other: Any) -> "Expression":
        return self._call(pc.subtract, self, other)

    def __rsub__(self, other: Any) -> "Expression":
        return self._call(pc.subtract, other, self)

    def __mul__(self, other: Any) -> "Expression":
        return self._call(pc.multiply, self, other)

    def __rmul__(self, other: Any) -> "Expression":
        return self._call(pc.multiply, other, self)

    def __truediv__(self, other: Any) -> "Expression":
        from .expressions import true_divide

        return self._call(true_divide, self, other)

    def __rtruediv__(self, other: Any) -> "Expression":
        from .expressions import true_divide

        return self._call(true_divide, other, self)

    def __neg__(self) -> "Expression":
        return self._call(pc.negate, self)

    def __eq__(self, other: Any) -> "Expression":  # type: ignore[override]
        return self._call(pc.equal, self, other)

    def __ne__(self, other: Any) -> "Expression":  # type: ignore[override]
        return self._call(pc.not_equal, self, other)

    def __lt__(self, other: Any) -> "Expression":
        return self._call(pc.less, self, other)

    def __le__(self, other: Any) -> "Expression":
        return self._call(pc.less_equal, self, other)

    def __gt__(self, other: Any) -> "Expression":
        return self._call(pc.greater, self, other)

    def __ge__(self, other: Any) -> "Expression":
        return self._call(pc.greater_equal, self, other)

    def __and__(self, other: Any) -> "Expression":
        return self._call(pc.and_kleene, self, other)

    def __rand__(self, other: Any) -> "Expression":
        return self._call(pc.and_kleene, other, self)

    def __or__(self, other: Any) -> "Expression":
        return self._call(pc.or_kleene, self, other)

    def __ror__(self, other: Any) -> "Expression":
        return self._call(pc.or_kleene, other, self)

    def __invert__(self) -> "Expression":
        return self._call(pc.invert, self)

    def __hash__(self) -> int:
        return id(self)

    def is_null(self) -> "Expression":
        """Predicate that is true where the value is missing."""
        return self._call(pc.is_null, self)

    def is_valid(self) -> "Expression":
        """Predicate that is true where the value is not missing."""
        return self._call(pc.is_valid, self)

    def is_in(self, values: list) -> "Expression":
        """Predicate that is true where the value is one of ``values``."""
        return self._call(pc.is_in, self, pa.array(values))


class ColumnRef(Expression):
    """References a column in a record batch.

    When another expression or the engine need
    to operate on a specific column, we will
    need a way to reference that column and its data.

    This expression is aware of the column and when
    applied to a record batch returns the data for
    that column.
    """

    def __init__(self, name: str) -> None:
        """
        :param name: The name of the column being referenced.
        """
        self.name = name

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Get the data for the column."""
        names = batch.schema.names
        if self.name not in names:
            raise UnknownColumn(self.name, names)
        return batch.column(self.name)

    def __str__(self) -> str:
        return f"ColumnRef({self.name})"


class Literal(Expression):
    """A constant value.

    Applying a literal to a record batch always
    gives back the same :class:`pyarrow.Scalar`,
    which nodes broadcast to the length of the batch
    when a whole column is needed.
    """

    def __init__(self, value: Any) -> None:
        """
        :param value: The constant, a Python value or a pyarrow Scalar.
        """
        if not isinstance(value, pa.Scalar):
            value = pa.scalar(value)
        self.value = value

    def apply(self, batch: pa.RecordBatch) -> pa.Scalar:
        return self.value

    def __str__(self) -> str:
        return f"Literal({self.value.as_py()!r})"


col = ColumnRef
lit = Literal


def table_to_batch(table: pa.Table) -> pa.RecordBatch:
    """Convert a Table to a single RecordBatch.

    Converting a table with no rows might produce
    no batches at all, in that case an empty batch
    with the same schema is created.
    """
    batches = table.combine_chunks().to_batches()
    if not batches:
        return pa.record_batch(
            [pa.array([], type=field.type) for field in table.schema],
            schema=table.schema,
        )
    return batches[0]


def materialize(node: QueryPlanNode) -> pa.RecordBatch:
    """Execute a query plan and gather its result in a single RecordBatch.

    Nodes like sorting, joins and pivots need all the rows
    of their children at once, so they use this to consume
    their children completely.
    """
    batches = list(node.batches())
    if len(batches) == 1:
        return batches[0]
    return table_to_batch(pa.Table.from_batches(batches))
