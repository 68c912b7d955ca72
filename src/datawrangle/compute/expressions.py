"""Expressions executed by compute engine nodes.

The Compute Engine will sometimes need to filter data
or emit new data. This will be performed by nodes that
need to know how the data must be filtered or emitted.

Filters will need a ``predicate``, so an expression that
returns ``true`` or ``false`` for each row that has to be
filtered.

Projections will need an expression that computes the rows
for the projection, for example ``A + B``.

More node types might need different type of expressions.
This module implements the most common ones, the
aggregations live in :mod:`datawrangle.compute.aggregate`
and the ranking and window functions in
:mod:`datawrangle.compute.window`.

>>> import pyarrow as pa
>>> from datawrangle.compute import col
>>> data = pa.record_batch({"weight": [10, None, 30]})
>>> (col("weight") / 2).apply(data).to_pylist()
[5.0, None, 15.0]
"""

from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from .. import utils
from .base import Expression
from .errors import RowCountMismatch, TypeMismatch

ARROW_TYPE_ERRORS = (pa.ArrowNotImplementedError, pa.ArrowTypeError, pa.ArrowInvalid)
"""Errors raised by Arrow kernels when they receive data they can't handle."""


def apply_expression_if_needed(
    batch: pa.RecordBatch, o: Expression | pa.Array | Any
) -> pa.Array | pa.Scalar | Any:
    """Invoke Apply on expressions when needed

    If the provided object is an Expression,
    it will be applied to the target batch.

    Otherwise it will treat it as if it's
    already the result of an expression
    or a literal value.

    This allows us to apply all arguments
    we receive without having to care if
    they are the data we need or if they
    are the expression resulting in that data.
    """
    if isinstance(o, Expression):
        o = o.apply(batch)
    return o


def evaluate_as_array(batch: pa.RecordBatch, o: Expression | Any) -> pa.Array:
    """Evaluate an expression and make sure it results in a column.

    Scalars, like the result of an aggregation or a literal value,
    are repeated for each row of the batch.
    Lists are converted to arrays and must have
    exactly one value for each row.
    """
    value = apply_expression_if_needed(batch, o)
    if isinstance(value, (list, tuple)):
        try:
            value = pa.array(value)
        except ARROW_TYPE_ERRORS as e:
            raise TypeMismatch(f"Unable to convert values to a column: {e}") from e
    if isinstance(value, pa.ChunkedArray):
        value = value.combine_chunks()
    if isinstance(value, pa.Array):
        if len(value) != batch.num_rows:
            raise RowCountMismatch(
                f"Expression produced {len(value)} values for {batch.num_rows} rows"
            )
        return value
    if not isinstance(value, pa.Scalar):
        try:
            value = pa.scalar(value)
        except ARROW_TYPE_ERRORS as e:
            raise TypeMismatch(f"Unsupported value {value!r}: {e}") from e
    return pa.repeat(value, batch.num_rows)


def evaluate_as_mask(batch: pa.RecordBatch, o: Expression | Any) -> pa.Array:
    """Evaluate a predicate and make sure it results in a boolean column."""
    mask = evaluate_as_array(batch, o)
    if pa.types.is_null(mask.type):
        # A predicate that is missing everywhere selects nothing.
        mask = mask.cast(pa.bool_())
    if not pa.types.is_boolean(mask.type):
        raise TypeMismatch(f"Predicate {o} must be boolean, got {mask.type}")
    return mask


def align_types(*arrays: pa.Array) -> list[pa.Array]:
    """Cast columns made only of missing values to the type of the others.

    A column built out of ``None`` values has the ``null`` type
    in Arrow, which can't be mixed with other columns.
    """
    target = next((a.type for a in arrays if not pa.types.is_null(a.type)), None)
    if target is None:
        return list(arrays)
    return [a.cast(target) if pa.types.is_null(a.type) else a for a in arrays]


def true_divide(dividend: Any, divisor: Any) -> pa.Array | pa.Scalar:
    """Divide always producing floating point results.

    Arrow divides integers with integer division,
    while when wrangling data ``5 / 2`` is expected to be ``2.5``.

    Only numbers can be divided, casting would otherwise
    parse strings like ``"3"`` as numbers.
    """
    for operand in (dividend, divisor):
        if not isinstance(operand, (pa.Array, pa.ChunkedArray, pa.Scalar)):
            operand = pa.scalar(operand)
        if not is_numeric_type(operand.type):
            raise TypeMismatch(f"Unable to divide values of type {operand.type}")
    return pc.divide(pc.cast(dividend, pa.float64()), divisor)


def is_numeric_type(arrow_type: pa.DataType) -> bool:
    return (
        pa.types.is_integer(arrow_type)
        or pa.types.is_floating(arrow_type)
        or pa.types.is_decimal(arrow_type)
        or pa.types.is_null(arrow_type)
    )


class FunctionCallExpression(Expression):
    """Call a compute function on its arguments.

    Given a compute function, and a set of arguments
    (other expressions, literals or data), execute
    the function on the provided arguments and return
    the resulting data.

    For example to sum two columns this would be used as::

        FunctionCallExpression(pyarrow.compute.add, ColumnRef("A"), ColumnRef("B"))

    Which is the same expression built by ``col("A") + col("B")``.
    """

    def __init__(self, func: callable, *args: Expression | Any) -> None:
        """
        :param func: The function accepting the arguments.
        :param *args: The arguments for the function.
        """
        self.func = func
        self.args = args

    def __str__(self) -> str:
        func_qualname = utils.inspect.get_qualname(self.func)
        return f"{func_qualname}({','.join(map(str, self.args))})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array | pa.Scalar:
        """Invoke the function resolving all arguments on the recordbatch.

        When the function arguments are expressions themselves,
        this will apply the expressions on the provided recordbatch
        and the resulting data will be used as the arguments for the
        function.

        Arrow failures due to the type of the data, like adding
        a number to a string, are reported as :class:`TypeMismatch`.
        """
        args = tuple(apply_expression_if_needed(batch, arg) for arg in self.args)
        try:
            return self.func(*args)
        except ARROW_TYPE_ERRORS as e:
            raise TypeMismatch(f"Unable to apply {self}: {e}") from e
