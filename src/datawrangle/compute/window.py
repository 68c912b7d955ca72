"""Ranking, window and conditional expressions.

When deriving new columns it's frequent to need values
that depend on the other rows, like the rank of a value
or the value of the previous row. Those are computed
over the whole batch the expression is applied to,
which for grouped data is the group of the row.

Ranking functions differ in how they handle ties:

>>> import pyarrow as pa
>>> data = pa.record_batch({"x": [3, 4, 1, 3, 1]})
>>> row_number("x").apply(data).to_pylist()
[3, 5, 1, 4, 2]
>>> min_rank("x").apply(data).to_pylist()
[3, 5, 1, 3, 1]
>>> dense_rank("x").apply(data).to_pylist()
[2, 3, 1, 2, 1]

Missing values are never ranked, they get a missing rank
and are not counted when computing relative ranks.

The conditional expressions (:class:`IfElse`, :class:`CaseWhen`
and :class:`Recode`) allow to compute values based on conditions
or to replace some specific values.
"""

from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from .base import ColumnRef, Expression
from .errors import TypeMismatch
from .expressions import (
    ARROW_TYPE_ERRORS,
    align_types,
    evaluate_as_array,
    evaluate_as_mask,
)


def _source(column: str | Expression) -> Expression:
    return ColumnRef(column) if isinstance(column, str) else column


def _describe(column: str | Expression | None) -> str:
    if column is None:
        return ""
    return column if isinstance(column, str) else str(column)


class RankExpression(Expression):
    """Base class for ranking functions.

    Subclasses define the ``tiebreaker`` used to
    assign ranks to equal values, as supported by
    :func:`pyarrow.compute.rank`.
    """

    tiebreaker = "first"

    def __init__(self, column: str | Expression, desc: bool = False) -> None:
        """
        :param column: The column or expression to rank.
        :param desc: Give the lowest rank to the highest value.
        """
        self.column = column
        self.desc = desc

    def __str__(self) -> str:
        suffix = ", desc=True" if self.desc else ""
        return f"{self.__class__.__name__}({_describe(self.column)}{suffix})"

    def ranks(self, batch: pa.RecordBatch) -> tuple[pa.Array, int]:
        """Compute the ranks and the number of ranked (non missing) values."""
        values = evaluate_as_array(batch, _source(self.column))
        try:
            ranks = pc.rank(
                values,
                sort_keys="descending" if self.desc else "ascending",
                tiebreaker=self.tiebreaker,
            )
        except ARROW_TYPE_ERRORS as e:
            raise TypeMismatch(f"Unable to rank {self}: {e}") from e
        ranks = pc.cast(ranks, pa.int64())
        ranks = pc.if_else(pc.is_null(values), pa.scalar(None, type=pa.int64()), ranks)
        return ranks, len(values) - values.null_count

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        return self.ranks(batch)[0]


class RowNumber(RankExpression):
    """Number rows, ties are numbered in order of appearance.

    Without a column, rows are numbered in their current order.
    """

    tiebreaker = "first"

    def __init__(self, column: str | Expression | None = None, desc: bool = False) -> None:
        super().__init__(column, desc)

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        if self.column is None:
            return pa.array(range(1, batch.num_rows + 1), type=pa.int64())
        return super().apply(batch)


class MinRank(RankExpression):
    """Rank values, ties share the lowest rank and leave gaps after them."""

    tiebreaker = "min"


class DenseRank(RankExpression):
    """Rank values, ties share the same rank and leave no gaps."""

    tiebreaker = "dense"


class PercentRank(RankExpression):
    """The min rank rescaled between 0 and 1 as ``(rank - 1) / (n - 1)``.

    A single value has a percent rank of ``0``.
    """

    tiebreaker = "min"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        ranks, count = self.ranks(batch)
        shifted = pc.cast(pc.subtract(ranks, 1), pa.float64())
        if count <= 1:
            return pc.multiply(shifted, 0.0)
        return pc.divide(shifted, float(count - 1))


class CumeDist(RankExpression):
    """The fraction of values less than or equal to each value."""

    tiebreaker = "max"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        ranks, count = self.ranks(batch)
        if count == 0:
            return pc.cast(ranks, pa.float64())
        return pc.divide(pc.cast(ranks, pa.float64()), float(count))


class Ntile(RankExpression):
    """Split the values in ``n`` buckets of roughly the same size.

    Buckets are numbered from 1 following the order of the values,
    the first buckets get the extra values when the number
    of values is not a multiple of ``n``.
    Without a column, rows are bucketed in their current order.
    """

    def __init__(
        self, column: str | Expression | None = None, n: int = 1, desc: bool = False
    ) -> None:
        if n < 1:
            raise ValueError(f"ntile requires at least one bucket, got {n}")
        super().__init__(column, desc)
        self.n = n

    def __str__(self) -> str:
        return f"Ntile({_describe(self.column)}, n={self.n})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        numbers = RowNumber(self.column, self.desc).apply(batch)
        count = len(numbers) - numbers.null_count
        buckets = [
            None if number is None else (self.n * (number - 1)) // count + 1
            for number in numbers.to_pylist()
        ]
        return pa.array(buckets, type=pa.int64())


class Lag(Expression):
    """The value of the column ``k`` rows before the current one.

    The first ``k`` rows have no previous value and get
    ``default``, which is missing unless provided.
    """

    def __init__(self, column: str | Expression, k: int = 1, default: Any = None) -> None:
        """
        :param column: The column or expression to shift.
        :param k: How many rows to shift by.
        :param default: The value for rows without a previous row.
        """
        if k < 0:
            raise ValueError(f"Can't shift by a negative number of rows: {k}")
        self.column = column
        self.k = k
        self.default = default

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({_describe(self.column)}, k={self.k})"

    def _fill(self, values: pa.Array, length: int) -> pa.Array:
        if self.default is None:
            return pa.nulls(length, type=values.type)
        try:
            return pa.array([self.default] * length, type=values.type)
        except ARROW_TYPE_ERRORS as e:
            raise TypeMismatch(f"Invalid default for {self}: {e}") from e

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        values = evaluate_as_array(batch, _source(self.column))
        k = min(self.k, len(values))
        return pa.concat_arrays(
            [self._fill(values, k), values.slice(0, len(values) - k)]
        )


class Lead(Lag):
    """The value of the column ``k`` rows after the current one.

    The last ``k`` rows have no next value and get
    ``default``, which is missing unless provided.
    """

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        values = evaluate_as_array(batch, _source(self.column))
        k = min(self.k, len(values))
        return pa.concat_arrays([values.slice(k), self._fill(values, k)])


class IfElse(Expression):
    """Pick a value or another depending on a condition.

    Where the condition is missing the result is missing,
    unless a value for the ``missing`` case is provided.

    >>> import pyarrow as pa
    >>> from datawrangle.compute import col
    >>> data = pa.record_batch({"weight": [10, 50, None]})
    >>> if_else(col("weight") > 30, "heavy", "light").apply(data).to_pylist()
    ['light', 'heavy', None]
    """

    def __init__(
        self,
        condition: Expression,
        true_value: Expression | Any,
        false_value: Expression | Any,
        missing: Expression | Any = None,
    ) -> None:
        self.condition = condition
        self.true_value = true_value
        self.false_value = false_value
        self.missing = missing

    def __str__(self) -> str:
        return f"IfElse({self.condition}, {self.true_value!r}, {self.false_value!r})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        condition = evaluate_as_mask(batch, self.condition)
        values = [
            evaluate_as_array(batch, self.true_value),
            evaluate_as_array(batch, self.false_value),
        ]
        if self.missing is not None:
            values.append(evaluate_as_array(batch, self.missing))
        values = align_types(*values)
        try:
            result = pc.if_else(condition, values[0], values[1])
            if self.missing is not None:
                result = pc.if_else(pc.is_null(condition), values[2], result)
        except ARROW_TYPE_ERRORS as e:
            raise TypeMismatch(f"Unable to compute {self}: {e}") from e
        return result


class CaseWhen(Expression):
    """Pick the value of the first condition that is true.

    Conditions are evaluated top to bottom, each row gets the value
    of the first condition that is true for it. Rows for which no
    condition is true get the ``default`` value, missing if not provided.
    A missing condition counts as not true.

    >>> import pyarrow as pa
    >>> from datawrangle.compute import col
    >>> data = pa.record_batch({"hindfoot": [10, 30, 50, None]})
    >>> expr = case_when(
    ...     (col("hindfoot") > 40, "long"),
    ...     (col("hindfoot") > 20, "medium"),
    ...     default="short",
    ... )
    >>> expr.apply(data).to_pylist()
    ['short', 'medium', 'long', 'short']
    """

    def __init__(self, *cases: tuple[Expression, Any], default: Any = None) -> None:
        """
        :param cases: ``(condition, value)`` tuples.
        :param default: Value for the rows that match no condition.
        """
        if not cases:
            raise ValueError("case_when requires at least one condition")
        self.cases = cases
        self.default = default

    def __str__(self) -> str:
        cases = ", ".join(f"({cond}, {value!r})" for cond, value in self.cases)
        return f"CaseWhen({cases}, default={self.default!r})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        values = [evaluate_as_array(batch, value) for _, value in self.cases]
        if self.default is None:
            default = pa.nulls(batch.num_rows)
        else:
            default = evaluate_as_array(batch, self.default)
        *values, result = align_types(*values, default)

        try:
            for (condition, _), value in reversed(list(zip(self.cases, values))):
                mask = pc.fill_null(evaluate_as_mask(batch, condition), False)
                result = pc.if_else(mask, value, result)
        except ARROW_TYPE_ERRORS as e:
            raise TypeMismatch(f"Unable to compute {self}: {e}") from e
        return result


_UNCHANGED = object()


class Recode(Expression):
    """Replace values of a column according to a mapping.

    Values not in the mapping are left unchanged,
    unless a ``default`` is provided. Missing values stay
    missing unless the mapping has a ``None`` key.

    >>> import pyarrow as pa
    >>> data = pa.record_batch({"sex": ["F", "M", None, "F"]})
    >>> recode("sex", {"F": "female", "M": "male"}).apply(data).to_pylist()
    ['female', 'male', None, 'female']
    """

    def __init__(
        self, column: str | Expression, mapping: dict, default: Any = _UNCHANGED
    ) -> None:
        """
        :param column: The column or expression to recode.
        :param mapping: The ``{old_value: new_value}`` replacements.
        :param default: Value for the values not in mapping.
        """
        self.column = column
        self.mapping = mapping
        self.default = default

    def __str__(self) -> str:
        return f"Recode({_describe(self.column)}, {self.mapping})"

    def _recode(self, value: Any) -> Any:
        if value in self.mapping:
            return self.mapping[value]
        if value is None or self.default is _UNCHANGED:
            return value
        return self.default

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        values = evaluate_as_array(batch, _source(self.column))
        recoded = [self._recode(value) for value in values.to_pylist()]
        try:
            return pa.array(recoded, type=values.type)
        except ARROW_TYPE_ERRORS:
            # The replacements changed the type of the column.
            try:
                return pa.array(recoded)
            except ARROW_TYPE_ERRORS as e:
                raise TypeMismatch(f"Recoding produced values of mixed types: {e}") from e


row_number = RowNumber
min_rank = MinRank
dense_rank = DenseRank
percent_rank = PercentRank
cume_dist = CumeDist
ntile = Ntile
lag = Lag
lead = Lead
if_else = IfElse
case_when = CaseWhen
recode = Recode
