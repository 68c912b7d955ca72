"""Query plan nodes that implement join operations.

The join operations are implemented with an hash join:
an hash table is built from the keys of one of the two tables
and then the key of each row of the other table is looked up in it
to find the matching rows.

The result of the lookups is a list of pairs of row indices,
one for the left table and one for the right table,
which are then used to take the rows out of each table
and combine them. When a row has no match, the index of the
other side is missing and taking it produces a row
where all values are missing.

Supported join kinds are:

* ``inner``: only the rows that have a match on both sides.
* ``left``: all the rows of the left table, with missing values
  for the right table columns when there is no match.
* ``right``: all the rows of the right table, with missing values
  for the left table columns when there is no match.
* ``full``: all the rows of both tables.
* ``semi``: the rows of the left table that have a match, without
  adding any column of the right table.
* ``anti``: the rows of the left table that have no match.

When a key appears multiple times, every matching row of the
left table is combined with every matching row of the right table.

>>> import pyarrow as pa
>>> from datawrangle.compute import PyArrowTableDataSource
>>> left = PyArrowTableDataSource(pa.record_batch({"id": [1, 2, 3], "name": ["Alice", "Bob", "Charlie"]}))
>>> right = PyArrowTableDataSource(pa.record_batch({"id": [3, 2], "age": [25, 30]}))
>>> join_node = JoinNode(["id"], ["id"], left, right, how="left")
>>> next(join_node.batches()).to_pydict()
{'id': [1, 2, 3], 'name': ['Alice', 'Bob', 'Charlie'], 'age': [None, 30, 25]}
"""

import pyarrow as pa
import pyarrow.compute as pc

from .base import QueryPlanNode, materialize
from .errors import DuplicateColumn, TypeMismatch
from .expressions import ARROW_TYPE_ERRORS, is_numeric_type
from .grouping import check_columns, key_tuples

JOIN_KINDS = ("inner", "left", "right", "full", "semi", "anti")


class JoinNode(QueryPlanNode):
    """Join two data sources on equality of one or more key columns.

    Supposing we have two tables::

        surveys:
        +-----------+---------+--------+
        | record_id | species | weight |
        +-----------+---------+--------+
        | 1         | NL      | 40     |
        | 2         | DM      | 35     |
        | 3         | NL      | 42     |
        | 4         | XX      | 12     |
        +-----------+---------+--------+

        species:
        +---------+-----------+
        | species | genus     |
        +---------+-----------+
        | DM      | Dipodomys |
        | NL      | Neotoma   |
        +---------+-----------+

    We would perform the following steps:

    1. Build an hash table mapping each key of the right table
       to the rows where it appears::

        {"DM": [0], "NL": [1]}

    2. Look up in the hash table the key of each row of the left table,
       collecting the pairs of matching rows. Rows without a match
       are paired with a missing index when the join kind keeps them::

        inner: [(0, 1), (1, 0), (2, 1)]
        left:  [(0, 1), (1, 0), (2, 1), (3, None)]

    3. Take the rows of each table using the indices and
       combine the columns in a new table::

        +-----------+---------+--------+-----------+
        | record_id | species | weight | genus     |
        +-----------+---------+--------+-----------+
        | 1         | NL      | 40     | Neotoma   |
        | 2         | DM      | 35     | Dipodomys |
        | 3         | NL      | 42     | Neotoma   |
        | 4         | XX      | 12     | null      |
        +-----------+---------+--------+-----------+

    The key columns appear only once, with the name they have
    in the left table. For right and full joins the key values
    of the rows coming only from the right table are taken from it.

    Other columns with the same name in both tables are renamed
    appending the ``suffixes``, by default only the right column
    is renamed, adding ``_right`` to its name.
    """

    def __init__(
        self,
        left_keys: list[str],
        right_keys: list[str],
        left_child: QueryPlanNode,
        right_child: QueryPlanNode,
        how: str = "inner",
        suffixes: tuple[str, str] = ("", "_right"),
        na_matches: str = "na",
    ) -> None:
        """
        :param left_keys: The keys to join on in the left table.
        :param right_keys: The keys to join on in the right table.
        :param left_child: The left source of data to join.
        :param right_child: The right source of data to join.
        :param how: The kind of join, one of ``JOIN_KINDS``.
        :param suffixes: Appended to the left and right names of columns
                         that exist in both tables.
        :param na_matches: ``"na"`` if missing keys match each other,
                           ``"never"`` if a missing key never matches.
        """
        if how not in JOIN_KINDS:
            raise ValueError(f"Unsupported join kind {how!r}, expected one of {JOIN_KINDS}")
        if na_matches not in ("na", "never"):
            raise ValueError(f"na_matches must be 'na' or 'never', got {na_matches!r}")
        if len(left_keys) != len(right_keys):
            raise ValueError("Left and right keys must have the same length")
        if not left_keys:
            raise ValueError("At least one join key is required")

        self.left_keys = left_keys
        self.right_keys = right_keys
        self.left_child = left_child
        self.right_child = right_child
        self.how = how
        self.suffixes = suffixes
        self.na_matches = na_matches

    def __str__(self) -> str:
        return (
            f"JoinNode(how={self.how}, left_keys={self.left_keys}, right_keys={self.right_keys}, "
            f"left={self.left_child}, right={self.right_child})"
        )

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Perform the join operation.

        Accumulates all rows of both children to
        perform the join operation, so it is not suitable
        for datasets that don't fit in memory.
        """
        left = materialize(self.left_child)
        right = materialize(self.right_child)
        check_columns(left, self.left_keys)
        check_columns(right, self.right_keys)
        self._check_key_types(left, right)
        left_rows = key_tuples(left, self.left_keys)
        right_rows = key_tuples(right, self.right_keys)

        if self.how in ("semi", "anti"):
            right_index = self._build_index(right_rows)
            keep = self.how == "semi"
            mask = [(self._lookup(right_index, key) is not None) == keep for key in left_rows]
            yield left.filter(pa.array(mask, type=pa.bool_()))
            return

        pairs: list[tuple[int | None, int | None]] = []
        if self.how == "right":
            left_index = self._build_index(left_rows)
            for rightidx, key in enumerate(right_rows):
                matches = self._lookup(left_index, key)
                if matches is None:
                    pairs.append((None, rightidx))
                else:
                    pairs.extend((leftidx, rightidx) for leftidx in matches)
        else:
            right_index = self._build_index(right_rows)
            matched_right: set[int] = set()
            for leftidx, key in enumerate(left_rows):
                matches = self._lookup(right_index, key)
                if matches is None:
                    if self.how in ("left", "full"):
                        pairs.append((leftidx, None))
                else:
                    pairs.extend((leftidx, rightidx) for rightidx in matches)
                    matched_right.update(matches)
            if self.how == "full":
                pairs.extend(
                    (None, rightidx)
                    for rightidx in range(right.num_rows)
                    if rightidx not in matched_right
                )

        yield self._combine(left, right, pairs)

    def _check_key_types(self, left: pa.RecordBatch, right: pa.RecordBatch) -> None:
        """Refuse to join keys that could never be equal, like numbers and strings."""
        for left_key, right_key in zip(self.left_keys, self.right_keys):
            left_type = left.schema.field(left_key).type
            right_type = right.schema.field(right_key).type
            if not _comparable_types(left_type, right_type):
                raise TypeMismatch(
                    f"Unable to join {left_key} ({left_type}) with {right_key} ({right_type})"
                )

    def _build_index(self, rows: list[tuple]) -> dict[tuple, list[int]]:
        """Build the hash table mapping each key to the rows having it."""
        index: dict[tuple, list[int]] = {}
        for rowidx, key in enumerate(rows):
            try:
                index.setdefault(key, []).append(rowidx)
            except TypeError as e:
                raise TypeMismatch(f"Unable to join on {self.left_keys}: {e}") from e
        return index

    def _lookup(self, index: dict[tuple, list[int]], key: tuple) -> list[int] | None:
        """Find the rows matching the key, ``None`` if there are none."""
        if self.na_matches == "never" and any(value is None for value in key):
            return None
        return index.get(key)

    def _combine(
        self,
        left: pa.RecordBatch,
        right: pa.RecordBatch,
        pairs: list[tuple[int | None, int | None]],
    ) -> pa.RecordBatch:
        """Take the paired rows from both tables and combine their columns."""
        left_indices = pa.array([pair[0] for pair in pairs], type=pa.int64())
        right_indices = pa.array([pair[1] for pair in pairs], type=pa.int64())
        left_part = left.take(left_indices)
        right_part = right.take(right_indices)

        right_columns = [
            name for name in right.schema.names if name not in self.right_keys
        ]
        overlapping = set(left.schema.names) & set(right_columns)
        left_suffix, right_suffix = self.suffixes

        names: list[str] = []
        columns: list[pa.Array] = []
        for name in left.schema.names:
            column = left_part.column(name)
            if name in self.left_keys:
                if self.how in ("right", "full"):
                    right_key = self.right_keys[self.left_keys.index(name)]
                    try:
                        column = pc.coalesce(column, right_part.column(right_key))
                    except ARROW_TYPE_ERRORS as e:
                        raise TypeMismatch(
                            f"Join keys {name} and {right_key} have incompatible types: {e}"
                        ) from e
            elif name in overlapping:
                name = f"{name}{left_suffix}"
            names.append(name)
            columns.append(column)

        for name in right_columns:
            column = right_part.column(name)
            if name in overlapping:
                name = f"{name}{right_suffix}"
            names.append(name)
            columns.append(column)

        if len(set(names)) != len(names):
            raise DuplicateColumn(
                f"Joining would produce duplicate columns {names}, provide different suffixes"
            )
        return pa.RecordBatch.from_arrays(columns, names=names)


def _type_family(arrow_type: pa.DataType) -> str | pa.DataType:
    if is_numeric_type(arrow_type):
        return "number"
    if pa.types.is_string(arrow_type) or pa.types.is_large_string(arrow_type):
        return "string"
    return arrow_type


def _comparable_types(left: pa.DataType, right: pa.DataType) -> bool:
    """Columns made only of missing values can be joined with anything."""
    if pa.types.is_null(left) or pa.types.is_null(right):
        return True
    return _type_family(left) == _type_family(right)
