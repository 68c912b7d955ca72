"""Partition rows in groups sharing the same key.

Aggregations, grouped filters and grouped mutations all
need to know which rows belong together. Given a set of
key columns, :func:`group_rows` finds the distinct key
values and the rows of each one of them.

Grouping is done with an hash table in Python: each row's
key values are gathered in a tuple and looked up in a dictionary
mapping the key to the group. Missing values compare equal
between themselves, so all the rows with a missing key end up
in the same group instead of being discarded.

The groups are then sorted by their key, missing keys last,
which is the order in which summaries are emitted:

>>> import pyarrow as pa
>>> data = pa.record_batch({"g": ["b", None, "a", "b"], "x": [1, 2, 3, 4]})
>>> groups = group_rows(data, ["g"])
>>> groups.key_batch.column("g").to_pylist()
['a', 'b', None]
>>> groups.indices
[[2], [0, 3], [1]]
"""

from typing import Callable

import pyarrow as pa
import pyarrow.compute as pc

from .errors import TypeMismatch, UnknownColumn
from .expressions import ARROW_TYPE_ERRORS, align_types


class Groups:
    """The partition of a batch rows in groups."""

    def __init__(
        self,
        keys: list[str],
        key_batch: pa.RecordBatch | None,
        indices: list[list[int]],
    ) -> None:
        """
        :param keys: The columns the rows were grouped by.
        :param key_batch: One row for each group with the values of the keys,
                          ``None`` when there are no keys.
        :param indices: For each group, the indices of the rows in the group.
        """
        self.keys = keys
        self.key_batch = key_batch
        self.indices = indices

    def __len__(self) -> int:
        return len(self.indices)

    def __str__(self) -> str:
        return f"Groups(keys={self.keys}, groups={len(self.indices)})"


def check_columns(batch: pa.RecordBatch, columns: list[str]) -> None:
    """Raise :class:`UnknownColumn` for the first column missing in batch."""
    names = batch.schema.names
    for column in columns:
        if column not in names:
            raise UnknownColumn(column, names)


def key_tuples(batch: pa.RecordBatch, keys: list[str]) -> list[tuple]:
    """The values of the key columns for each row of the batch.

    Empty keys give an empty tuple for each row,
    which means all rows share the same key.
    """
    check_columns(batch, keys)
    if not keys:
        return [()] * batch.num_rows
    return list(zip(*(batch.column(key).to_pylist() for key in keys)))


def group_rows(
    batch: pa.RecordBatch, keys: list[str], sort: bool = True
) -> Groups:
    """Group the rows of the batch by the values of the key columns.

    :param batch: The data to group.
    :param keys: The columns to group by, when empty all rows are a single group.
    :param sort: Sort the groups by key, otherwise they are
                 in order of first appearance.
    """
    rows = key_tuples(batch, keys)
    if not keys:
        return Groups([], None, [list(range(batch.num_rows))])

    positions: dict[tuple, int] = {}
    first_rows: list[int] = []
    indices: list[list[int]] = []
    for rowidx, key in enumerate(rows):
        try:
            group = positions.get(key)
        except TypeError as e:
            raise TypeMismatch(f"Unable to group by {keys}: {e}") from e
        if group is None:
            positions[key] = len(indices)
            first_rows.append(rowidx)
            indices.append([rowidx])
        else:
            indices[group].append(rowidx)

    key_batch = pa.RecordBatch.from_arrays(
        [batch.column(key).take(pa.array(first_rows, type=pa.int64())) for key in keys],
        names=list(keys),
    )
    if sort and indices:
        try:
            # Arrow places nulls at the end by default.
            order = pc.sort_indices(
                key_batch, sort_keys=[(key, "ascending") for key in keys]
            )
        except ARROW_TYPE_ERRORS as e:
            raise TypeMismatch(f"Unable to sort groups by {keys}: {e}") from e
        key_batch = key_batch.take(order)
        indices = [indices[i] for i in order.to_pylist()]
    return Groups(list(keys), key_batch, indices)


def apply_per_group(
    batch: pa.RecordBatch,
    groups: Groups,
    func: Callable[[pa.RecordBatch], pa.Array],
) -> pa.Array:
    """Compute a column group by group and return it in the original row order.

    Each group is extracted as a separate batch and provided to ``func``,
    which must return one value for each row of the group.
    The results are then concatenated and moved back
    to the position of the row they were computed for.
    """
    if batch.num_rows == 0:
        return func(batch)

    order = [rowidx for group in groups.indices for rowidx in group]
    chunks = [
        func(batch.take(pa.array(group, type=pa.int64()))) for group in groups.indices
    ]
    try:
        combined = pa.concat_arrays(align_types(*chunks))
    except ARROW_TYPE_ERRORS as e:
        raise TypeMismatch(f"Groups computed values of different types: {e}") from e
    restore = pc.sort_indices(pa.array(order, type=pa.int64()))
    return combined.take(restore)
