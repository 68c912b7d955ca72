"""Format tabular data into a text table for print.

The `tabulate` function takes a `pyarrow.RecordBatch` and formats it into a text table.
It truncates long strings, formats floats to 2 decimal places, shows missing
values as ``NA`` and limits the number of rows to display.
It's used to display tables in the console and by the ``wrangle`` command.

Example:

    >>> import pyarrow as pa
    >>> data = {
    ...     "species_id": ["DM", "NL", None],
    ...     "plot_id": [2, 7, 3],
    ...     "weight": [41.5, None, 12.25],
    ... }
    >>> table = pa.RecordBatch.from_pydict(data)
    >>> print(tabulate(table))
    species_id | plot_id | weight
    ---------- | ------- | ------
    DM         | 2       | 41.50
    NL         | 7       | NA
    NA         | 3       | 12.25
"""

from typing import Any

from pyarrow import RecordBatch

MISSING = "NA"


def tabulate(recordbatch: RecordBatch, max_rows: int = 20) -> str:
    """Format a RecordBatch into a text table.

    Will produce a string like::

        species_id | plot_id | weight
        ---------- | ------- | ------
        DM         | 2       | 41.50
        NL         | 7       | NA

    When there are more than ``max_rows`` rows, only the first
    ones are shown, followed by the count of the omitted rows.
    """
    cols = recordbatch.schema.names
    rows = [
        [format_value(value) for value in row]
        for row in zip(
            *(column.to_pylist() for column in recordbatch.slice(length=max_rows).columns)
        )
    ]

    colsizes = compute_max_colsize(cols, rows)
    header = [maketablerow(cols, colsizes=colsizes)]
    separator = [maketablerow(["-"] * len(cols), colsizes=colsizes, fillvalue="-")]
    textrows = [maketablerow(row, colsizes=colsizes) for row in rows]

    table = "\n".join(header + separator + textrows)
    if recordbatch.num_rows > max_rows:
        table += f"\n... and {recordbatch.num_rows - max_rows} more rows"
    return table


def compute_max_colsize(cols: list[str], rows: list[list[str]]) -> list[int]:
    """Compute the maximum size of each column in a table."""
    return [
        max([len(row[colidx]) for row in rows] + [len(cols[colidx])])
        for colidx, _ in enumerate(cols)
    ]


def maketablerow(cols: list[str], colsizes: list[int], fillvalue: str = " ") -> str:
    """Make a table row with the given column sizes."""
    return " | ".join(
        [col.ljust(colsizes[idx], fillvalue) for idx, col in enumerate(cols)]
    ).rstrip()


def format_value(v: Any) -> str:
    """Format a value to be printed in the table.

    This function will format floats to 2 decimal places,
    show missing values as ``NA`` and truncate long strings.
    """
    if v is None:
        return MISSING
    elif isinstance(v, float):
        return f"{v:.2f}"
    elif isinstance(v, bool):
        return "true" if v else "false"

    v = str(v)
    if len(v) > 30:
        v = v[:27] + "..."
    return v
