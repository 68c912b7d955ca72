"""Command line interface for wrangling delimited files.

This module provides a command line interface that loads
a CSV (or otherwise delimited) file and applies to it some
of the verbs of the :class:`datawrangle.table.Table` API,
in a fixed order: drop missing values, select, count, arrange
and finally take the first rows.

The results are then printed to the console in a tabular format
using the :mod:`datawrangle.utils.tabulate` module.
"""

import argparse

import pyarrow as pa
import pyarrow.csv as csv

from datawrangle.compute import ComputeError, desc
from datawrangle.table import Table


def parse_columns(value: str) -> list[str]:
    """Split a comma separated list of column names."""
    return [name.strip() for name in value.split(",") if name.strip()]


def parse_sorting(value: str) -> list:
    """Parse sorting keys, a leading ``-`` sorts in descending order.

    >>> parse_sorting("year,-weight")
    ['year', ('weight', 'descending')]
    """
    keys = []
    for name in parse_columns(value):
        if name.startswith("-"):
            keys.append(desc(name[1:]))
        else:
            keys.append(name)
    return keys


def load_table(path: str, delimiter: str = ",") -> Table:
    """Read a delimited file in a Table.

    Empty fields are loaded as missing values, also for text columns.
    """
    data = csv.read_csv(
        path,
        parse_options=csv.ParseOptions(delimiter=delimiter),
        convert_options=csv.ConvertOptions(strings_can_be_null=True),
    )
    return Table(data)


def wrangle(table: Table, args: argparse.Namespace) -> Table:
    """Apply the verbs requested on the command line to the table."""
    if args.drop_na:
        table = table.drop_na()
    if args.select:
        table = table.select(*args.select)
    if args.count:
        table = table.count(*args.count)
    if args.arrange:
        table = table.arrange(*args.arrange)
    if args.head is not None:
        table = table.head(args.head)
    return table


def main(argv: list[str] | None = None) -> int:
    """Parse the command line arguments and wrangle the file."""
    parser = argparse.ArgumentParser(description="Select, count and sort the rows of a CSV file.")
    parser.add_argument("file", type=str, help="The delimited file to load.")
    parser.add_argument(
        "-s", "--select", type=parse_columns, help="Comma separated columns to keep."
    )
    parser.add_argument(
        "--drop-na", action="store_true", help="Discard rows with missing values."
    )
    parser.add_argument(
        "-c", "--count", type=parse_columns, help="Count rows for each value of these columns."
    )
    parser.add_argument(
        "-a",
        "--arrange",
        type=parse_sorting,
        help="Comma separated columns to sort by, prefix with - for descending order (--arrange=-weight).",
    )
    parser.add_argument("-n", "--head", type=int, help="Only show the first N rows.")
    parser.add_argument(
        "-d", "--delimiter", type=str, default=",", help="The field delimiter of the file."
    )
    args = parser.parse_args(argv)

    try:
        table = load_table(args.file, args.delimiter)
    except (OSError, pa.ArrowInvalid) as e:
        print(f"Unable to read {args.file}, {e}")
        return 1

    try:
        result = wrangle(table, args)
    except (ComputeError, ValueError) as e:
        print(f"Invalid request, {e}")
        return 1

    print(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
