"""datawrangle

An in-memory data wrangling library built on top of Apache Arrow.

datawrangle provides the verbs commonly used to clean and
analyse tabular data: selecting columns, filtering rows, computing
new columns, sorting, grouping and summarizing, joining tables
and reshaping them between the wide and long layouts.

The library is constituted by multiple components, each isolated within its own
package and each self documented in literate programming style.

The primary components are:

* The Compute Engine, in charge of executing the transformations on the data.
* The Table API, which provides an high level API for the compute engine.
* The ``wrangle`` command, which applies some of the verbs to CSV files.

For the user guide and code documentation of each component, refer to the
component itself.
"""

from . import compute, table
from .table import GroupedTable, Table, bind_cols, bind_rows

__all__ = ("compute", "table", "Table", "GroupedTable", "bind_rows", "bind_cols")
