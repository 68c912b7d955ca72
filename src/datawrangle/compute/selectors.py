"""Pick columns by their name.

Wrangling wide datasets often requires picking
a set of columns without listing them all, for example
all the columns that start with ``hindfoot_`` or every
column except the identifiers.

Selectors describe a rule to match column names,
they can be mixed with plain column names when
selecting columns and negated with ``~`` to turn
a selection into an exclusion:

>>> names = ["record_id", "species_id", "weight", "hindfoot_length"]
>>> resolve_columns(names, [ends_with("_id")])
['record_id', 'species_id']
>>> resolve_columns(names, [~ends_with("_id")])
['weight', 'hindfoot_length']
>>> resolve_columns(names, ["weight", matches("^rec")])
['weight', 'record_id']
"""

import abc
import re
from typing import Iterable

from .errors import UnknownColumn


class ColumnSelector(abc.ABC):
    """A rule that matches column names."""

    @abc.abstractmethod
    def matches(self, name: str) -> bool:
        """If the column name is matched by the selector."""
        ...

    @abc.abstractmethod
    def __str__(self) -> str: ...

    def __repr__(self) -> str:
        return str(self)

    def select(self, names: list[str]) -> list[str]:
        """Return the matching names in the order they were provided."""
        return [name for name in names if self.matches(name)]

    def __invert__(self) -> "ColumnSelector":
        return Not(self)

    def __or__(self, other: "ColumnSelector") -> "ColumnSelector":
        return Either(self, other)


class StartsWith(ColumnSelector):
    """Columns whose name starts with a prefix."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix

    def matches(self, name: str) -> bool:
        return name.startswith(self.prefix)

    def __str__(self) -> str:
        return f"starts_with({self.prefix!r})"


class EndsWith(ColumnSelector):
    """Columns whose name ends with a suffix."""

    def __init__(self, suffix: str) -> None:
        self.suffix = suffix

    def matches(self, name: str) -> bool:
        return name.endswith(self.suffix)

    def __str__(self) -> str:
        return f"ends_with({self.suffix!r})"


class Contains(ColumnSelector):
    """Columns whose name contains a substring."""

    def __init__(self, substring: str) -> None:
        self.substring = substring

    def matches(self, name: str) -> bool:
        return self.substring in name

    def __str__(self) -> str:
        return f"contains({self.substring!r})"


class Matches(ColumnSelector):
    """Columns whose name matches a regular expression.

    The expression is searched anywhere in the name,
    use ``^`` and ``$`` to anchor it.
    """

    def __init__(self, pattern: str) -> None:
        self.pattern = re.compile(pattern)

    def matches(self, name: str) -> bool:
        return self.pattern.search(name) is not None

    def __str__(self) -> str:
        return f"matches({self.pattern.pattern!r})"


class OneOf(ColumnSelector):
    """An explicit list of columns.

    Differently from other selectors, the columns
    are returned in the order they were listed and
    listing a column that doesn't exist is an error.
    """

    def __init__(self, *names: str) -> None:
        self.names = list(names)

    def matches(self, name: str) -> bool:
        return name in self.names

    def select(self, names: list[str]) -> list[str]:
        for name in self.names:
            if name not in names:
                raise UnknownColumn(name, names)
        return list(self.names)

    def __str__(self) -> str:
        return f"one_of({', '.join(map(repr, self.names))})"


class Everything(ColumnSelector):
    """All the columns."""

    def matches(self, name: str) -> bool:
        return True

    def __str__(self) -> str:
        return "everything()"


class Not(ColumnSelector):
    """Columns that are not matched by another selector."""

    def __init__(self, selector: ColumnSelector) -> None:
        self.selector = selector

    def matches(self, name: str) -> bool:
        return not self.selector.matches(name)

    def __str__(self) -> str:
        return f"~{self.selector}"


class Either(ColumnSelector):
    """Columns matched by at least one of two selectors."""

    def __init__(self, left: ColumnSelector, right: ColumnSelector) -> None:
        self.left = left
        self.right = right

    def matches(self, name: str) -> bool:
        return self.left.matches(name) or self.right.matches(name)

    def __str__(self) -> str:
        return f"({self.left} | {self.right})"


starts_with = StartsWith
ends_with = EndsWith
contains = Contains
matches = Matches
one_of = OneOf
everything = Everything


def resolve_columns(
    available: list[str], items: Iterable[str | ColumnSelector]
) -> list[str]:
    """Resolve column names and selectors to the list of selected columns.

    Columns are returned in the order they were requested,
    each column only once even when requested multiple times.

    When only negated selectors are provided, the selection
    starts from all the available columns and drops those
    excluded by the selectors.

    :param available: The columns that exist.
    :param items: Column names or :class:`ColumnSelector` objects.
    """
    items = list(items)
    if items and all(isinstance(item, Not) for item in items):
        selected = list(available)
        for item in items:
            selected = item.select(selected)
        return selected

    selected: list[str] = []
    for item in items:
        if isinstance(item, ColumnSelector):
            names = item.select(available)
        elif item in available:
            names = [item]
        else:
            raise UnknownColumn(item, available)
        for name in names:
            if name not in selected:
                selected.append(name)
    return selected
