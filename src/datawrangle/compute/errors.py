"""Errors raised by the compute engine.

Every node and expression of the compute engine reports
failures by raising one of the exceptions defined here.
Nothing is logged and nothing is retried: a failing operation
simply does not produce any output and the caller decides
what to do with the error.

All exceptions inherit from :class:`ComputeError`, so callers
that don't care about the specific reason can catch that one.
Most of them also inherit from the builtin exception that
better describes them, so that ``except KeyError`` keeps
working for a missing column.
"""


class ComputeError(Exception):
    """Base class for all the errors raised by the compute engine."""


class UnknownColumn(ComputeError, KeyError):
    """A referenced column does not exist in the data."""

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        """
        :param name: The name of the column that was requested.
        :param available: The columns that actually exist.
        """
        self.name = name
        self.available = list(available or [])
        super().__init__(name)

    def __str__(self) -> str:
        return f"Unknown column {self.name!r}, available columns: {self.available}"


class TypeMismatch(ComputeError, TypeError):
    """An operation was applied to data of an incompatible type.

    For example summing a string column or comparing
    a number with a string.
    """


class RowCountMismatch(ComputeError, ValueError):
    """Data that should have the same number of rows doesn't."""


class DuplicateColumn(ComputeError, ValueError):
    """An operation would produce two columns with the same name."""


class IncompatibleBind(ComputeError, ValueError):
    """Rows of tables with different types for the same column were combined.

    Each column holds values of a single type, so
    binding rows where ``price`` is a number in one table
    and a string in the other is refused instead of
    silently converting values.
    """


class AmbiguousPivot(ComputeError, ValueError):
    """More than one value would end up in the same cell of a pivoted table."""
