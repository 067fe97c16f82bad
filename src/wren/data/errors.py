"""Data layer errors."""

from wren.errors import WrenError


class DataError(WrenError):
    """Base for wren.data errors."""


class DriverNotInstalledError(DataError):
    """The driver for the configured URL scheme is not importable."""


class QueryError(DataError):
    """A statement failed inside the driver."""
