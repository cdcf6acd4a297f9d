"""Data layer error hierarchy."""

from livetrain.errors import LivetrainError


class DataError(LivetrainError):
    """Base for all livetrain.data errors."""


class DriverNotInstalledError(DataError):
    """Raised when a database URL names a driver livetrain cannot use."""


class QueryError(DataError):
    """Raised when a SQL query fails."""


class MigrationError(DataError):
    """Raised when a migration file is invalid or fails to apply."""
