"""Custom exceptions for the data store."""


class PersistenceError(Exception):
    """Raised when a record could not be written to or read from the store."""

    pass
