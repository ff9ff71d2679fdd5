"""
Error types shared by the stores, the HTTP layer and the CLI.
"""


class JournalError(Exception):
    """Base class for all journal errors."""


class ValidationError(JournalError):
    """A date, query or import payload is missing or malformed."""


class NotFoundError(JournalError):
    """No entry matches the given id or date."""


class TransportError(JournalError):
    """The remote store could not be reached or answered with a failure."""


class StorageError(JournalError):
    """The backing file could not be read or written."""
