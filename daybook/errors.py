"""Exceptions shared by the daybook tools.

Domain functions raise these; each tool's ``main()`` turns them into an
``Error: ...`` line on stderr and exit status 1.
"""


class DaybookError(Exception):
    """Base class for every user-facing failure."""


class ValidationError(DaybookError):
    """An argument was malformed (date, number, priority, URL, name...)."""


class NotFoundError(DaybookError):
    """A referenced record does not exist."""


class DuplicateError(DaybookError):
    """A record with the same key already exists."""


class StoreError(DaybookError):
    """A data file could not be read or written."""
