"""
errors.py - exception types raised by the tracker

Four kinds of failure are reported to callers:
 - ValidationError: malformed or unknown input (never retried)
 - PreconditionError: data the computation needs is missing, e.g. driver rates not set
 - ConflictError: an entry changed since the caller last read it
 - StoreError: the row store could not be read or written (safe to retry)
"""


class RideSplitError(Exception):
    """Base class for every error raised by ridesplit."""


class ValidationError(RideSplitError, ValueError):
    pass


class PreconditionError(RideSplitError):
    pass


class ConflictError(RideSplitError):
    def __init__(self, date: str, expected: int, actual: int):
        super().__init__(
            f"Entry for {date} changed (expected version {expected}, found {actual}). Reload and try again."
        )
        self.date = date
        self.expected = expected
        self.actual = actual


class StoreError(RideSplitError, RuntimeError):
    def __init__(self, operation: str, table: str):
        super().__init__(f"Store operation failed: {operation} {table}")
        self.operation = operation
        self.table = table
