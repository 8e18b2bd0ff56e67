"""Error types raised by the store layer.

- StoreFailure: the underlying store failed (I/O, lock timeout, constraint
  violation). The SQLAlchemy exception is chained as __cause__.
- ConsistencyViolation: an invariant the code relies on did not hold, e.g. a
  row missing right after insert-or-ignore. Points at a schema or logic bug.
"""


class OpenBookError(Exception):
    """Base class for openbook errors."""


class StoreFailure(OpenBookError):
    """Raised when a store operation fails."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")


class ConsistencyViolation(OpenBookError):
    """Raised when the store contradicts an expected invariant."""
