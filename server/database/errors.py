"""
Errors raised by the record store and by flows that write through it.
"""


class StoreUnavailableError(Exception):
    """The document store could not be reached or rejected the operation."""

    def __init__(self, operation: str, collection: str, cause: Exception = None):
        self.operation = operation
        self.collection = collection
        self.cause = cause
        super().__init__(f"{operation} on '{collection}' failed: {cause}")


class InconsistentWriteError(Exception):
    """A two-step write completed its first step but not its second."""


class PointsNotAwardedError(InconsistentWriteError):
    """The triggering record was persisted but the points increment failed."""

    def __init__(self, collection: str, record_id: str, user_email: str, points: int):
        self.collection = collection
        self.record_id = record_id
        self.user_email = user_email
        self.points = points
        super().__init__(
            f"{collection} record {record_id} was saved but {points} points "
            f"were not awarded to {user_email}"
        )
