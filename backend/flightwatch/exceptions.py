"""
Domain errors shared by services and the API layer.
"""


class NotFoundError(Exception):
    """Raised when a record looked up by id does not exist."""

    entity = "Record"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"{self.entity} {record_id} not found")


class JobNotFoundError(NotFoundError):
    entity = "Monitoring job"


class AlertNotFoundError(NotFoundError):
    entity = "Price alert"


class StoreUnavailableError(Exception):
    """Raised when the database cannot be reached at scheduler start."""
