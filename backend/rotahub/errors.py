from __future__ import annotations


class RotaHubError(Exception):
    """Base class for errors raised by the scheduling engine."""


class ValidationError(RotaHubError, ValueError):
    """Malformed input: rejected before anything is written."""


class RecordNotFound(RotaHubError, LookupError):
    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection} record {record_id!r} not found")
        self.collection = collection
        self.record_id = record_id


class EmailDispatchError(RotaHubError):
    """The e-mail relay refused or could not be reached."""
