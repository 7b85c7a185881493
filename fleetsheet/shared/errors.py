"""
Error Taxonomy Module

Application errors raised by services and rendered by the exception
handlers in ``fleetsheet.main`` as ``{"message": ..., "code": ...}``.

Author: Fleetsheet Development Team
"""


class FleetsheetError(Exception):
    """Base class for errors that map to a structured HTTP error body."""

    status_code = 500
    code = "error"

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code}


class ValidationError(FleetsheetError):
    """Malformed or semantically inconsistent input."""

    status_code = 400
    code = "validation_error"


class NotFoundError(FleetsheetError):
    """A referenced entity does not exist or is not visible."""

    status_code = 404
    code = "not_found"


class AuthorizationError(FleetsheetError):
    """Caller lacks the role or tenant scope for the operation."""

    status_code = 403
    code = "authorization_error"


class DeliveryError(FleetsheetError):
    """The mail transport rejected the message or timed out."""

    status_code = 502
    code = "delivery_error"


class PersistenceError(FleetsheetError):
    """Generic storage failure."""

    status_code = 500
    code = "persistence_error"
