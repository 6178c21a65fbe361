"""Domain errors raised by the fleet services.

Routes never catch these directly; the handlers registered in ``main.py``
turn them into HTTP responses (404 for NotFoundError, 400 for the rest).
"""


class FleetError(Exception):
    """Base class for domain rule violations."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(FleetError):
    """A referenced printer, job or maintenance record does not exist."""

    status_code = 404


class InvalidStateError(FleetError):
    """The operation is not allowed from the entity's current status."""


class ValidationFailure(FleetError):
    """Input is well-formed but fails a cross-entity check."""
