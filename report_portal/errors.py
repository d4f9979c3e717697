"""
Error taxonomy for the report lifecycle.

The HTTP layer maps these onto status codes; the messages carried by
the public-facing ones are safe to show to a citizen.
"""


class ReportPortalError(Exception):
    """Base class for every error raised by the report lifecycle."""

    message = "failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(ReportPortalError):
    """Missing or malformed client input (4xx)."""

    message = "invalid input"


class PayloadTooLarge(ValidationError):
    """Uploaded photo exceeds the size limit."""

    message = "file too large"


class UniqueConstraintError(ReportPortalError):
    """A case identifier is already taken. Retried by the lifecycle service, never surfaced."""

    message = "duplicate case id"


class IdentifierExhausted(ReportPortalError):
    """No free case identifier was found within the retry bound."""

    message = "could not allocate a case id"


class NotFoundError(ReportPortalError):
    message = "not found"


class InvalidStatusValue(ReportPortalError):
    message = "Invalid status value"


class InvalidTransitionError(ReportPortalError):
    message = "Status transition not allowed"


class ResourceExhausted(ReportPortalError):
    """Connection pool checkout timed out."""

    message = "busy"


class InternalError(ReportPortalError):
    """Anything unexpected. Details go to the server log only."""

    message = "failed"
