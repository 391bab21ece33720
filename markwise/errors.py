"""Error taxonomy shared by the services and the HTTP layers."""

from __future__ import annotations


class MarkwiseError(Exception):
    status_code = 500
    default_message = "An unexpected error occurred."

    def __init__(self, message: str | None = None):
        self.message = (message or "").strip() or self.default_message
        super().__init__(self.message)


class ValidationError(MarkwiseError):
    status_code = 400
    default_message = "Invalid input."


class NotFound(MarkwiseError):
    status_code = 404
    default_message = "Bookmark not found"


class ConflictError(MarkwiseError):
    status_code = 409
    default_message = "This bookmark was changed elsewhere. Reload and try again."


class UpstreamError(MarkwiseError):
    status_code = 502
    default_message = "The external service request failed."


class RequestTimeoutError(MarkwiseError):
    status_code = 504
    default_message = "The request timed out. Please try again."


class ConstraintError(MarkwiseError):
    status_code = 500
    default_message = "Could not save changes."
